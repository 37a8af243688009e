# console_log.py
from __future__ import annotations

import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TextIO

TIME_FORMAT = "[%Y-%m-%d - %H:%M]"


class TeeLog:
    """
    Timestamped "[TAG] message" lines to the console, optionally tee'd to a file.

    progress() rewrites the current console line (searching dots) and is
    never written to the file.
    """

    def __init__(
        self,
        log_path: Optional[Path] = None,
        stream: Optional[TextIO] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.stream = stream if stream is not None else sys.stdout
        self.clock = clock
        self._lock = threading.Lock()
        self._progress_open = False
        self.f = None
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self.f = log_path.open("a", encoding="utf-8", errors="replace")

    def close(self):
        if self.f is None:
            return
        try:
            self.f.close()
        except OSError:
            pass
        self.f = None

    def _stamp(self) -> str:
        return self.clock().strftime(TIME_FORMAT)

    def line(self, tag: str, msg: str):
        s = f"{self._stamp()} [{tag}] {msg}"
        with self._lock:
            if self._progress_open:
                self.stream.write("\n")
                self._progress_open = False
            self.stream.write(s + "\n")
            self.stream.flush()
            if self.f is not None:
                self.f.write(s + "\n")
                self.f.flush()

    def progress(self, msg: str, step: int):
        dots = step % 4
        s = f"\r{self._stamp()} {msg}" + "." * dots + " " * (3 - dots)
        with self._lock:
            self.stream.write(s)
            self.stream.flush()
            self._progress_open = True

    # shorthands
    def info(self, msg: str):
        self.line("INFO", msg)

    def warn(self, msg: str):
        self.line("WARN", msg)

    def error(self, msg: str):
        self.line("ERROR", msg)
