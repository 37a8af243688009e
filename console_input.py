# console_input.py
from __future__ import annotations

import sys
import threading
from typing import Callable, List, Optional, TextIO

from champion_catalog import ChampionCatalog, UnknownChampionError
from control_state import (
    BeginSelection,
    Clear,
    CommandBus,
    EndSelection,
    SetBan,
    SetPicks,
    Terminate,
    ToggleAutoAccept,
    ToggleRuneSwap,
)

HELP = """commands:
  begin                 open the selection for editing
  ban <champion>        set the ban target ("ban -" removes it)
  picks <a>, <b>, ...   set the ordered pick fallbacks
  done                  close the selection
  clear                 drop ban and picks
  accept                toggle auto-accept
  runes                 toggle rune swap
  status                show current state
  quit                  stop the autopilot"""


def split_names(text: str) -> List[str]:
    return [p.strip() for p in (text or "").split(",") if p.strip()]


def parse_command(line: str, catalog: ChampionCatalog):
    """
    Returns a command, the string "help"/"status", or None for blank input.
    Raises UnknownChampionError / ValueError for bad input.
    """
    s = (line or "").strip()
    if not s:
        return None
    head, _, rest = s.partition(" ")
    head = head.lower()
    rest = rest.strip()

    if head in ("help", "?"):
        return "help"
    if head == "status":
        return "status"
    if head == "begin":
        return BeginSelection()
    if head in ("done", "end"):
        return EndSelection()
    if head == "clear":
        return Clear()
    if head == "accept":
        return ToggleAutoAccept()
    if head == "runes":
        return ToggleRuneSwap()
    if head in ("quit", "exit"):
        return Terminate()
    if head == "ban":
        if not rest:
            raise ValueError("usage: ban <champion>")
        if rest == "-":
            return SetBan(None)
        return SetBan(catalog.resolve(rest))
    if head in ("pick", "picks"):
        names = split_names(rest)
        if not names:
            raise ValueError("usage: picks <a>, <b>, ...")
        return SetPicks(tuple(catalog.resolve_many(names)))

    raise ValueError(f"unknown command '{head}' (type help)")


class ConsoleInput:
    """Reads stdin lines on a daemon thread and publishes commands; never touches the LCU."""

    def __init__(
        self,
        bus: CommandBus,
        catalog: ChampionCatalog,
        status: Callable[[], dict],
        stream: Optional[TextIO] = None,
        out: Optional[TextIO] = None,
    ):
        self.bus = bus
        self.catalog = catalog
        self.status = status
        self.stream = stream if stream is not None else sys.stdin
        self.out = out if out is not None else sys.stdout
        self._thread: Optional[threading.Thread] = None

    def _say(self, msg: str):
        self.out.write(msg + "\n")
        self.out.flush()

    def handle_line(self, line: str):
        try:
            cmd = parse_command(line, self.catalog)
        except UnknownChampionError as e:
            self._say(str(e))
            return
        except ValueError as e:
            self._say(str(e))
            return

        if cmd is None:
            return
        if cmd == "help":
            self._say(HELP)
            return
        if cmd == "status":
            st = self.status()
            ban = st["ban"]["name"] if st.get("ban") else "-"
            picks = " > ".join(p["name"] for p in st.get("picks") or []) or "-"
            self._say(
                f"phase={st['phase']} auto_accept={st['auto_accept']} rune_swap={st['rune_swap']} "
                f"editing={st['edit_mode']} ban={ban} picks={picks} "
                f"cursor={st['fallback_cursor']} locked={st['locked']}"
            )
            return
        self.bus.publish(cmd)

    def _run(self):
        for line in self.stream:
            self.handle_line(line)
            if self.bus.terminate_requested.is_set():
                return
        # stdin closed: leave the loop running

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self._run, name="console-input", daemon=True)
        self._thread.start()
        return self._thread
