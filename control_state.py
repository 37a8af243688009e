# control_state.py
"""
Operator intent shared between the input surfaces and the reconciliation loop.

Input tasks (console prompt, control API) only publish commands. The loop
drains them between polls and is the only writer of the plan; everything
else reads a copied snapshot.
"""
from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from champion_catalog import Champion
from selection_plan import EpisodeState, SelectionPlan


# ---- commands ----
@dataclass(frozen=True)
class BeginSelection:
    pass


@dataclass(frozen=True)
class EndSelection:
    pass


@dataclass(frozen=True)
class SetBan:
    champion: Optional[Champion]


@dataclass(frozen=True)
class SetPicks:
    champions: Tuple[Champion, ...]


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class ToggleAutoAccept:
    pass


@dataclass(frozen=True)
class ToggleRuneSwap:
    pass


@dataclass(frozen=True)
class Terminate:
    pass


PLAN_EDITS = (SetBan, SetPicks)


class CommandBus:
    def __init__(self):
        self._q: "queue.Queue[Any]" = queue.Queue()
        self.terminate_requested = threading.Event()

    def publish(self, cmd):
        if isinstance(cmd, Terminate):
            self.terminate_requested.set()
        self._q.put(cmd)

    def drain(self) -> List[Any]:
        out = []
        while True:
            try:
                out.append(self._q.get_nowait())
            except queue.Empty:
                return out


class SharedControlState:
    def __init__(self, plan: SelectionPlan, auto_accept: bool = True):
        self._lock = threading.Lock()
        self._plan = plan
        self._auto_accept = bool(auto_accept)
        self._edit_mode = False
        self._terminated = False
        self._status: Dict[str, Any] = {
            "phase": "None",
            "found_match": False,
            "locked": False,
            "fallback_cursor": 0,
            "last_event": "",
            "updated_at": int(time.time()),
        }

    # ---- narrow readers ----
    @property
    def auto_accept(self) -> bool:
        with self._lock:
            return self._auto_accept

    @property
    def edit_mode(self) -> bool:
        with self._lock:
            return self._edit_mode

    @property
    def terminated(self) -> bool:
        with self._lock:
            return self._terminated

    # ---- loop-side writers ----
    def apply(self, cmd, in_champ_select: bool = False) -> Tuple[bool, str]:
        """
        Apply one command. Returns (changed_plan, message).
        Plan edits need edit mode and are refused during champion select.
        """
        with self._lock:
            plan = self._plan

            if isinstance(cmd, Terminate):
                self._terminated = True
                return False, "terminate requested"

            if isinstance(cmd, ToggleAutoAccept):
                self._auto_accept = not self._auto_accept
                return False, f"auto-accept {'ON' if self._auto_accept else 'OFF'}"

            if isinstance(cmd, ToggleRuneSwap):
                plan.rune_swap_enabled = not plan.rune_swap_enabled
                return True, f"rune swap {'ON' if plan.rune_swap_enabled else 'OFF'}"

            if isinstance(cmd, BeginSelection):
                self._edit_mode = True
                return False, "selection open for editing"

            if isinstance(cmd, EndSelection):
                self._edit_mode = False
                return False, f"selection closed: {plan.describe()}"

            if isinstance(cmd, Clear):
                if in_champ_select:
                    return False, "clear refused: champion select in progress"
                plan.clear()
                self._edit_mode = False
                return True, "selection cleared"

            if isinstance(cmd, PLAN_EDITS):
                if in_champ_select:
                    return False, "edit refused: champion select in progress"
                if not self._edit_mode:
                    return False, "edit refused: selection is not open (begin first)"
                if isinstance(cmd, SetBan):
                    plan.set_ban(cmd.champion)
                    return True, f"ban set: {cmd.champion.name if cmd.champion else '-'}"
                plan.set_picks(cmd.champions)
                return True, "picks set: " + (" > ".join(c.name for c in plan.picks) or "-")

            return False, f"unknown command: {cmd!r}"

    def publish_status(self, phase: str, episode: EpisodeState, last_event: Optional[str] = None):
        with self._lock:
            self._status["phase"] = phase
            self._status["found_match"] = episode.found_match
            self._status["locked"] = episode.locked
            self._status["fallback_cursor"] = episode.fallback_cursor
            if last_event is not None:
                self._status["last_event"] = last_event
            self._status["updated_at"] = int(time.time())

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            plan = self._plan
            return {
                **self._status,
                "auto_accept": self._auto_accept,
                "edit_mode": self._edit_mode,
                "terminated": self._terminated,
                "rune_swap": plan.rune_swap_enabled,
                "ban": {"id": plan.ban.id, "name": plan.ban.name} if plan.ban else None,
                "picks": [{"id": c.id, "name": c.name} for c in plan.picks],
            }
