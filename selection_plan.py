# selection_plan.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from champion_catalog import Champion
from champ_select import RunePage


@dataclass
class SelectionPlan:
    """
    Operator intent for the next champion-select episode.

    ban / picks / rune_pages / rune_swap_enabled are written by the command
    layer only. fallback_cursor and locked are progress fields advanced by the
    planner and reset at every Matchmaking observation.
    """

    ban: Optional[Champion] = None
    picks: List[Champion] = field(default_factory=list)
    fallback_cursor: int = 0
    locked: bool = False
    rune_pages: Optional[Tuple[RunePage, ...]] = None
    rune_swap_enabled: bool = False

    @property
    def is_empty(self) -> bool:
        return self.ban is None and not self.picks

    def set_ban(self, champion: Optional[Champion]):
        self.ban = champion

    def set_picks(self, champions: Iterable[Champion]):
        seen: Set[int] = set()
        dedup: List[Champion] = []
        for c in champions:
            if c.id in seen:
                continue
            seen.add(c.id)
            dedup.append(c)
        self.picks = dedup
        self.fallback_cursor = 0
        self.locked = False

    def clear(self):
        self.ban = None
        self.picks = []
        self.fallback_cursor = 0
        self.locked = False

    def current_pick(self) -> Optional[Champion]:
        if 0 <= self.fallback_cursor < len(self.picks):
            return self.picks[self.fallback_cursor]
        return None

    def advance_cursor(self) -> int:
        self.fallback_cursor += 1
        return self.fallback_cursor

    def lock(self):
        self.locked = True

    def reset_progress(self):
        self.fallback_cursor = 0
        self.locked = False

    def describe(self) -> str:
        ban = self.ban.name if self.ban else "-"
        picks = " > ".join(c.name for c in self.picks) or "-"
        return f"ban={ban} picks={picks} cursor={self.fallback_cursor} locked={self.locked}"


@dataclass
class EpisodeState:
    """
    Loop-carried state of one champion-select episode.

    locked / fallback_cursor live on the plan; they are exposed here so the
    whole episode resets in one place.
    """

    plan: SelectionPlan
    found_match: bool = False
    accepted_this_episode: bool = False
    ban_blocked: bool = False
    exhausted_reported: bool = False
    dodge_detected: bool = False
    rune_swapped_slots: Set[int] = field(default_factory=set)

    @property
    def locked(self) -> bool:
        return self.plan.locked

    @property
    def fallback_cursor(self) -> int:
        return self.plan.fallback_cursor

    def reset(self):
        self.found_match = False
        self.accepted_this_episode = False
        self.ban_blocked = False
        self.exhausted_reported = False
        self.dodge_detected = False
        self.rune_swapped_slots = set()
        self.plan.reset_progress()
