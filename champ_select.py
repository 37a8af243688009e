# champ_select.py
"""
Typed views over the LCU gameflow / champ-select payloads.

Every parser here raises PayloadError on a shape it does not understand so the
reconciliation loop can skip the cycle instead of acting on half-read state.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

PLANNING = "PLANNING"


class PayloadError(ValueError):
    pass


class GameflowPhase(Enum):
    NONE = "None"
    LOBBY = "Lobby"
    MATCHMAKING = "Matchmaking"
    READY_CHECK = "ReadyCheck"
    CHAMP_SELECT = "ChampSelect"
    IN_PROGRESS = "InProgress"
    WAITING_FOR_STATS = "WaitingForStats"
    PRE_END_OF_GAME = "PreEndOfGame"
    END_OF_GAME = "EndOfGame"
    UNKNOWN = "Unknown"


_PHASE_BY_RAW = {p.value: p for p in GameflowPhase if p is not GameflowPhase.UNKNOWN}
_PHASE_BY_RAW["Idle"] = GameflowPhase.NONE


@dataclass(frozen=True)
class PhaseValue:
    phase: GameflowPhase
    raw: str

    @classmethod
    def parse(cls, raw: Any) -> "PhaseValue":
        if raw is None:
            return cls(GameflowPhase.NONE, "None")
        s = str(raw)
        if not s.strip():
            return cls(GameflowPhase.NONE, s)
        return cls(_PHASE_BY_RAW.get(s, GameflowPhase.UNKNOWN), s)

    def __str__(self) -> str:
        return self.raw


def phase_from_gameflow_session(obj: Any) -> PhaseValue:
    """/lol-gameflow/v1/session -> {"phase": "..."}; the bare string form is accepted too."""
    if isinstance(obj, str) or obj is None:
        return PhaseValue.parse(obj)
    if not isinstance(obj, dict):
        raise PayloadError(f"gameflow session is not an object: {type(obj).__name__}")
    return PhaseValue.parse(obj.get("phase"))


class ActionKind(Enum):
    BAN = "ban"
    PICK = "pick"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> "ActionKind":
        s = str(raw or "").strip().lower()
        if s == "ban":
            return cls.BAN
        if s == "pick":
            return cls.PICK
        return cls.OTHER


@dataclass(frozen=True)
class ChampSelectAction:
    action_id: int
    actor_cell_id: int
    kind: ActionKind
    in_progress: bool = False
    completed: bool = False
    champion_id: int = 0
    is_ally_action: bool = True
    typed: bool = True

    @classmethod
    def absent(cls, kind: ActionKind) -> "ChampSelectAction":
        return cls(action_id=0, actor_cell_id=-1, kind=kind, in_progress=False, completed=False)

    @property
    def is_absent(self) -> bool:
        return self.action_id == 0

    @property
    def is_open(self) -> bool:
        return self.in_progress and not self.completed

    @property
    def is_finalized(self) -> bool:
        return (not self.in_progress) and self.completed

    @classmethod
    def from_payload(cls, obj: Any) -> "ChampSelectAction":
        if not isinstance(obj, dict):
            raise PayloadError(f"action is not an object: {obj!r}")
        try:
            action_id = int(obj["id"])
            actor = int(obj["actorCellId"])
        except (KeyError, TypeError, ValueError) as e:
            raise PayloadError(f"action missing id/actorCellId: {obj!r}") from e
        raw_type = obj.get("type")
        return cls(
            action_id=action_id,
            actor_cell_id=actor,
            kind=ActionKind.parse(raw_type),
            in_progress=bool(obj.get("isInProgress", False)),
            completed=bool(obj.get("completed", False)),
            champion_id=int(obj.get("championId") or 0),
            is_ally_action=bool(obj.get("isAllyAction", True)),
            typed=raw_type is not None,
        )


@dataclass(frozen=True)
class ChampSelectSnapshot:
    local_player_cell_id: int
    actions: List[List[ChampSelectAction]] = field(default_factory=list)
    timer_phase: str = ""

    @property
    def is_planning(self) -> bool:
        return self.timer_phase == PLANNING

    @classmethod
    def from_payload(cls, obj: Any) -> "ChampSelectSnapshot":
        if not isinstance(obj, dict):
            raise PayloadError("champ-select session is not an object")
        if obj.get("localPlayerCellId") is None:
            raise PayloadError("champ-select session has no localPlayerCellId")
        try:
            cell = int(obj["localPlayerCellId"])
        except (TypeError, ValueError) as e:
            raise PayloadError(f"bad localPlayerCellId: {obj['localPlayerCellId']!r}") from e

        raw_actions = obj.get("actions")
        if not isinstance(raw_actions, list):
            raise PayloadError("champ-select session has no actions list")

        turns: List[List[ChampSelectAction]] = []
        for turn in raw_actions:
            if not isinstance(turn, list):
                raise PayloadError(f"action turn is not a list: {turn!r}")
            turns.append([ChampSelectAction.from_payload(a) for a in turn])

        timer = obj.get("timer") or {}
        timer_phase = str(timer.get("phase") or "") if isinstance(timer, dict) else ""

        return cls(local_player_cell_id=cell, actions=turns, timer_phase=timer_phase)


def resolve_actions(snapshot: ChampSelectSnapshot) -> Tuple[ChampSelectAction, ChampSelectAction]:
    """
    Returns (ban_action, pick_action) for the local cell.

    Turns are flattened in order and the first two local actions are kept.
    A typed action goes to its own slot; an untyped one fills the first free
    slot in ban-then-pick order. Missing slots are absent defaults.
    """
    mine: List[ChampSelectAction] = []
    for turn in snapshot.actions:
        for a in turn:
            if a.actor_cell_id != snapshot.local_player_cell_id:
                continue
            if a.typed and a.kind is ActionKind.OTHER:
                continue
            mine.append(a)
            if len(mine) == 2:
                break
        if len(mine) == 2:
            break

    ban: Optional[ChampSelectAction] = None
    pick: Optional[ChampSelectAction] = None
    for a in mine:
        if a.typed and a.kind is ActionKind.PICK:
            if pick is None:
                pick = a
        elif a.typed and a.kind is ActionKind.BAN:
            if ban is None:
                ban = a
        elif ban is None:
            ban = a
        elif pick is None:
            pick = a

    return (
        ban if ban is not None else ChampSelectAction.absent(ActionKind.BAN),
        pick if pick is not None else ChampSelectAction.absent(ActionKind.PICK),
    )


@dataclass(frozen=True)
class RunePage:
    id: int
    name: str
    primary_style_id: int
    selected_perk_ids: Tuple[int, ...]
    sub_style_id: int

    @classmethod
    def from_payload(cls, obj: Any) -> "RunePage":
        if not isinstance(obj, dict):
            raise PayloadError(f"rune page is not an object: {obj!r}")
        try:
            return cls(
                id=int(obj["id"]),
                name=str(obj.get("name") or ""),
                primary_style_id=int(obj["primaryStyleId"]),
                selected_perk_ids=tuple(int(x) for x in (obj.get("selectedPerkIds") or [])),
                sub_style_id=int(obj["subStyleId"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise PayloadError(f"rune page missing fields: {obj!r}") from e

    def to_create_body(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "primaryStyleId": self.primary_style_id,
            "selectedPerkIds": list(self.selected_perk_ids),
            "subStyleId": self.sub_style_id,
            "current": True,
        }


def rune_templates_from_payload(obj: Any, count: int = 2) -> List[RunePage]:
    if not isinstance(obj, list):
        raise PayloadError("rune page list is not a list")
    return [RunePage.from_payload(p) for p in obj[:count]]
