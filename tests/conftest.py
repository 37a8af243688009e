"""Shared fixtures: a recording fake LCU client and champ-select payload builders."""
import io

import pytest

from champion_catalog import ChampionCatalog
from champ_select import PhaseValue
from console_log import TeeLog
from executor import MutationExecutor
from planner import ReconciliationPlanner
from selection_plan import EpisodeState, SelectionPlan

CHAMPIONS = [
    {"id": 103, "name": "Ahri"},
    {"id": 99, "name": "Lux"},
    {"id": 1, "name": "Annie"},
    {"id": 21, "name": "Miss Fortune"},
    {"id": 96, "name": "Kog'Maw"},
    {"id": 421, "name": "Rek'Sai"},
    {"id": 36, "name": "Dr. Mundo"},
    {"id": 17, "name": "Teemo"},
]

RUNE_PAGES = [
    {"id": 501, "name": "Page A", "primaryStyleId": 8100, "selectedPerkIds": [8112, 8139, 8138, 8135, 8226, 8237, 5008, 5008, 5002], "subStyleId": 8200},
    {"id": 502, "name": "Page B", "primaryStyleId": 8000, "selectedPerkIds": [8005, 9111, 9104, 8014, 8473, 8242, 5005, 5008, 5002], "subStyleId": 8400},
    {"id": 503, "name": "Page C", "primaryStyleId": 8200, "selectedPerkIds": [], "subStyleId": 8300},
]


def action(action_id, cell, kind, in_progress=False, completed=False, champion_id=0):
    return {
        "id": action_id,
        "actorCellId": cell,
        "championId": champion_id,
        "completed": completed,
        "isAllyAction": True,
        "isInProgress": in_progress,
        "type": kind,
    }


def make_session(cell=2, ban=None, pick=None, timer="BAN_PICK", others=True):
    """
    Standard draft shape: a ban turn (everyone bans) then pick turns.
    `ban` / `pick` are (in_progress, completed) for the local cell, or None to omit.
    """
    ban_turn = []
    pick_turn = []
    if others:
        ban_turn.append(action(1, 0, "ban", completed=True, champion_id=17))
    if ban is not None:
        ban_turn.append(action(3, cell, "ban", in_progress=ban[0], completed=ban[1]))
    if others:
        ban_turn.append(action(4, 7, "ban", in_progress=True))
        pick_turn.append(action(11, 0, "pick", completed=True, champion_id=21))
    if pick is not None:
        pick_turn.append(action(13, cell, "pick", in_progress=pick[0], completed=pick[1]))
    return {
        "localPlayerCellId": cell,
        "actions": [ban_turn, [action(10, -1, "ten_bans_reveal", completed=True)], pick_turn],
        "timer": {"phase": timer},
    }


class FakeLCU:
    """Records every call; phases are consumed in order, the last one repeats."""

    def __init__(self, phases=("None",), session=None, rune_pages=None):
        self.phases = list(phases)
        self.session = session
        self.rune_pages = list(RUNE_PAGES if rune_pages is None else rune_pages)
        self.unavailable = set()
        self.calls = []
        self.refreshes = 0
        self.errors = []
        self.page_list_error = None
        self.create_errors = []

    def _maybe_fail(self):
        if self.errors:
            raise self.errors.pop(0)

    def get_gameflow_phase(self):
        self._maybe_fail()
        raw = self.phases.pop(0) if len(self.phases) > 1 else self.phases[0]
        return PhaseValue.parse(raw)

    def get_champ_select_session(self):
        return self.session

    def list_rune_pages(self):
        self.calls.append(("list_pages",))
        if self.page_list_error is not None:
            raise self.page_list_error
        return self.rune_pages

    def is_champion_available(self, champion_id):
        self.calls.append(("grid", champion_id))
        return champion_id not in self.unavailable

    def accept_ready_check(self):
        self.calls.append(("accept",))

    def patch_action(self, action_id, body):
        self.calls.append(("patch", action_id, body))

    def delete_rune_page(self, page_id):
        self.calls.append(("delete_page", page_id))

    def create_rune_page(self, body):
        self.calls.append(("create_page", body))
        if self.create_errors:
            raise self.create_errors.pop(0)

    def refresh_credentials(self):
        self.refreshes += 1
        return False

    @property
    def patches(self):
        return [c for c in self.calls if c[0] == "patch"]

    @property
    def mutations(self):
        return [c for c in self.calls if c[0] not in ("grid", "list_pages")]


@pytest.fixture
def catalog():
    return ChampionCatalog.from_entries(CHAMPIONS)


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def log(log_stream):
    return TeeLog(stream=log_stream)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_lcu():
    return FakeLCU()


@pytest.fixture
def executor(fake_lcu, log, sleeps):
    return MutationExecutor(fake_lcu, log, cooldown_sec=10.0, check_pause_sec=0.2, sleep=sleeps.append)


@pytest.fixture
def planner(fake_lcu, executor, log):
    return ReconciliationPlanner(fake_lcu, executor, log)


@pytest.fixture
def plan(catalog):
    p = SelectionPlan()
    p.set_ban(catalog.resolve("Teemo"))
    p.set_picks([catalog.resolve("Ahri"), catalog.resolve("Lux"), catalog.resolve("Annie")])
    return p


@pytest.fixture
def episode(plan):
    return EpisodeState(plan)
