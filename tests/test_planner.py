"""Tests for the champion-select reconciliation planner."""
import pytest

from champ_select import ChampSelectSnapshot, RunePage
from conftest import RUNE_PAGES, make_session
from lcu_client import LCUHttpError
from planner import CycleOutcome, template_for_slot


def snap(**kwargs):
    return ChampSelectSnapshot.from_payload(make_session(**kwargs))


def pages():
    return [RunePage.from_payload(p) for p in RUNE_PAGES[:2]]


# ---- gating ----
def test_planning_timer_blocks_everything(planner, plan, episode, fake_lcu):
    """Scenario D: no PATCH while the timer says PLANNING, whatever the action state."""
    for ban, pick in [((True, False), (False, False)), ((False, True), (True, False))]:
        outcome = planner.run_cycle(snap(ban=ban, pick=pick, timer="PLANNING"), plan, episode)
        assert outcome is CycleOutcome.SKIPPED_PLANNING
    assert fake_lcu.calls == []


def test_both_actions_finalized_is_skipped(planner, plan, episode, fake_lcu):
    outcome = planner.run_cycle(snap(ban=(False, True), pick=(False, True)), plan, episode)
    assert outcome is CycleOutcome.SKIPPED_FINALIZED
    assert fake_lcu.calls == []


def test_no_local_actions_means_no_mutation(planner, plan, episode, fake_lcu):
    outcome = planner.run_cycle(snap(ban=None, pick=None), plan, episode)
    assert outcome is CycleOutcome.NO_ACTIONS
    assert fake_lcu.calls == []


# ---- ban ----
def test_ban_submitted_when_open_and_available(planner, plan, episode, fake_lcu, sleeps):
    outcome = planner.run_cycle(snap(ban=(True, False), pick=(False, False)), plan, episode)

    assert outcome is CycleOutcome.BAN_SUBMITTED
    assert fake_lcu.patches == [
        ("patch", 3, {
            "actorCellId": 2,
            "championId": 17,
            "completed": True,
            "id": 3,
            "isAllyAction": True,
            "type": "ban",
        })
    ]
    # availability pause, then the post-submission cooldown
    assert sleeps == [0.2, 10.0]


def test_unavailable_ban_is_never_sent(planner, plan, episode, fake_lcu):
    """Scenario C: ban target taken -> no ban PATCH for the rest of the episode."""
    fake_lcu.unavailable.add(17)
    for _ in range(3):
        outcome = planner.run_cycle(snap(ban=(True, False), pick=(False, False)), plan, episode)
        assert outcome is CycleOutcome.BAN_BLOCKED

    # it even becomes available again later: still not sent this episode
    fake_lcu.unavailable.clear()
    planner.run_cycle(snap(ban=(True, False), pick=(False, False)), plan, episode)

    assert fake_lcu.patches == []
    assert episode.ban_blocked is True
    assert fake_lcu.calls.count(("grid", 17)) == 1


def test_no_ban_target_leaves_ban_to_operator(planner, plan, episode, fake_lcu):
    plan.set_ban(None)
    outcome = planner.run_cycle(snap(ban=(True, False), pick=(False, False)), plan, episode)
    assert outcome is CycleOutcome.IDLE
    assert fake_lcu.calls == []


# ---- pick ----
def test_pick_submitted_and_locked(planner, plan, episode, fake_lcu, sleeps):
    """Scenario E: exactly one pick PATCH, then locked."""
    outcome = planner.run_cycle(snap(ban=(False, True), pick=(True, False)), plan, episode)

    assert outcome is CycleOutcome.PICK_SUBMITTED
    assert plan.locked is True
    assert fake_lcu.patches == [
        ("patch", 13, {
            "actorCellId": 2,
            "championId": 103,
            "completed": True,
            "id": 13,
            "isAllyAction": True,
            "type": "pick",
        })
    ]
    assert sleeps[-1] == 10.0


def test_locked_plan_never_picks_again(planner, plan, episode, fake_lcu):
    planner.run_cycle(snap(ban=(False, True), pick=(True, False)), plan, episode)
    # the client has not caught up yet: the pick still looks open
    for _ in range(3):
        outcome = planner.run_cycle(snap(ban=(False, True), pick=(True, False)), plan, episode)
        assert outcome is CycleOutcome.IDLE
    assert len(fake_lcu.patches) == 1


def test_pick_waits_while_ban_is_open(planner, plan, episode, fake_lcu):
    plan.set_ban(None)
    outcome = planner.run_cycle(snap(ban=(True, False), pick=(True, False)), plan, episode)
    assert outcome is CycleOutcome.IDLE
    assert fake_lcu.patches == []


def test_pick_waits_until_ban_completed(planner, plan, episode, fake_lcu):
    outcome = planner.run_cycle(snap(ban=(False, False), pick=(True, False)), plan, episode)
    assert outcome is CycleOutcome.IDLE
    assert fake_lcu.patches == []


def test_blind_pick_without_ban_turn(planner, plan, episode, fake_lcu):
    outcome = planner.run_cycle(snap(ban=None, pick=(True, False), others=False), plan, episode)
    assert outcome is CycleOutcome.PICK_SUBMITTED
    assert fake_lcu.patches[0][2]["championId"] == 103


def test_unavailable_candidate_advances_cursor(planner, plan, episode, fake_lcu):
    """Scenario B: A taken -> no PATCH for A, cursor 1, next cycle evaluates B."""
    fake_lcu.unavailable.add(103)
    s = snap(ban=(False, True), pick=(True, False))

    assert planner.run_cycle(s, plan, episode) is CycleOutcome.CURSOR_ADVANCED
    assert plan.fallback_cursor == 1
    assert fake_lcu.patches == []

    assert planner.run_cycle(s, plan, episode) is CycleOutcome.PICK_SUBMITTED
    assert fake_lcu.patches[0][2]["championId"] == 99
    assert ("grid", 103) in fake_lcu.calls and ("grid", 99) in fake_lcu.calls


def test_cursor_advances_once_per_detection_and_never_revisits(planner, plan, episode, fake_lcu):
    fake_lcu.unavailable.update({103, 99})
    s = snap(ban=(False, True), pick=(True, False))

    planner.run_cycle(s, plan, episode)
    assert plan.fallback_cursor == 1
    planner.run_cycle(s, plan, episode)
    assert plan.fallback_cursor == 2

    fake_lcu.unavailable.clear()
    planner.run_cycle(s, plan, episode)
    assert [p[2]["championId"] for p in fake_lcu.patches] == [1]
    assert fake_lcu.calls.count(("grid", 103)) == 1


def test_exhausted_fallbacks_submit_nothing(planner, plan, episode, fake_lcu, log_stream):
    fake_lcu.unavailable.update({103, 99, 1})
    s = snap(ban=(False, True), pick=(True, False))
    outcomes = [planner.run_cycle(s, plan, episode) for _ in range(5)]

    assert outcomes[:3] == [CycleOutcome.CURSOR_ADVANCED] * 3
    assert outcomes[3:] == [CycleOutcome.EXHAUSTED] * 2
    assert fake_lcu.patches == []
    assert log_stream.getvalue().count("pick fallbacks are taken") == 1


# ---- rune swap ----
def test_rune_swap_happens_before_pick(planner, plan, episode, fake_lcu):
    plan.rune_swap_enabled = True
    planner.run_cycle(snap(ban=(False, True), pick=(True, False)), plan, episode, pages())

    kinds = [c[0] for c in fake_lcu.mutations]
    assert kinds == ["delete_page", "create_page", "patch"]
    assert fake_lcu.mutations[0] == ("delete_page", 501)
    body = fake_lcu.mutations[1][1]
    assert body["primaryStyleId"] == 8100
    assert body["subStyleId"] == 8200
    assert body["selectedPerkIds"] == RUNE_PAGES[0]["selectedPerkIds"]


def test_fallback_slot_uses_second_template(planner, plan, episode, fake_lcu):
    plan.rune_swap_enabled = True
    fake_lcu.unavailable.add(103)
    s = snap(ban=(False, True), pick=(True, False))
    planner.run_cycle(s, plan, episode, pages())
    planner.run_cycle(s, plan, episode, pages())

    assert ("delete_page", 502) in fake_lcu.mutations
    assert ("delete_page", 501) not in fake_lcu.mutations


def test_rune_swap_once_per_slot_even_if_pick_rejected(planner, plan, episode, fake_lcu):
    plan.rune_swap_enabled = True
    s = snap(ban=(False, True), pick=(True, False))

    def reject(action_id, body):
        fake_lcu.calls.append(("patch", action_id, body))
        raise LCUHttpError(500, "PATCH", f"/lol-champ-select/v1/session/actions/{action_id}")

    fake_lcu.patch_action = reject
    with pytest.raises(LCUHttpError):
        planner.run_cycle(s, plan, episode, pages())
    assert plan.locked is False

    del fake_lcu.patch_action
    assert planner.run_cycle(s, plan, episode, pages()) is CycleOutcome.PICK_SUBMITTED
    assert [c[0] for c in fake_lcu.mutations].count("delete_page") == 1


def test_failed_rune_swap_restores_page_and_still_picks(planner, plan, episode, fake_lcu, log_stream):
    plan.rune_swap_enabled = True
    fake_lcu.create_errors = [LCUHttpError(400, "POST", "/lol-perks/v1/pages")]

    outcome = planner.run_cycle(snap(ban=(False, True), pick=(True, False)), plan, episode, pages())
    assert outcome is CycleOutcome.PICK_SUBMITTED
    assert [c[0] for c in fake_lcu.mutations] == ["delete_page", "create_page", "create_page", "patch"]
    assert "rune swap failed, picking anyway" in log_stream.getvalue()


def test_templates_default_to_plan_pages(planner, plan, episode, fake_lcu):
    plan.rune_swap_enabled = True
    plan.rune_pages = tuple(pages())
    planner.run_cycle(snap(ban=(False, True), pick=(True, False)), plan, episode)
    assert fake_lcu.mutations[0] == ("delete_page", 501)


def test_rune_swap_disabled_touches_no_pages(planner, plan, episode, fake_lcu):
    planner.run_cycle(snap(ban=(False, True), pick=(True, False)), plan, episode, pages())
    assert [c[0] for c in fake_lcu.mutations] == ["patch"]


def test_template_for_slot():
    a, b = pages()
    assert template_for_slot([], 0) is None
    assert template_for_slot([a, b], 0) is a
    assert template_for_slot([a, b], 1) is b
    assert template_for_slot([a, b], 4) is b
    assert template_for_slot([a], 2) is a
