# planner.py
"""
Champion-select reconciliation: one decision per poll.

Every cycle starts from the snapshot fetched for that cycle and from the
episode flags; nothing is remembered about what was sent before except
`locked`, `fallback_cursor`, `ban_blocked` and the rune slots already swapped.
That is what makes a repeated submission harmless: an action that already
went through shows up as completed on the next poll.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

from champion_catalog import Champion
from champ_select import ChampSelectAction, ChampSelectSnapshot, RunePage, resolve_actions
from console_log import TeeLog
from executor import MutationExecutor
from lcu_client import LCUHttpError
from selection_plan import EpisodeState, SelectionPlan


class CycleOutcome(Enum):
    SKIPPED_PLANNING = "skipped_planning"
    SKIPPED_FINALIZED = "skipped_finalized"
    NO_ACTIONS = "no_actions"
    BAN_BLOCKED = "ban_blocked"
    BAN_SUBMITTED = "ban_submitted"
    CURSOR_ADVANCED = "cursor_advanced"
    PICK_SUBMITTED = "pick_submitted"
    EXHAUSTED = "exhausted"
    IDLE = "idle"


class TemplateCopySource:
    """
    Replacement page for a rune swap: the template itself.

    Deleting and recreating the same page changes nothing visible; there is
    no per-champion rune data yet, so this is the only source shipped.
    """

    def page_for(self, champion: Champion, template: RunePage) -> RunePage:
        return template


def template_for_slot(templates: Sequence[RunePage], cursor: int) -> Optional[RunePage]:
    if not templates:
        return None
    if cursor <= 0:
        return templates[0]
    return templates[1] if len(templates) > 1 else templates[0]


class ReconciliationPlanner:
    def __init__(self, client, executor: MutationExecutor, log: TeeLog, rune_source=None):
        self.client = client
        self.executor = executor
        self.log = log
        self.rune_source = rune_source or TemplateCopySource()

    def run_cycle(
        self,
        snapshot: ChampSelectSnapshot,
        plan: SelectionPlan,
        episode: EpisodeState,
        rune_templates: Optional[Sequence[RunePage]] = None,
    ) -> CycleOutcome:
        """rune_templates defaults to the pages the dispatcher stored on the plan."""
        if rune_templates is None:
            rune_templates = plan.rune_pages or ()
        ban_action, pick_action = resolve_actions(snapshot)

        if snapshot.is_planning:
            return CycleOutcome.SKIPPED_PLANNING
        if pick_action.is_finalized and ban_action.is_finalized:
            return CycleOutcome.SKIPPED_FINALIZED
        if ban_action.is_absent and pick_action.is_absent:
            return CycleOutcome.NO_ACTIONS

        if ban_action.in_progress:
            return self._reconcile_ban(snapshot, ban_action, plan, episode)

        # a missing ban turn (blind pick) does not hold the pick back
        ban_done = ban_action.completed or ban_action.is_absent
        if pick_action.is_open and ban_done:
            return self._reconcile_pick(snapshot, pick_action, plan, episode, rune_templates)

        return CycleOutcome.IDLE

    # ---- ban ----
    def _reconcile_ban(
        self,
        snapshot: ChampSelectSnapshot,
        action: ChampSelectAction,
        plan: SelectionPlan,
        episode: EpisodeState,
    ) -> CycleOutcome:
        if action.completed or plan.ban is None:
            return CycleOutcome.IDLE
        if episode.ban_blocked:
            return CycleOutcome.BAN_BLOCKED

        target = plan.ban
        available = self.client.is_champion_available(target.id)
        self.executor.pause_between_checks()
        if not available:
            episode.ban_blocked = True
            self.log.warn(f"ban target {target.name} is already picked or banned; not banning this episode")
            return CycleOutcome.BAN_BLOCKED

        self.executor.submit_ban(action, snapshot.local_player_cell_id, target)
        self.executor.cooldown()
        return CycleOutcome.BAN_SUBMITTED

    # ---- pick ----
    def _reconcile_pick(
        self,
        snapshot: ChampSelectSnapshot,
        action: ChampSelectAction,
        plan: SelectionPlan,
        episode: EpisodeState,
        rune_templates: Sequence[RunePage],
    ) -> CycleOutcome:
        if plan.locked:
            return CycleOutcome.IDLE

        candidate = plan.current_pick()
        if candidate is None:
            if plan.picks and not episode.exhausted_reported:
                episode.exhausted_reported = True
                self.log.warn(f"all {len(plan.picks)} pick fallbacks are taken; pick manually")
            return CycleOutcome.EXHAUSTED if plan.picks else CycleOutcome.IDLE

        available = self.client.is_champion_available(candidate.id)
        self.executor.pause_between_checks()
        if not available:
            cursor = plan.advance_cursor()
            nxt = plan.current_pick()
            self.log.line(
                "FALLBACK",
                f"{candidate.name} is taken -> {nxt.name if nxt else '(none left)'} (cursor={cursor})",
            )
            return CycleOutcome.CURSOR_ADVANCED

        slot = plan.fallback_cursor
        if plan.rune_swap_enabled and slot not in episode.rune_swapped_slots:
            episode.rune_swapped_slots.add(slot)
            self._swap_runes(candidate, slot, rune_templates)

        self.executor.submit_pick(action, snapshot.local_player_cell_id, candidate)
        plan.lock()
        self.executor.cooldown()
        return CycleOutcome.PICK_SUBMITTED

    def _swap_runes(self, candidate: Champion, slot: int, templates: Sequence[RunePage]):
        template = template_for_slot(templates, slot)
        if template is None:
            self.log.warn("rune swap enabled but no rune pages were found")
            return
        replacement = self.rune_source.page_for(candidate, template)
        try:
            self.executor.swap_rune_page(template, replacement)
        except LCUHttpError as e:
            # the pick matters more than the page
            self.log.warn(f"rune swap failed, picking anyway: {e}")
