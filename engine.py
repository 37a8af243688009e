# engine.py
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from champ_select import (
    ChampSelectSnapshot,
    GameflowPhase,
    PayloadError,
    PhaseValue,
    RunePage,
    rune_templates_from_payload,
)
from console_log import TeeLog
from control_state import CommandBus, SharedControlState
from executor import MutationExecutor
from lcu_client import LCUAuthError, LCUHttpError, LCUTransportError
from planner import CycleOutcome, ReconciliationPlanner
from selection_plan import EpisodeState, SelectionPlan

IN_GAME_PHASES = (
    GameflowPhase.IN_PROGRESS,
    GameflowPhase.WAITING_FOR_STATS,
    GameflowPhase.PRE_END_OF_GAME,
    GameflowPhase.END_OF_GAME,
)

# ChampSelect reached straight from these cannot be the same episode (custom games skip Matchmaking)
_FRESH_EPISODE_FROM = (GameflowPhase.NONE, GameflowPhase.LOBBY, GameflowPhase.END_OF_GAME)


@dataclass
class PollResult:
    phase: PhaseValue
    snapshot: Optional[ChampSelectSnapshot] = None
    rune_pages: List[RunePage] = field(default_factory=list)


class SessionPoller:
    def __init__(self, client, log: Optional[TeeLog] = None):
        self.client = client
        self.log = log

    def poll(self, include_champ_select: bool = True, include_rune_pages: bool = False) -> PollResult:
        phase = self.client.get_gameflow_phase()
        if phase.phase is not GameflowPhase.CHAMP_SELECT or not include_champ_select:
            return PollResult(phase=phase)

        snapshot = ChampSelectSnapshot.from_payload(self.client.get_champ_select_session())
        pages = self._rune_pages() if include_rune_pages else []
        return PollResult(phase=phase, snapshot=snapshot, rune_pages=pages)

    def _rune_pages(self) -> List[RunePage]:
        # perks trouble must never hold back the ban or the pick
        try:
            return rune_templates_from_payload(self.client.list_rune_pages(), count=2)
        except (LCUHttpError, PayloadError) as e:
            if self.log is not None:
                self.log.warn(f"rune pages unavailable this cycle: {e}")
            return []


@dataclass
class PhaseTimings:
    idle: float = 1.0
    lobby: float = 2.0
    matchmaking: float = 0.5
    ready_check: float = 0.5
    champ_select: float = 0.0
    in_progress: float = 20.0
    waiting_for_stats: float = 10.0
    pre_end_of_game: float = 5.0
    end_of_game: float = 5.0
    unknown: float = 1.0


class PhaseDispatcher:
    """
    Switch over the polled gameflow phase.

    Each call decides from the phase it is given plus the episode flags, so
    seeing the same phase twice never repeats a mutation.
    """

    def __init__(
        self,
        planner: ReconciliationPlanner,
        executor: MutationExecutor,
        control: SharedControlState,
        plan: SelectionPlan,
        episode: EpisodeState,
        log: TeeLog,
        timings: Optional[PhaseTimings] = None,
    ):
        self.planner = planner
        self.executor = executor
        self.control = control
        self.plan = plan
        self.episode = episode
        self.log = log
        self.timings = timings or PhaseTimings()
        self.last_phase: Optional[PhaseValue] = None
        self.last_outcome: Optional[CycleOutcome] = None
        self._search_step = 0
        self._accept_off_reported = False

    @property
    def in_champ_select(self) -> bool:
        return self.last_phase is not None and self.last_phase.phase is GameflowPhase.CHAMP_SELECT

    def dispatch(self, result: PollResult) -> float:
        phase = result.phase
        prev = self.last_phase
        self.last_phase = phase
        changed = prev is None or prev.raw != phase.raw
        if changed:
            self._on_transition(prev, phase)

        p = phase.phase
        t = self.timings

        if p is GameflowPhase.NONE:
            return t.idle

        if p is GameflowPhase.LOBBY:
            return t.lobby

        if p is GameflowPhase.MATCHMAKING:
            if self.episode.dodge_detected:
                self.log.line("DODGE", "back in queue after an aborted champion select")
            self.episode.reset()
            self._accept_off_reported = False
            self._search_step += 1
            self.log.progress("Searching for a match", self._search_step)
            return t.matchmaking

        if p is GameflowPhase.READY_CHECK:
            self._on_ready_check()
            return t.ready_check

        if p is GameflowPhase.CHAMP_SELECT:
            self._on_champ_select(result)
            return t.champ_select

        if p is GameflowPhase.IN_PROGRESS:
            return t.in_progress
        if p is GameflowPhase.WAITING_FOR_STATS:
            return t.waiting_for_stats
        if p is GameflowPhase.PRE_END_OF_GAME:
            return t.pre_end_of_game
        if p is GameflowPhase.END_OF_GAME:
            return t.end_of_game

        # GameflowPhase.UNKNOWN: logged on transition, never acted on
        return t.unknown

    def _on_transition(self, prev: Optional[PhaseValue], phase: PhaseValue):
        before = prev.raw if prev is not None else "-"
        if phase.phase is GameflowPhase.UNKNOWN:
            self.log.warn(f"unrecognized gameflow phase '{phase.raw}' (from {before}); waiting")
        elif phase.phase is not GameflowPhase.MATCHMAKING:
            self.log.line("PHASE", f"{before} -> {phase.raw}")

        was_select = prev is not None and prev.phase is GameflowPhase.CHAMP_SELECT
        if was_select and phase.phase not in IN_GAME_PHASES + (GameflowPhase.UNKNOWN,):
            self.episode.dodge_detected = True

        if phase.phase is GameflowPhase.CHAMP_SELECT:
            if prev is None or prev.phase in _FRESH_EPISODE_FROM:
                self.episode.reset()
            self.last_outcome = None
            self.log.line("SELECT", f"champion select started: {self.plan.describe()}")

    def _on_ready_check(self):
        if self.episode.found_match:
            return
        if not self.control.auto_accept:
            if not self._accept_off_reported:
                self._accept_off_reported = True
                self.log.info("match found; auto-accept is OFF")
            return
        self.executor.accept_match()
        self.episode.found_match = True
        self.episode.accepted_this_episode = True

    def _on_champ_select(self, result: PollResult):
        if self.plan.is_empty or result.snapshot is None:
            return
        self.plan.rune_pages = tuple(result.rune_pages[:2]) or None
        outcome = self.planner.run_cycle(result.snapshot, self.plan, self.episode)
        if outcome is not self.last_outcome and outcome in (CycleOutcome.SKIPPED_PLANNING, CycleOutcome.SKIPPED_FINALIZED):
            self.log.line("SELECT", outcome.value.replace("_", " "))
        self.last_outcome = outcome


class AutopilotLoop:
    """
    The single cooperative reconciliation loop.

    Order per iteration: apply queued commands, poll, dispatch, sleep. The
    terminate request is honoured at the iteration boundary only.
    """

    def __init__(
        self,
        client,
        poller: SessionPoller,
        dispatcher: PhaseDispatcher,
        control: SharedControlState,
        bus: CommandBus,
        log: TeeLog,
        poll_interval: float = 0.1,
        sleep: Optional[Callable[[float], Any]] = None,
        on_plan_changed: Optional[Callable[[SelectionPlan], Any]] = None,
        base_backoff: float = 1.0,
        max_backoff: float = 30.0,
    ):
        self.client = client
        self.poller = poller
        self.dispatcher = dispatcher
        self.control = control
        self.bus = bus
        self.log = log
        self.poll_interval = poll_interval
        self.sleep = sleep or bus.terminate_requested.wait
        self.on_plan_changed = on_plan_changed
        self.base_backoff = base_backoff
        self.max_backoff = max_backoff
        self.failures = 0
        self.iterations = 0

    @property
    def should_stop(self) -> bool:
        return self.control.terminated

    def apply_commands(self):
        for cmd in self.bus.drain():
            changed, msg = self.control.apply(cmd, in_champ_select=self.dispatcher.in_champ_select)
            self.log.line("CMD", msg)
            if changed and self.on_plan_changed is not None:
                self.on_plan_changed(self.dispatcher.plan)

    def _backoff(self) -> float:
        wait = min(self.max_backoff, self.base_backoff * (2 ** max(0, self.failures - 1)))
        return wait * (0.85 + 0.30 * random.random())

    def run_once(self) -> float:
        """One iteration; returns how long to sleep before the next."""
        self.iterations += 1
        self.apply_commands()
        if self.should_stop:
            return 0.0

        plan = self.dispatcher.plan
        try:
            result = self.poller.poll(
                include_champ_select=not plan.is_empty,
                include_rune_pages=plan.rune_swap_enabled,
            )
            extra = self.dispatcher.dispatch(result)
        except LCUTransportError as e:
            self.failures += 1
            wait = self._backoff()
            rotated = self.client.refresh_credentials()
            self.log.warn(
                f"client unreachable ({e}); retry in {wait:.1f}s"
                + (" with new credentials" if rotated else "")
            )
            return wait
        except LCUAuthError as e:
            rotated = self.client.refresh_credentials()
            self.log.warn(f"auth rejected ({e.status}); credentials {'reloaded' if rotated else 'unchanged'}")
            return max(self.poll_interval, self.base_backoff)
        except LCUHttpError as e:
            # stale or rejected; the next snapshot shows what actually happened
            self.log.warn(f"request rejected: {e}")
            return self.poll_interval
        except PayloadError as e:
            self.log.warn(f"unexpected payload, skipping cycle: {e}")
            return self.poll_interval

        if self.failures:
            self.log.info("client reachable again")
        self.failures = 0
        phase = self.dispatcher.last_phase
        self.control.publish_status(
            phase.raw if phase else "None",
            self.dispatcher.episode,
            self.dispatcher.last_outcome.value if self.dispatcher.last_outcome else None,
        )
        return self.poll_interval + extra

    def run(self, max_iterations: Optional[int] = None):
        self.log.info("autopilot loop started")
        while not self.should_stop:
            wait = self.run_once()
            if self.should_stop:
                break
            if max_iterations is not None and self.iterations >= max_iterations:
                break
            if wait > 0:
                self.sleep(wait)
        self.log.info("autopilot loop stopped")
