"""Two-phase state machine driving the explorer and then the follower (ROS-free)."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import List, Optional, Sequence, Tuple

from .dispatcher import GoalDispatcher
from .errors import GoalAborted, MissionCancelled, MissionError
from .model import AgentRoute, CommittedDetection, Goal, GoalState, MissionPhase, Waypoint
from .rendezvous import RendezvousPlanner
from .runtime import CancellationToken, LoggerLike, MissionRuntime
from .scan import MarkerScanController

STATE_MISSION_COMPLETE = "MISSION_COMPLETE"
STATE_MISSION_FAILED = "MISSION_FAILED"


class ExitCode(IntEnum):
    SUCCESS = 0
    MISSION_FAILED = 1
    INVALID_CONFIGURATION = 2
    CANCELLED = 3


@dataclasses.dataclass
class MissionContext:
    runtime: MissionRuntime
    waypoints: Sequence[Waypoint]
    explorer: GoalDispatcher
    follower: GoalDispatcher
    explorer_route: AgentRoute
    follower_route: AgentRoute
    scanner: MarkerScanController
    planner: RendezvousPlanner
    cancel: CancellationToken = dataclasses.field(default_factory=CancellationToken)
    max_goal_retries: int = 1

    def __post_init__(self) -> None:
        if len(self.explorer_route) != len(self.waypoints):
            raise ValueError("Explorer route must hold one slot per waypoint")
        self.phase = MissionPhase.EXPLORING
        self.current_index = 0
        self.follower_cursor = 0
        self.follower_entries: List[Tuple[Optional[int], Goal]] = []
        self.committed: List[CommittedDetection] = []
        self.failure: Optional[MissionError] = None

    # ------------------------------------------------------------------
    # Convenience helpers

    @property
    def logger(self) -> LoggerLike:
        return self.runtime.logger

    def now(self) -> float:
        return self.runtime.now()

    def publish_state(self, name: str) -> None:
        self.runtime.publish_state(name)

    @property
    def current_waypoint(self) -> Waypoint:
        return self.waypoints[self.current_index]

    def explorer_entry(self) -> Tuple[Optional[int], Goal]:
        if self.current_index < len(self.explorer_route):
            goal = self.explorer_route.slot(self.current_index)
            if goal is None:  # pragma: no cover - routes are built fully populated
                raise MissionError(f"Explorer route slot {self.current_index} is empty")
            return self.current_index, goal
        return None, self.explorer_route.terminal

    def follower_entry(self) -> Tuple[Optional[int], Goal]:
        return self.follower_entries[self.follower_cursor]

    def begin_following(self) -> None:
        for slot in range(len(self.follower_route)):
            if self.follower_route.slot(slot) is None:
                self.logger.warn(f"Follower slot {slot} has no derived goal; skipping it")
        self.follower_entries = list(self.follower_route.entries())
        self.follower_cursor = 0
        self.phase = MissionPhase.FOLLOWING
        self.logger.info(
            "Explorer route complete; follower starts %d goals" % len(self.follower_entries)
        )


class State(ABC):
    """Lifecycle interface for coordinator states. Persistent data lives in MissionContext."""

    def enter(self, ctx: MissionContext) -> None:  # pragma: no cover - default noop
        pass

    @abstractmethod
    def tick(self, ctx: MissionContext) -> Optional[type["State"]]:
        """Return the next state class or None to remain."""
        raise NotImplementedError

    def exit(self, ctx: MissionContext) -> None:  # pragma: no cover - default noop
        pass


class _GoalTransitState(State):
    """Dispatch one route entry and wait for it, re-sending aborted goals within budget."""

    def __init__(self) -> None:
        self._attempts = 0
        self._slot: Optional[int] = None
        self._goal: Optional[Goal] = None
        self._index = 0

    @abstractmethod
    def _dispatcher(self, ctx: MissionContext) -> GoalDispatcher: ...

    @abstractmethod
    def _route(self, ctx: MissionContext) -> AgentRoute: ...

    @abstractmethod
    def _entry(self, ctx: MissionContext) -> Tuple[Optional[int], Goal]: ...

    @abstractmethod
    def _on_success(self, ctx: MissionContext) -> Optional[type[State]]: ...

    def enter(self, ctx: MissionContext) -> None:
        self._slot, self._goal = self._entry(ctx)
        # the terminal goal is numbered after the last slot
        self._index = len(self._route(ctx)) if self._slot is None else self._slot
        self._send(ctx)

    def tick(self, ctx: MissionContext) -> Optional[type[State]]:
        dispatcher = self._dispatcher(ctx)
        state = dispatcher.poll()
        if state is GoalState.SUCCEEDED:
            ctx.logger.info(f"Hooray, {dispatcher.agent} reached goal")
            return self._on_success(ctx)
        if state is GoalState.ABORTED:
            if self._attempts > ctx.max_goal_retries:
                raise GoalAborted(dispatcher.agent, self._index, self._attempts)
            ctx.logger.warn(
                "%s aborted goal #%d; re-sending (attempt %d of %d)"
                % (dispatcher.agent, self._index, self._attempts + 1, ctx.max_goal_retries + 1)
            )
            self._send(ctx)
        return None

    def _send(self, ctx: MissionContext) -> None:
        assert self._goal is not None
        goal = dataclasses.replace(self._goal, stamp=ctx.now())
        if self._slot is not None:
            self._route(ctx).mark_dispatched(self._slot)
        self._dispatcher(ctx).dispatch(goal)
        self._attempts += 1


class ExplorerTransitState(_GoalTransitState):
    def _dispatcher(self, ctx: MissionContext) -> GoalDispatcher:
        return ctx.explorer

    def _route(self, ctx: MissionContext) -> AgentRoute:
        return ctx.explorer_route

    def _entry(self, ctx: MissionContext) -> Tuple[Optional[int], Goal]:
        return ctx.explorer_entry()

    def _on_success(self, ctx: MissionContext) -> Optional[type[State]]:
        if ctx.current_index < len(ctx.waypoints):
            return MarkerScanState
        ctx.begin_following()
        return FollowerTransitState


class MarkerScanState(State):
    def enter(self, ctx: MissionContext) -> None:
        ctx.logger.info(
            "Scanning for markers at waypoint %d/%d" % (ctx.current_index + 1, len(ctx.waypoints))
        )
        ctx.scanner.begin()

    def tick(self, ctx: MissionContext) -> Optional[type[State]]:
        committed = ctx.scanner.step()
        if committed is None:
            return None
        ctx.committed.append(committed)
        ctx.planner.derive(committed, ctx.current_waypoint)
        ctx.current_index += 1
        return ExplorerTransitState

    def exit(self, ctx: MissionContext) -> None:
        ctx.scanner.abort()


class FollowerTransitState(_GoalTransitState):
    def _dispatcher(self, ctx: MissionContext) -> GoalDispatcher:
        return ctx.follower

    def _route(self, ctx: MissionContext) -> AgentRoute:
        return ctx.follower_route

    def _entry(self, ctx: MissionContext) -> Tuple[Optional[int], Goal]:
        return ctx.follower_entry()

    def _on_success(self, ctx: MissionContext) -> Optional[type[State]]:
        ctx.follower_cursor += 1
        if ctx.follower_cursor < len(ctx.follower_entries):
            return FollowerTransitState
        ctx.phase = MissionPhase.DONE
        return MissionCompleteState


class MissionCompleteState(State):
    def enter(self, ctx: MissionContext) -> None:
        ctx.logger.info("Search and Rescue ended successfully")
        ctx.publish_state(STATE_MISSION_COMPLETE)

    def tick(self, ctx: MissionContext) -> Optional[type[State]]:
        return None


class MissionFailedState(State):
    def enter(self, ctx: MissionContext) -> None:
        ctx.logger.error(f"Mission failed: {ctx.failure}")
        ctx.publish_state(STATE_MISSION_FAILED)

    def tick(self, ctx: MissionContext) -> Optional[type[State]]:
        return None


class MissionCoordinator:
    """Drives the mission one cooperative ``tick`` at a time.

    The first tick enters the explorer's first goal. A ``MissionError`` raised
    by any component moves the mission to ``MissionPhase.FAILED``.
    """

    def __init__(self, ctx: MissionContext, *, loop_period_s: float = 0.1) -> None:
        self._ctx = ctx
        self._loop_period_s = loop_period_s
        self._state: Optional[State] = None

    @property
    def context(self) -> MissionContext:
        return self._ctx

    @property
    def phase(self) -> MissionPhase:
        return self._ctx.phase

    @property
    def finished(self) -> bool:
        return self._ctx.phase.is_terminal

    @property
    def state_name(self) -> Optional[str]:
        return None if self._state is None else self._state.__class__.__name__

    @property
    def exit_code(self) -> Optional[ExitCode]:
        if self._ctx.phase is MissionPhase.DONE:
            return ExitCode.SUCCESS
        if self._ctx.phase is MissionPhase.FAILED:
            if isinstance(self._ctx.failure, MissionCancelled):
                return ExitCode.CANCELLED
            return ExitCode.MISSION_FAILED
        return None

    def tick(self) -> None:
        if self.finished:
            return
        ctx = self._ctx
        try:
            ctx.cancel.raise_if_cancelled()
            if self._state is None:
                ctx.logger.info(
                    "Mission started: %d waypoints, explorer first" % len(ctx.waypoints)
                )
                self._transition(ExplorerTransitState)
                return
            next_state_cls = self._state.tick(ctx)
            if next_state_cls is not None:
                self._transition(next_state_cls)
        except MissionError as exc:
            self._fail(exc)

    def run(self, max_ticks: Optional[int] = None) -> MissionPhase:
        """Tick until the mission ends, pumping runtime events between ticks."""

        ticks = 0
        while not self.finished:
            self.tick()
            ticks += 1
            if self.finished:
                break
            if max_ticks is not None and ticks >= max_ticks:
                break
            self._ctx.runtime.spin_once(self._loop_period_s)
        return self.phase

    def cancel(self, reason: str = "cancelled") -> None:
        self._ctx.cancel.cancel(reason)

    def _transition(self, state_cls: type[State]) -> None:
        if self._state is not None:
            self._state.exit(self._ctx)
        self._state = state_cls()
        self._ctx.publish_state(self._state.__class__.__name__)
        self._state.enter(self._ctx)

    def _fail(self, exc: MissionError) -> None:
        ctx = self._ctx
        ctx.failure = exc
        ctx.phase = MissionPhase.FAILED
        if self._state is not None:
            self._state.exit(ctx)
        for dispatcher in (ctx.explorer, ctx.follower):
            dispatcher.cancel()
        self._state = MissionFailedState()
        self._state.enter(ctx)


__all__ = [
    "ExitCode",
    "MissionContext",
    "MissionCoordinator",
    "State",
    "ExplorerTransitState",
    "MarkerScanState",
    "FollowerTransitState",
    "MissionCompleteState",
    "MissionFailedState",
    "STATE_MISSION_COMPLETE",
    "STATE_MISSION_FAILED",
]
