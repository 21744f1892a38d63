"""Mission controller that wires a runtime and its adapters with the coordinator."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass
from typing import Callable, Optional

from .config import MissionConfig, load_config
from .coordinator import ExitCode, MissionContext, MissionCoordinator
from .dispatcher import GoalClientProto, GoalDispatcher
from .errors import InvalidConfiguration
from .frames import FrameResolver, MarkerFrameBroadcasterProto, TransformLookupProto
from .model import AgentRoute, Goal, MissionPhase
from .rendezvous import RendezvousPlanner
from .runtime import CancellationToken, MissionRuntime
from .scan import DetectionSourceProto, MarkerScanController, VelocitySinkProto


@dataclass
class MissionIO:
    """External collaborators the mission talks to."""

    explorer: GoalClientProto
    follower: GoalClientProto
    detections: DetectionSourceProto
    velocity: VelocitySinkProto
    transforms: TransformLookupProto
    broadcaster: Optional[MarkerFrameBroadcasterProto] = None


def build_coordinator(
    runtime: MissionRuntime,
    config: MissionConfig,
    io: MissionIO,
    *,
    cancel: Optional[CancellationToken] = None,
) -> MissionCoordinator:
    cancel = cancel or CancellationToken()
    frame = config.world_frame
    stamp = runtime.now()

    explorer_route = AgentRoute.from_goals(
        config.explorer.name,
        [Goal.at(wp, frame, stamp) for wp in config.waypoints],
        Goal.at(config.explorer.home, frame, stamp),
    )
    follower_route = AgentRoute(
        config.follower.name,
        len(config.waypoints),
        Goal.at(config.follower.home, frame, stamp),
    )

    dispatch = config.dispatch
    explorer = GoalDispatcher(
        config.explorer.name,
        io.explorer,
        runtime,
        server_wait_s=dispatch.server_wait_s,
        max_server_waits=dispatch.max_server_waits,
        cancel=cancel,
    )
    follower = GoalDispatcher(
        config.follower.name,
        io.follower,
        runtime,
        server_wait_s=dispatch.server_wait_s,
        max_server_waits=dispatch.max_server_waits,
        cancel=cancel,
    )

    resolver = FrameResolver(
        io.transforms,
        runtime,
        timeout_s=config.transforms.timeout_s,
        backoff_s=config.transforms.backoff_s,
    )
    scanner = MarkerScanController(
        runtime,
        io.detections,
        io.velocity,
        resolver,
        broadcaster=io.broadcaster,
        marker_frame=config.scan.marker_frame,
        world_frame=frame,
        distance_threshold=config.scan.distance_threshold,
        angular_speed=config.scan.angular_speed,
        timeout_s=config.scan.timeout_s,
        max_resolve_attempts=config.transforms.max_attempts,
        cancel=cancel,
    )
    planner = RendezvousPlanner(follower_route, config.marker_slots, runtime, world_frame=frame)

    ctx = MissionContext(
        runtime=runtime,
        waypoints=list(config.waypoints),
        explorer=explorer,
        follower=follower,
        explorer_route=explorer_route,
        follower_route=follower_route,
        scanner=scanner,
        planner=planner,
        cancel=cancel,
        max_goal_retries=dispatch.max_goal_retries,
    )
    return MissionCoordinator(ctx, loop_period_s=config.loop_period_s)


MissionIOFactory = Callable[[MissionConfig], MissionIO]


class MissionController:
    """Loads the mission file, asks `io_factory` for adapters matching it and builds the coordinator."""

    def __init__(
        self,
        runtime: MissionRuntime,
        mission_path,
        io_factory: MissionIOFactory,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        self._runtime = runtime
        path = pathlib.Path(mission_path)
        try:
            self._config: MissionConfig = load_config(path)
        except InvalidConfiguration as exc:
            runtime.logger.error(f"Mission configuration error: {exc}")
            raise
        self._cancel = cancel or CancellationToken()
        self._coordinator = build_coordinator(runtime, self._config, io_factory(self._config), cancel=self._cancel)

    @property
    def config(self) -> MissionConfig:
        return self._config

    @property
    def coordinator(self) -> MissionCoordinator:
        return self._coordinator

    @property
    def finished(self) -> bool:
        return self._coordinator.finished

    @property
    def phase(self) -> MissionPhase:
        return self._coordinator.phase

    @property
    def exit_code(self) -> Optional[ExitCode]:
        return self._coordinator.exit_code

    def tick(self) -> None:
        self._coordinator.tick()

    def cancel(self, reason: str = "cancelled") -> None:
        self._cancel.cancel(reason)
