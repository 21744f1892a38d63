"""Core mission logic (ROS-agnostic)."""

from .bounds import AxisBounds, WorldBounds
from .config import (
    AgentConfig,
    DispatchConfig,
    MissionConfig,
    ScanConfig,
    TransformConfig,
    load_config,
    parse_config,
)
from .controller import MissionController, MissionIO, MissionIOFactory, build_coordinator
from .coordinator import ExitCode, MissionContext, MissionCoordinator
from .dispatcher import GoalDispatcher
from .errors import (
    AgentUnreachable,
    FrameUnavailable,
    GoalAborted,
    GoalInFlight,
    InvalidConfiguration,
    InvalidMarkerId,
    MissionCancelled,
    MissionError,
    RouteLocked,
    ScanTimeout,
)
from .frames import FrameResolver
from .model import (
    AgentRoute,
    CommittedDetection,
    Goal,
    GoalState,
    MarkerDetection,
    MissionPhase,
    SensorPose,
    Waypoint,
    WorldCoordinate,
)
from .rendezvous import RendezvousPlanner, midpoint_goal
from .runtime import CancellationToken
from .scan import DetectionLatch, MarkerScanController, ScanState

__all__ = [
    "AxisBounds",
    "WorldBounds",
    "AgentConfig",
    "DispatchConfig",
    "MissionConfig",
    "ScanConfig",
    "TransformConfig",
    "load_config",
    "parse_config",
    "MissionController",
    "MissionIO",
    "MissionIOFactory",
    "build_coordinator",
    "ExitCode",
    "MissionContext",
    "MissionCoordinator",
    "GoalDispatcher",
    "AgentUnreachable",
    "FrameUnavailable",
    "GoalAborted",
    "GoalInFlight",
    "InvalidConfiguration",
    "InvalidMarkerId",
    "MissionCancelled",
    "MissionError",
    "RouteLocked",
    "ScanTimeout",
    "FrameResolver",
    "AgentRoute",
    "CommittedDetection",
    "Goal",
    "GoalState",
    "MarkerDetection",
    "MissionPhase",
    "SensorPose",
    "Waypoint",
    "WorldCoordinate",
    "RendezvousPlanner",
    "midpoint_goal",
    "CancellationToken",
    "DetectionLatch",
    "MarkerScanController",
    "ScanState",
]
