"""Value types exchanged between the mission components (ROS-free)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional, Set, Tuple

from .errors import RouteLocked

Quaternion = Tuple[float, float, float, float]

IDENTITY_ORIENTATION: Quaternion = (0.0, 0.0, 0.0, 1.0)


class GoalState(Enum):
    """Progress of a dispatched navigation goal."""

    PENDING = auto()
    ACTIVE = auto()
    SUCCEEDED = auto()
    ABORTED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (GoalState.SUCCEEDED, GoalState.ABORTED)


class MissionPhase(Enum):
    EXPLORING = auto()
    FOLLOWING = auto()
    DONE = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (MissionPhase.DONE, MissionPhase.FAILED)


@dataclass(frozen=True)
class Waypoint:
    x: float
    y: float


@dataclass(frozen=True)
class Goal:
    """A single navigation target for one agent."""

    frame_id: str
    x: float
    y: float
    orientation: Quaternion = IDENTITY_ORIENTATION
    stamp: float = 0.0

    @classmethod
    def at(cls, waypoint: Waypoint, frame_id: str, stamp: float = 0.0) -> "Goal":
        return cls(frame_id=frame_id, x=float(waypoint.x), y=float(waypoint.y), stamp=stamp)


@dataclass(frozen=True)
class SensorPose:
    """Marker pose in the camera frame as reported by the detector."""

    x: float
    y: float
    z: float
    qx: float = 0.0
    qy: float = 0.0
    qz: float = 0.0
    qw: float = 1.0


@dataclass(frozen=True)
class MarkerDetection:
    marker_id: int
    sensor_pose: SensorPose
    observed_at: float = 0.0


@dataclass(frozen=True)
class WorldCoordinate:
    x: float
    y: float
    z: float = 0.0
    frame_id: str = "map"


@dataclass(frozen=True)
class CommittedDetection:
    """A marker accepted by the distance filter and resolved into the world frame."""

    marker_id: int
    world_coordinate: WorldCoordinate


class AgentRoute:
    """Ordered goal slots for one agent followed by a fixed terminal goal.

    Slots may stay empty (``None``) until they are filled, and a slot can be
    reassigned only while it has not been dispatched.
    """

    def __init__(self, agent: str, slot_count: int, terminal: Goal) -> None:
        if slot_count < 0:
            raise ValueError("slot_count must be non-negative")
        self.agent = agent
        self.terminal = terminal
        self._slots: List[Optional[Goal]] = [None] * slot_count
        self._dispatched: Set[int] = set()

    @classmethod
    def from_goals(cls, agent: str, goals: List[Goal], terminal: Goal) -> "AgentRoute":
        route = cls(agent, len(goals), terminal)
        for slot, goal in enumerate(goals):
            route.assign(slot, goal)
        return route

    def __len__(self) -> int:
        return len(self._slots)

    def slot(self, index: int) -> Optional[Goal]:
        return self._slots[index]

    def assign(self, index: int, goal: Goal) -> Optional[Goal]:
        """Store ``goal`` in slot ``index`` and return the goal it replaced."""

        if not 0 <= index < len(self._slots):
            raise IndexError(f"{self.agent} route has no slot {index}")
        if index in self._dispatched:
            raise RouteLocked(f"{self.agent} route slot {index} was already dispatched")
        previous = self._slots[index]
        self._slots[index] = goal
        return previous

    def mark_dispatched(self, index: int) -> None:
        self._dispatched.add(index)

    def filled_slots(self) -> List[int]:
        return [idx for idx, goal in enumerate(self._slots) if goal is not None]

    def entries(self) -> Iterator[Tuple[Optional[int], Goal]]:
        """Yield ``(slot, goal)`` for filled slots in order, then ``(None, terminal)``."""

        for idx, goal in enumerate(self._slots):
            if goal is not None:
                yield idx, goal
        yield None, self.terminal


__all__ = [
    "GoalState",
    "MissionPhase",
    "Waypoint",
    "Goal",
    "SensorPose",
    "MarkerDetection",
    "WorldCoordinate",
    "CommittedDetection",
    "AgentRoute",
    "IDENTITY_ORIENTATION",
]
