"""Fake runtime and agents for exercising the mission core without ROS."""

from __future__ import annotations

import textwrap
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Union

import pytest

from rendezvous_mission.core import (
    Goal,
    GoalState,
    MarkerDetection,
    SensorPose,
    Waypoint,
    WorldCoordinate,
)
from rendezvous_mission.core.controller import MissionIO


class FakeLogger:
    def __init__(self) -> None:
        self.records: List[tuple] = []

    def _log(self, level: str, msg: str) -> None:
        self.records.append((level, msg))

    def info(self, msg: str) -> None:
        self._log("info", msg)

    def warn(self, msg: str) -> None:
        self._log("warn", msg)

    def error(self, msg: str) -> None:
        self._log("error", msg)

    def debug(self, msg: str) -> None:
        self._log("debug", msg)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [msg for lvl, msg in self.records if level is None or lvl == level]


class FakeRuntime:
    """Simulated clock; ``spin_once`` advances time and runs the registered hooks."""

    def __init__(self) -> None:
        self._logger = FakeLogger()
        self.clock = 0.0
        self.states: List[str] = []
        self.sleeps: List[float] = []
        self.hooks: List[Callable[[], None]] = []

    @property
    def logger(self) -> FakeLogger:
        return self._logger

    def now(self) -> float:
        return self.clock

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.clock += seconds

    def spin_once(self, timeout_s: float) -> None:
        self.clock += timeout_s
        for hook in list(self.hooks):
            hook()

    def publish_state(self, name: str) -> None:
        self.states.append(name)


class ScriptedGoalClient:
    """Goal client whose goals read ACTIVE on the first poll and then resolve to a scripted outcome.

    With ``hold`` set a goal stays ACTIVE until ``finish`` is called.
    """

    def __init__(
        self,
        name: str,
        events: List[tuple],
        outcomes: Iterable[GoalState] = (),
        server_up: Iterable[bool] = (),
        hold: bool = False,
    ):
        self.name = name
        self.events = events
        self.sent: List[Goal] = []
        self._outcomes: Deque[GoalState] = deque(outcomes)
        self._server_up: Deque[bool] = deque(server_up)
        self._state = GoalState.PENDING
        self._pending_outcome = GoalState.SUCCEEDED
        self._polls = 0
        self.hold = hold
        self.cancels = 0

    def wait_for_server(self, timeout_s: float) -> bool:
        return self._server_up.popleft() if self._server_up else True

    def send_goal(self, goal: Goal) -> None:
        self.sent.append(goal)
        self.events.append((self.name, "send", goal.x, goal.y))
        self._pending_outcome = self._outcomes.popleft() if self._outcomes else GoalState.SUCCEEDED
        self._state = GoalState.ACTIVE
        self._polls = 0

    def get_state(self) -> GoalState:
        if self._state is GoalState.ACTIVE and not self.hold:
            self._polls += 1
            if self._polls > 1:
                self._state = self._pending_outcome
                self.events.append((self.name, self._state.name))
        return self._state

    def cancel(self) -> None:
        self.cancels += 1
        self.events.append((self.name, "cancel"))
        self._state = GoalState.ABORTED

    def finish(self, state: GoalState) -> None:
        self._state = state


class FakeDetectionSource:
    """Delivers one queued detection per pump while subscribed."""

    def __init__(self, scans: Iterable[Iterable[MarkerDetection]] = ()) -> None:
        self._scans: Deque[List[MarkerDetection]] = deque(list(s) for s in scans)
        self._queue: Deque[MarkerDetection] = deque()
        self.callback = None
        self.subscribe_count = 0
        self.unsubscribe_count = 0

    @property
    def subscribed(self) -> bool:
        return self.callback is not None

    def subscribe(self, callback) -> None:
        self.callback = callback
        self.subscribe_count += 1
        self._queue = deque(self._scans.popleft() if self._scans else [])

    def unsubscribe(self) -> None:
        self.callback = None
        self.unsubscribe_count += 1

    def emit(self, detection: MarkerDetection) -> None:
        if self.callback is not None:
            self.callback(detection)

    def pump(self) -> None:
        if self.callback is not None and self._queue:
            self.callback(self._queue.popleft())


class FakeVelocitySink:
    def __init__(self) -> None:
        self.commands: List[float] = []

    def publish_angular(self, angular_z: float) -> None:
        self.commands.append(angular_z)


class FakeTransformLookup:
    """Returns scripted outcomes in order; exceptions in the script are raised."""

    def __init__(self, outcomes: Iterable[Union[WorldCoordinate, Exception]] = ()) -> None:
        self._outcomes: Deque[Union[WorldCoordinate, Exception]] = deque(outcomes)
        self.calls: List[tuple] = []

    def push(self, outcome: Union[WorldCoordinate, Exception]) -> None:
        self._outcomes.append(outcome)

    def lookup(self, source_frame, target_frame, at_time, timeout_s) -> WorldCoordinate:
        self.calls.append((source_frame, target_frame, at_time, timeout_s))
        if not self._outcomes:
            raise LookupError(f"{source_frame} not in tree")
        outcome = self._outcomes.popleft()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeBroadcaster:
    def __init__(self) -> None:
        self.broadcasts: List[MarkerDetection] = []

    def broadcast(self, detection: MarkerDetection) -> None:
        self.broadcasts.append(detection)


def detection(marker_id: int, x: float = 1.0, observed_at: float = 0.0) -> MarkerDetection:
    return MarkerDetection(marker_id=marker_id, sensor_pose=SensorPose(x, 0.0, 0.5), observed_at=observed_at)


def world(x: float, y: float) -> WorldCoordinate:
    return WorldCoordinate(x, y, 0.0, frame_id="map")


def write_mission(tmp_path, body: str):
    path = tmp_path / "mission.yaml"
    path.write_text(textwrap.dedent(body))
    return path


MISSION_YAML = """
api_version: 1
world_frame: map
aruco_lookup_locations:
  target_1: [1.0, 1.0]
  target_2: [2.0, 2.0]
  target_3: [3.0, 3.0]
  target_4: [4.0, 4.0]
transforms:
  backoff_s: 1.0
dispatch:
  server_wait_s: 1.0
"""


class MissionRig:
    """Bundle of fakes wired the way the node wires the ROS adapters."""

    def __init__(self) -> None:
        self.runtime = FakeRuntime()
        self.events: List[tuple] = []
        self.explorer = ScriptedGoalClient("explorer", self.events)
        self.follower = ScriptedGoalClient("follower", self.events)
        self.detections = FakeDetectionSource()
        self.velocity = FakeVelocitySink()
        self.transforms = FakeTransformLookup()
        self.broadcaster = FakeBroadcaster()
        self.runtime.hooks.append(self.detections.pump)

    def io(self, config=None) -> MissionIO:
        return MissionIO(
            explorer=self.explorer,
            follower=self.follower,
            detections=self.detections,
            velocity=self.velocity,
            transforms=self.transforms,
            broadcaster=self.broadcaster,
        )

    def script_scans(self, *scans: Iterable[MarkerDetection]) -> None:
        self.detections = FakeDetectionSource(scans)
        self.runtime.hooks[:] = [self.detections.pump]


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def rig() -> MissionRig:
    return MissionRig()


@pytest.fixture
def mission_file(tmp_path):
    return write_mission(tmp_path, MISSION_YAML)


@pytest.fixture
def waypoints() -> List[Waypoint]:
    return [Waypoint(1.0, 1.0), Waypoint(2.0, 2.0), Waypoint(3.0, 3.0), Waypoint(4.0, 4.0)]
