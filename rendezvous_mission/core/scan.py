"""Rotate-and-watch sub-task that commits the first qualifying marker detection."""

from __future__ import annotations

import threading
from enum import Enum, auto
from typing import Callable, Optional, Protocol

from .errors import FrameUnavailable, ScanTimeout
from .frames import FrameResolver, MarkerFrameBroadcasterProto
from .model import CommittedDetection, MarkerDetection
from .runtime import CancellationToken, MissionRuntime

DetectionCallback = Callable[[MarkerDetection], None]


class DetectionSourceProto(Protocol):
    def subscribe(self, callback: DetectionCallback) -> None: ...

    def unsubscribe(self) -> None: ...


class VelocitySinkProto(Protocol):
    def publish_angular(self, angular_z: float) -> None: ...


class ScanState(Enum):
    IDLE = auto()
    SCANNING = auto()
    COMMITTED = auto()


class DetectionLatch:
    """One-shot hand-off from the detection callback to the scan loop.

    The first ``offer`` wins; later offers are rejected until ``reset``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._detection: Optional[MarkerDetection] = None

    def offer(self, detection: MarkerDetection) -> bool:
        with self._lock:
            if self._detection is not None:
                return False
            self._detection = detection
            return True

    def peek(self) -> Optional[MarkerDetection]:
        with self._lock:
            return self._detection

    def reset(self) -> None:
        with self._lock:
            self._detection = None


class MarkerScanController:
    """Spin the explorer in place until a marker closer than the threshold is seen.

    One invocation runs ``begin()`` followed by ``step()`` calls until a
    ``CommittedDetection`` is returned. ``on_detection`` is the callback handed
    to the detection source and may run on another thread; it only ever talks
    to the scan loop through the ``DetectionLatch``.
    """

    def __init__(
        self,
        runtime: MissionRuntime,
        source: DetectionSourceProto,
        velocity: VelocitySinkProto,
        resolver: FrameResolver,
        *,
        broadcaster: Optional[MarkerFrameBroadcasterProto] = None,
        marker_frame: str = "marker_frame",
        world_frame: str = "map",
        distance_threshold: float = 3.0,
        angular_speed: float = 0.1,
        timeout_s: Optional[float] = None,
        max_resolve_attempts: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        self._runtime = runtime
        self._source = source
        self._velocity = velocity
        self._resolver = resolver
        self._broadcaster = broadcaster
        self._marker_frame = marker_frame
        self._world_frame = world_frame
        self._distance_threshold = distance_threshold
        self._angular_speed = angular_speed
        self._timeout_s = timeout_s
        self._max_resolve_attempts = max_resolve_attempts
        self._cancel = cancel or CancellationToken()
        self._latch = DetectionLatch()
        self._state = ScanState.IDLE
        self._state_lock = threading.Lock()
        self._started_at: Optional[float] = None
        self._subscribed = False

    @property
    def state(self) -> ScanState:
        with self._state_lock:
            return self._state

    def accepts(self, detection: MarkerDetection) -> bool:
        return detection.sensor_pose.x < self._distance_threshold

    def begin(self) -> None:
        self._latch.reset()
        self._set_state(ScanState.SCANNING)
        self._started_at = self._runtime.now()
        self._runtime.logger.info("Searching...")
        self._source.subscribe(self.on_detection)
        self._subscribed = True

    def on_detection(self, detection: MarkerDetection) -> None:
        if self.state is not ScanState.SCANNING:
            return
        if not self.accepts(detection):
            self._runtime.logger.debug(
                "Ignoring marker %d at %.2f m (threshold %.2f m)"
                % (detection.marker_id, detection.sensor_pose.x, self._distance_threshold)
            )
            return
        if self._latch.offer(detection):
            self._runtime.logger.info(f"Marker found! Marker id is : {detection.marker_id}")

    def step(self) -> Optional[CommittedDetection]:
        """Run one scan iteration; return the committed detection once available."""

        if self.state is not ScanState.SCANNING:
            raise RuntimeError("step() called outside of an active scan")
        self._cancel.raise_if_cancelled()
        detection = self._latch.peek()
        if detection is None:
            if self._timed_out():
                self.abort()
                raise ScanTimeout(f"No marker within {self._distance_threshold:.1f} m after {self._timeout_s:.1f}s")
            self._velocity.publish_angular(self._angular_speed)
            return None

        self._set_state(ScanState.COMMITTED)
        self._stop()
        coordinate = self._resolve(detection)
        return CommittedDetection(marker_id=detection.marker_id, world_coordinate=coordinate)

    def scan(self, period_s: float = 0.1) -> CommittedDetection:
        """Blocking helper: begin, then step and pump events until a marker is committed."""

        self.begin()
        try:
            while True:
                committed = self.step()
                if committed is not None:
                    return committed
                self._runtime.spin_once(period_s)
        except BaseException:
            self.abort()
            raise

    def abort(self) -> None:
        """Stop rotating and drop the subscription if a scan is abandoned."""

        if self._subscribed:
            self._stop()
        if self.state is ScanState.SCANNING:
            self._set_state(ScanState.IDLE)

    # ------------------------------------------------------------------
    # Helpers

    def _resolve(self, detection: MarkerDetection):
        attempts = 0
        while True:
            self._cancel.raise_if_cancelled()
            if self._broadcaster is not None:
                self._broadcaster.broadcast(detection)
            try:
                return self._resolver.resolve(self._marker_frame, self._world_frame)
            except FrameUnavailable:
                attempts += 1
                if self._max_resolve_attempts is not None and attempts >= self._max_resolve_attempts:
                    raise
                self._runtime.logger.info(
                    f"Retrying position lookup for marker {detection.marker_id} (attempt {attempts + 1})"
                )

    def _stop(self) -> None:
        self._velocity.publish_angular(0.0)
        if self._subscribed:
            self._source.unsubscribe()
            self._subscribed = False

    def _timed_out(self) -> bool:
        if self._timeout_s is None or self._started_at is None:
            return False
        return (self._runtime.now() - self._started_at) >= self._timeout_s

    def _set_state(self, state: ScanState) -> None:
        with self._state_lock:
            self._state = state


__all__ = [
    "DetectionCallback",
    "DetectionSourceProto",
    "VelocitySinkProto",
    "ScanState",
    "DetectionLatch",
    "MarkerScanController",
]
