"""Resolve a named frame into world coordinates through an external transform tree."""

from __future__ import annotations

from typing import Optional, Protocol

from .errors import FrameUnavailable
from .model import MarkerDetection, WorldCoordinate
from .runtime import MissionRuntime


class TransformLookupProto(Protocol):
    def lookup(
        self,
        source_frame: str,
        target_frame: str,
        at_time: Optional[float],
        timeout_s: float,
    ) -> WorldCoordinate:
        """Return the origin of ``source_frame`` expressed in ``target_frame``.

        Implementations raise ``LookupError`` or ``TimeoutError`` when the
        transform cannot be resolved in time.
        """
        ...


class MarkerFrameBroadcasterProto(Protocol):
    def broadcast(self, detection: MarkerDetection) -> None: ...


class FrameResolver:
    def __init__(
        self,
        lookup: TransformLookupProto,
        runtime: MissionRuntime,
        *,
        timeout_s: float = 4.0,
        backoff_s: float = 1.0,
    ) -> None:
        self._lookup = lookup
        self._runtime = runtime
        self._timeout_s = timeout_s
        self._backoff_s = backoff_s

    def resolve(
        self,
        source_frame: str,
        target_frame: str,
        at_time: Optional[float] = None,
        timeout_s: Optional[float] = None,
    ) -> WorldCoordinate:
        """Look up ``source_frame`` in ``target_frame``; ``at_time=None`` asks for the latest transform.

        On failure the resolver sleeps for the backoff interval and raises
        ``FrameUnavailable``; retrying is left to the caller.
        """

        timeout = self._timeout_s if timeout_s is None else timeout_s
        try:
            coordinate = self._lookup.lookup(source_frame, target_frame, at_time, timeout)
        except (LookupError, TimeoutError) as exc:
            self._runtime.logger.warn(f"{exc}")
            if self._backoff_s > 0.0:
                self._runtime.sleep(self._backoff_s)
            raise FrameUnavailable(source_frame, target_frame, str(exc)) from exc
        self._runtime.logger.info(
            "Position in %s frame: [%.3f, %.3f, %.3f]"
            % (target_frame, coordinate.x, coordinate.y, coordinate.z)
        )
        return coordinate


__all__ = ["TransformLookupProto", "MarkerFrameBroadcasterProto", "FrameResolver"]
