"""Exception hierarchy shared by the mission core and its ROS adapters."""

from __future__ import annotations


class MissionError(RuntimeError):
    """Base class for every failure that ends or blocks the mission."""


class InvalidConfiguration(MissionError):
    """Raised when the mission file is missing, malformed or inconsistent."""


class AgentUnreachable(MissionError):
    """Raised when an agent's navigation server never became available."""

    def __init__(self, agent: str, attempts: int) -> None:
        super().__init__(f"Navigation server for '{agent}' unavailable after {attempts} attempts")
        self.agent = agent
        self.attempts = attempts


class GoalInFlight(MissionError):
    """Raised when a goal is dispatched before the previous one finished."""


class GoalAborted(MissionError):
    """Raised when an agent aborted a goal more often than the retry budget allows."""

    def __init__(self, agent: str, index: int, attempts: int) -> None:
        super().__init__(f"{agent} aborted goal #{index} after {attempts} attempts")
        self.agent = agent
        self.index = index
        self.attempts = attempts


class FrameUnavailable(MissionError):
    """Raised when a frame could not be resolved within the lookup timeout."""

    def __init__(self, source_frame: str, target_frame: str, reason: str = "") -> None:
        message = f"Transform {source_frame} -> {target_frame} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.source_frame = source_frame
        self.target_frame = target_frame


class InvalidMarkerId(MissionError):
    """Raised when a detected marker id has no follower route slot."""

    def __init__(self, marker_id: int, known_ids) -> None:
        known = ", ".join(str(i) for i in sorted(known_ids)) or "none"
        super().__init__(f"Marker id {marker_id} has no follower slot (known ids: {known})")
        self.marker_id = marker_id


class RouteLocked(MissionError):
    """Raised when a route slot is modified after it was dispatched."""


class ScanTimeout(MissionError):
    """Raised when no qualifying marker was detected within the scan timeout."""


class MissionCancelled(MissionError):
    """Raised at a suspension point once the mission was cancelled."""


__all__ = [
    "MissionError",
    "InvalidConfiguration",
    "AgentUnreachable",
    "GoalInFlight",
    "GoalAborted",
    "FrameUnavailable",
    "InvalidMarkerId",
    "RouteLocked",
    "ScanTimeout",
    "MissionCancelled",
]
