"""Runtime protocols the core consumes plus the mission cancellation token."""

from __future__ import annotations

import threading
from typing import Optional, Protocol

from .errors import MissionCancelled


class LoggerLike(Protocol):
    def info(self, msg: str) -> None: ...

    def warn(self, msg: str) -> None: ...

    def error(self, msg: str) -> None: ...

    def debug(self, msg: str) -> None: ...


class MissionRuntime(Protocol):
    @property
    def logger(self) -> LoggerLike: ...

    def now(self) -> float: ...  # seconds

    def sleep(self, seconds: float) -> None: ...

    def spin_once(self, timeout_s: float) -> None: ...  # pump pending callbacks

    def publish_state(self, name: str) -> None: ...


class CancellationToken:
    """Thread-safe flag honoured at every suspension point of the mission."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise MissionCancelled(f"Mission cancelled: {self._reason}")


__all__ = ["LoggerLike", "MissionRuntime", "CancellationToken"]
