"""Per-agent wrapper around an asynchronous navigation goal protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from .errors import AgentUnreachable, GoalInFlight
from .model import Goal, GoalState
from .runtime import CancellationToken, MissionRuntime


class GoalClientProto(Protocol):
    def wait_for_server(self, timeout_s: float) -> bool: ...

    def send_goal(self, goal: Goal) -> None: ...

    def get_state(self) -> GoalState: ...

    def cancel(self) -> None: ...


class GoalDispatcher:
    """Sends goals to one agent, one at a time.

    The first dispatch blocks until the agent's navigation server is up,
    polling every ``server_wait_s`` seconds and logging each attempt. With
    ``max_server_waits`` left at ``None`` this wait never gives up.
    """

    def __init__(
        self,
        agent: str,
        client: GoalClientProto,
        runtime: MissionRuntime,
        *,
        server_wait_s: float = 5.0,
        max_server_waits: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> None:
        self._agent = agent
        self._client = client
        self._runtime = runtime
        self._server_wait_s = server_wait_s
        self._max_server_waits = max_server_waits
        self._cancel = cancel or CancellationToken()
        self._server_ready = False
        self._goal: Optional[Goal] = None
        self._dispatch_count = 0

    @property
    def agent(self) -> str:
        return self._agent

    @property
    def current_goal(self) -> Optional[Goal]:
        return self._goal

    @property
    def dispatch_count(self) -> int:
        return self._dispatch_count

    def wait_until_ready(self) -> None:
        attempts = 0
        while not self._server_ready:
            self._cancel.raise_if_cancelled()
            if self._client.wait_for_server(self._server_wait_s):
                self._server_ready = True
                break
            attempts += 1
            self._runtime.logger.info(
                f"Waiting for the navigation action server to come up for {self._agent}"
            )
            if self._max_server_waits is not None and attempts >= self._max_server_waits:
                raise AgentUnreachable(self._agent, attempts)

    def dispatch(self, goal: Goal) -> None:
        if self._goal is not None and not self.poll().is_terminal:
            raise GoalInFlight(f"{self._agent} still executing the previous goal")
        self.wait_until_ready()
        self._runtime.logger.info(
            "Sending goal for %s: (%.2f, %.2f) in '%s'" % (self._agent, goal.x, goal.y, goal.frame_id)
        )
        self._client.send_goal(goal)
        self._goal = goal
        self._dispatch_count += 1

    def poll(self) -> GoalState:
        if self._goal is None:
            return GoalState.PENDING
        return self._client.get_state()

    def cancel(self) -> bool:
        """Ask the agent to drop its current goal; returns False when nothing is in flight."""

        if self._goal is None or self.poll().is_terminal:
            return False
        self._runtime.logger.warn(
            "Cancelling goal for %s: (%.2f, %.2f)" % (self._agent, self._goal.x, self._goal.y)
        )
        self._client.cancel()
        return True


__all__ = ["GoalClientProto", "GoalDispatcher"]
