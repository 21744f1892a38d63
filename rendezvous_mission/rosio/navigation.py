"""Nav2 NavigateToPose client exposed through the dispatcher's goal-client interface."""

from __future__ import annotations

import threading

from action_msgs.msg import GoalStatus
from geometry_msgs.msg import PoseStamped
from nav2_msgs.action import NavigateToPose
from rclpy.action import ActionClient
from rclpy.node import Node

from ..core.model import Goal, GoalState
from .topics import frame_id


def goal_state_from_status(status: int) -> GoalState:
    """Map an ``action_msgs/GoalStatus`` code onto the mission's goal states."""

    if status == GoalStatus.STATUS_SUCCEEDED:
        return GoalState.SUCCEEDED
    if status in (GoalStatus.STATUS_ACCEPTED, GoalStatus.STATUS_EXECUTING, GoalStatus.STATUS_CANCELING):
        return GoalState.ACTIVE
    if status == GoalStatus.STATUS_UNKNOWN:
        return GoalState.PENDING
    # canceled and aborted both end the attempt
    return GoalState.ABORTED


def pose_stamped(goal: Goal, stamp) -> PoseStamped:
    msg = PoseStamped()
    msg.header.frame_id = frame_id(goal.frame_id)
    msg.header.stamp = stamp
    msg.pose.position.x = float(goal.x)
    msg.pose.position.y = float(goal.y)
    msg.pose.position.z = 0.0
    qx, qy, qz, qw = goal.orientation
    msg.pose.orientation.x = float(qx)
    msg.pose.orientation.y = float(qy)
    msg.pose.orientation.z = float(qz)
    msg.pose.orientation.w = float(qw)
    return msg


class NavigateToPoseClient:
    """Tracks the state of the most recent goal sent to one agent's navigation server.

    Responses for superseded goals are dropped, so ``get_state`` always refers
    to the last ``send_goal`` call.
    """

    def __init__(self, node: Node, action_name: str, *, callback_group=None) -> None:
        self._node = node
        self._action_name = action_name
        self._client = ActionClient(node, NavigateToPose, action_name, callback_group=callback_group)
        self._lock = threading.Lock()
        self._state = GoalState.PENDING
        self._generation = 0
        self._goal_handle = None
        self._cancel_requested = False

    @property
    def action_name(self) -> str:
        return self._action_name

    def wait_for_server(self, timeout_s: float) -> bool:
        return self._client.wait_for_server(timeout_sec=timeout_s)

    def send_goal(self, goal: Goal) -> None:
        request = NavigateToPose.Goal()
        request.pose = pose_stamped(goal, self._node.get_clock().now().to_msg())
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._state = GoalState.PENDING
            self._goal_handle = None
            self._cancel_requested = False
        future = self._client.send_goal_async(request)
        future.add_done_callback(lambda f: self._on_goal_response(generation, f))

    def get_state(self) -> GoalState:
        with self._lock:
            return self._state

    def cancel(self) -> None:
        with self._lock:
            handle = self._goal_handle
            self._cancel_requested = True
        if handle is not None:
            handle.cancel_goal_async()

    # ------------------------------------------------------------------
    # Action callbacks

    def _on_goal_response(self, generation: int, future) -> None:
        handle = future.result()
        if handle is None or not handle.accepted:
            self._node.get_logger().warn(f"Goal rejected by {self._action_name}")
            self._update(generation, GoalState.ABORTED)
            return
        with self._lock:
            if generation != self._generation:
                return
            self._goal_handle = handle
            self._state = GoalState.ACTIVE
            cancel_now = self._cancel_requested
        handle.get_result_async().add_done_callback(lambda f: self._on_result(generation, f))
        if cancel_now:
            handle.cancel_goal_async()

    def _on_result(self, generation: int, future) -> None:
        response = future.result()
        status = GoalStatus.STATUS_UNKNOWN if response is None else response.status
        state = goal_state_from_status(status)
        if state is GoalState.PENDING:
            state = GoalState.ABORTED
        self._update(generation, state)

    def _update(self, generation: int, state: GoalState) -> None:
        with self._lock:
            if generation == self._generation:
                self._state = state


__all__ = ["NavigateToPoseClient", "goal_state_from_status", "pose_stamped"]
