#!/usr/bin/env python3
"""Rendezvous mission node that delegates execution to the core coordinator."""

from __future__ import annotations

import pathlib
import time
from typing import Optional, Sequence

import rclpy
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.executors import ExternalShutdownException, MultiThreadedExecutor
from rclpy.node import Node
from std_msgs.msg import String
from std_srvs.srv import Trigger

from ..core import (
    ExitCode,
    InvalidConfiguration,
    MissionConfig,
    MissionController,
    MissionIO,
)
from ..core.runtime import MissionRuntime
from ..rosio import (
    EVENTS_QOS,
    ArucoDetectionSource,
    MarkerFrameBroadcaster,
    NavigateToPoseClient,
    TfTransformLookup,
    TwistVelocitySink,
)
from ..rosio.topics import namespaced


class RosMissionRuntime(MissionRuntime):
    """Concrete MissionRuntime backed by rclpy.

    Callbacks are serviced by the executor threads, so ``spin_once`` only
    yields for the requested period.
    """

    def __init__(self, node: Node, *, state_topic: str) -> None:
        self._node = node
        self._state_pub = node.create_publisher(String, state_topic, EVENTS_QOS)

    @property
    def logger(self):
        return self._node.get_logger()

    def now(self) -> float:
        return self._node.get_clock().now().nanoseconds / 1e9

    def sleep(self, seconds: float) -> None:
        if seconds > 0.0:
            time.sleep(seconds)

    def spin_once(self, timeout_s: float) -> None:
        self.sleep(timeout_s)

    def publish_state(self, name: str) -> None:
        msg = String()
        msg.data = name
        self._state_pub.publish(msg)


class RendezvousMissionNode(Node):
    """ROS2 node that loads a mission file and runs the explorer/follower rendezvous."""

    def __init__(self, **kwargs) -> None:
        super().__init__("rendezvous_mission", **kwargs)
        mission_file_param = self.declare_parameter("mission_file", "").get_parameter_value().string_value
        mission_path = self._resolve_mission_path(mission_file_param)
        if mission_path is None:
            message = f"Parameter 'mission_file' must point to a mission YAML file (got '{mission_file_param}')"
            self.get_logger().error(message)
            raise InvalidConfiguration(message)
        self.get_logger().info(f"Loading mission from {mission_path}")

        self._mission_ns = (
            self.declare_parameter("mission_ns", "").get_parameter_value().string_value.strip()
        )
        # ticks are serialized; every other callback is reentrant
        self._io_group = ReentrantCallbackGroup()
        self._tick_group = MutuallyExclusiveCallbackGroup()

        runtime = RosMissionRuntime(
            self,
            state_topic=namespaced("rendezvous/mission_state", namespace=self._mission_ns),
        )
        self._controller = MissionController(runtime, mission_path, self._build_io)

        config = self._controller.config
        self.get_logger().info(
            "Mission ready: %d waypoints in '%s', explorer=%s follower=%s"
            % (
                len(config.waypoints),
                config.world_frame,
                config.explorer.action_name,
                config.follower.action_name,
            )
        )

        self._cancel_srv = self.create_service(
            Trigger,
            namespaced("rendezvous/cancel", namespace=self._mission_ns),
            self._on_cancel,
            callback_group=self._io_group,
        )
        self._timer = self.create_timer(config.loop_period_s, self._on_timer, callback_group=self._tick_group)

    @property
    def controller(self) -> MissionController:
        return self._controller

    @property
    def finished(self) -> bool:
        return self._controller.finished

    @property
    def exit_code(self) -> Optional[ExitCode]:
        return self._controller.exit_code

    def cancel(self, reason: str) -> None:
        self._controller.cancel(reason)

    def _build_io(self, config: MissionConfig) -> MissionIO:
        self._explorer_client = NavigateToPoseClient(
            self, config.explorer.action_name, callback_group=self._io_group
        )
        self._follower_client = NavigateToPoseClient(
            self, config.follower.action_name, callback_group=self._io_group
        )
        return MissionIO(
            explorer=self._explorer_client,
            follower=self._follower_client,
            detections=ArucoDetectionSource(self, config.scan.detection_topic, callback_group=self._io_group),
            velocity=TwistVelocitySink(self, config.scan.cmd_vel_topic),
            transforms=TfTransformLookup(self),
            broadcaster=MarkerFrameBroadcaster(
                self,
                parent_frame=config.scan.camera_frame,
                child_frame=config.scan.marker_frame,
            ),
        )

    def _resolve_mission_path(self, value: str) -> Optional[pathlib.Path]:
        if not value:
            return None
        path = pathlib.Path(value).expanduser()
        if not path.is_absolute():
            path = (pathlib.Path.cwd() / path).resolve()
        return path if path.is_file() else None

    def _on_timer(self) -> None:
        self._controller.tick()
        if self._controller.finished:
            self._timer.cancel()
            self.get_logger().info(
                f"Mission finished in phase {self._controller.phase.name} (exit code {int(self.exit_code)})"
            )

    def _on_cancel(self, request: Trigger.Request, response: Trigger.Response) -> Trigger.Response:
        if self._controller.finished:
            response.success = False
            response.message = "mission already finished"
            return response
        self.get_logger().warn("Cancellation requested through service")
        self.cancel("cancel service called")
        response.success = True
        response.message = "cancellation requested"
        return response


def main(args: Optional[Sequence[str]] = None) -> int:
    rclpy.init(args=args)

    runner: Optional[RendezvousMissionNode] = None
    executor: Optional[MultiThreadedExecutor] = None
    exit_code = ExitCode.MISSION_FAILED
    try:
        runner = RendezvousMissionNode()
        executor = MultiThreadedExecutor()
        executor.add_node(runner)
        while rclpy.ok() and not runner.finished:
            executor.spin_once(timeout_sec=0.1)
        if runner.exit_code is not None:
            exit_code = runner.exit_code
        elif not rclpy.ok():
            exit_code = ExitCode.CANCELLED
    except InvalidConfiguration:
        exit_code = ExitCode.INVALID_CONFIGURATION
    except (KeyboardInterrupt, ExternalShutdownException):
        if runner is not None:
            runner.get_logger().warn("Interrupted; cancelling mission")
            runner.cancel("interrupted")
        exit_code = ExitCode.CANCELLED
    finally:
        if executor is not None:
            if runner is not None:
                executor.remove_node(runner)
            executor.shutdown()
        if runner is not None:
            runner.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()
    return int(exit_code)


if __name__ == "__main__":
    raise SystemExit(main())
