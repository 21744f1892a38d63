"""ArUco detection stream and rotation command adapters for the marker scan."""

from __future__ import annotations

from typing import List, Optional

from geometry_msgs.msg import Twist
from rclpy.node import Node
from ros2_aruco_interfaces.msg import ArucoMarkers

from ..core.model import MarkerDetection, SensorPose
from ..core.scan import DetectionCallback
from .qos import COMMAND_QOS, DETECTION_QOS


def detections_from_markers(msg: ArucoMarkers, observed_at: float = 0.0) -> List[MarkerDetection]:
    """Split an ``ArucoMarkers`` message into one detection per marker id."""

    detections = []
    for marker_id, pose in zip(msg.marker_ids, msg.poses):
        detections.append(
            MarkerDetection(
                marker_id=int(marker_id),
                sensor_pose=SensorPose(
                    pose.position.x,
                    pose.position.y,
                    pose.position.z,
                    pose.orientation.x,
                    pose.orientation.y,
                    pose.orientation.z,
                    pose.orientation.w,
                ),
                observed_at=observed_at,
            )
        )
    return detections


class ArucoDetectionSource:
    """Subscribes to the marker topic only while a scan is listening."""

    def __init__(self, node: Node, topic: str, *, callback_group=None, qos=DETECTION_QOS) -> None:
        self._node = node
        self._topic = topic
        self._callback_group = callback_group
        self._qos = qos
        self._subscription = None
        self._callback: Optional[DetectionCallback] = None

    def subscribe(self, callback: DetectionCallback) -> None:
        self.unsubscribe()
        self._callback = callback
        self._subscription = self._node.create_subscription(
            ArucoMarkers,
            self._topic,
            self._on_markers,
            self._qos,
            callback_group=self._callback_group,
        )

    def unsubscribe(self) -> None:
        if self._subscription is not None:
            self._node.destroy_subscription(self._subscription)
            self._subscription = None
        self._callback = None

    def _on_markers(self, msg: ArucoMarkers) -> None:
        callback = self._callback
        if callback is None:
            return
        stamp = msg.header.stamp
        observed_at = stamp.sec + stamp.nanosec / 1e9
        for detection in detections_from_markers(msg, observed_at):
            callback(detection)


class TwistVelocitySink:
    """Publishes in-place rotation commands for the explorer base."""

    def __init__(self, node: Node, topic: str) -> None:
        self._publisher = node.create_publisher(Twist, topic, COMMAND_QOS)

    def publish_angular(self, angular_z: float) -> None:
        msg = Twist()
        msg.angular.z = float(angular_z)
        self._publisher.publish(msg)


__all__ = [
    "ArucoDetectionSource",
    "TwistVelocitySink",
    "detections_from_markers",
]
