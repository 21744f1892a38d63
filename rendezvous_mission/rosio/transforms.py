"""tf2 lookups and the marker frame broadcast used to place detections on the map."""

from __future__ import annotations

from typing import Optional

from geometry_msgs.msg import TransformStamped
from rclpy.duration import Duration
from rclpy.node import Node
from rclpy.time import Time
from tf2_ros import TransformException
from tf2_ros.buffer import Buffer
from tf2_ros.transform_broadcaster import TransformBroadcaster
from tf2_ros.transform_listener import TransformListener

from ..core.model import MarkerDetection, WorldCoordinate
from .topics import frame_id


class TfTransformLookup:
    """Buffered tf2 listener answering origin-of-frame queries."""

    def __init__(self, node: Node, *, spin_thread: bool = True) -> None:
        self._buffer = Buffer()
        self._listener = TransformListener(self._buffer, node, spin_thread=spin_thread)

    def lookup(
        self,
        source_frame: str,
        target_frame: str,
        at_time: Optional[float],
        timeout_s: float,
    ) -> WorldCoordinate:
        when = Time() if at_time is None else Time(nanoseconds=int(at_time * 1e9))
        try:
            transform = self._buffer.lookup_transform(
                frame_id(target_frame),
                frame_id(source_frame),
                when,
                timeout=Duration(nanoseconds=int(timeout_s * 1e9)),
            )
        except TransformException as exc:
            raise LookupError(f"{source_frame} -> {target_frame}: {exc}") from exc
        translation = transform.transform.translation
        return WorldCoordinate(translation.x, translation.y, translation.z, frame_id=target_frame)


class MarkerFrameBroadcaster:
    """Publishes the latest detection as ``child_frame`` under the camera frame."""

    def __init__(self, node: Node, *, parent_frame: str, child_frame: str) -> None:
        self._node = node
        self._parent_frame = frame_id(parent_frame)
        self._child_frame = frame_id(child_frame)
        self._broadcaster = TransformBroadcaster(node)

    def broadcast(self, detection: MarkerDetection) -> None:
        pose = detection.sensor_pose
        msg = TransformStamped()
        msg.header.stamp = self._node.get_clock().now().to_msg()
        msg.header.frame_id = self._parent_frame
        msg.child_frame_id = self._child_frame
        msg.transform.translation.x = float(pose.x)
        msg.transform.translation.y = float(pose.y)
        msg.transform.translation.z = float(pose.z)
        msg.transform.rotation.x = float(pose.qx)
        msg.transform.rotation.y = float(pose.qy)
        msg.transform.rotation.z = float(pose.qz)
        msg.transform.rotation.w = float(pose.qw)
        self._broadcaster.sendTransform(msg)


__all__ = ["TfTransformLookup", "MarkerFrameBroadcaster"]
