"""ROS 2 adapters for navigation, tf2 and marker detection."""

from .navigation import NavigateToPoseClient, goal_state_from_status
from .qos import COMMAND_QOS, DETECTION_QOS, EVENTS_QOS
from .scanning import ArucoDetectionSource, TwistVelocitySink, detections_from_markers
from .transforms import MarkerFrameBroadcaster, TfTransformLookup

__all__ = [
    "COMMAND_QOS",
    "DETECTION_QOS",
    "EVENTS_QOS",
    "NavigateToPoseClient",
    "goal_state_from_status",
    "ArucoDetectionSource",
    "TwistVelocitySink",
    "detections_from_markers",
    "MarkerFrameBroadcaster",
    "TfTransformLookup",
]
