"""Explorer/follower rendezvous mission package exposing the ROS node and core logic."""

from .core import (
    ExitCode,
    InvalidConfiguration,
    MissionConfig,
    MissionController,
    MissionCoordinator,
    MissionError,
    MissionIO,
    MissionPhase,
    load_config,
)

__all__ = [
    "MissionController",
    "MissionCoordinator",
    "MissionConfig",
    "MissionIO",
    "MissionPhase",
    "MissionError",
    "InvalidConfiguration",
    "ExitCode",
    "load_config",
]
