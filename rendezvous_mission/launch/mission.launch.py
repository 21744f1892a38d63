"""Launch the rendezvous mission coordinator with a mission file."""

from __future__ import annotations

from pathlib import Path

from ament_index_python.packages import get_package_share_directory
from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node


def generate_launch_description() -> LaunchDescription:
    pkg_share = Path(get_package_share_directory("rendezvous_mission"))
    default_mission = str(pkg_share / "param" / "mission.yaml")

    declare_mission = DeclareLaunchArgument(
        "mission_file",
        default_value=default_mission,
        description="Path to the mission YAML file",
    )
    declare_ns = DeclareLaunchArgument(
        "mission_ns",
        default_value="",
        description="Namespace prefixed to the mission state topic and cancel service",
    )
    declare_sim_time = DeclareLaunchArgument(
        "use_sim_time",
        default_value="true",
        description="Use the simulation clock",
    )

    mission_node = Node(
        package="rendezvous_mission",
        executable="mission_coordinator",
        name="rendezvous_mission",
        output="screen",
        emulate_tty=True,
        parameters=[
            {
                "mission_file": LaunchConfiguration("mission_file"),
                "mission_ns": LaunchConfiguration("mission_ns"),
                "use_sim_time": LaunchConfiguration("use_sim_time"),
            }
        ],
    )

    return LaunchDescription([declare_mission, declare_ns, declare_sim_time, mission_node])
