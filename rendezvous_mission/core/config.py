"""Mission file parser for the explorer/follower rendezvous mission (v1)."""

from __future__ import annotations

import math
import pathlib
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import yaml

from .bounds import AxisBounds, WorldBounds
from .errors import InvalidConfiguration
from .model import Waypoint

_TARGET_KEY = re.compile(r"^target_(\d+)$")

DEFAULT_EXPLORER_HOME = Waypoint(-4.0, 2.5)
DEFAULT_FOLLOWER_HOME = Waypoint(-4.0, 3.5)


@dataclass
class AgentConfig:
    name: str
    action_name: str
    home: Waypoint


@dataclass
class ScanConfig:
    angular_speed: float = 0.1
    distance_threshold: float = 3.0
    timeout_s: Optional[float] = None
    camera_frame: str = "explorer_tf/camera_rgb_optical_frame"
    marker_frame: str = "marker_frame"
    detection_topic: str = "/aruco_markers"
    cmd_vel_topic: str = "/explorer/cmd_vel"


@dataclass
class TransformConfig:
    timeout_s: float = 4.0
    backoff_s: float = 1.0
    max_attempts: Optional[int] = None


@dataclass
class DispatchConfig:
    server_wait_s: float = 5.0
    max_server_waits: Optional[int] = None
    max_goal_retries: int = 1


@dataclass
class MissionConfig:
    world_frame: str
    waypoints: List[Waypoint]
    explorer: AgentConfig
    follower: AgentConfig
    scan: ScanConfig = field(default_factory=ScanConfig)
    transforms: TransformConfig = field(default_factory=TransformConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    marker_slots: Dict[int, int] = field(default_factory=dict)
    world_bounds: Optional[WorldBounds] = None
    loop_rate_hz: float = 10.0

    @property
    def loop_period_s(self) -> float:
        return 1.0 / self.loop_rate_hz


def load_config(path: pathlib.Path) -> MissionConfig:
    path = pathlib.Path(path)
    try:
        text = path.read_text()
    except OSError as exc:
        raise InvalidConfiguration(f"Cannot read mission file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise InvalidConfiguration(f"Mission file {path} is not valid YAML: {exc}") from exc
    return parse_config(data)


def parse_config(data: object) -> MissionConfig:
    if not isinstance(data, dict):
        raise InvalidConfiguration("Mission file must contain a mapping")
    if data.get("api_version") != 1:
        raise InvalidConfiguration("Mission 'api_version' must be 1")

    world_frame = _coerce_str(data, "world_frame", "map")
    waypoints = _parse_waypoints(data.get("aruco_lookup_locations"))
    explorer = _parse_agent(data.get("explorer"), "explorer", DEFAULT_EXPLORER_HOME)
    follower = _parse_agent(data.get("follower"), "follower", DEFAULT_FOLLOWER_HOME)
    scan = _parse_scan(_section(data, "scan"))
    transforms = _parse_transforms(_section(data, "transforms"))
    dispatch = _parse_dispatch(_section(data, "dispatch"))
    marker_slots = _parse_marker_slots(data.get("marker_slots"), len(waypoints))
    world_bounds = _parse_bounds(data.get("world_bounds"))
    loop_rate = _coerce_float(data, "loop_rate_hz", 10.0, positive=True)

    config = MissionConfig(
        world_frame=world_frame,
        waypoints=waypoints,
        explorer=explorer,
        follower=follower,
        scan=scan,
        transforms=transforms,
        dispatch=dispatch,
        marker_slots=marker_slots,
        world_bounds=world_bounds,
        loop_rate_hz=loop_rate,
    )
    if world_bounds is not None:
        validate_waypoints_in_bounds(config, world_bounds)
    return config


def validate_waypoints_in_bounds(config: MissionConfig, bounds: WorldBounds) -> None:
    """Ensure every lookup location and both home positions stay within ``bounds``."""

    for idx, waypoint in enumerate(config.waypoints):
        if not bounds.contains(waypoint):
            raise InvalidConfiguration(
                f"target_{idx + 1} ({waypoint.x:.2f}, {waypoint.y:.2f}) exceeds world bounds {bounds.describe()}"
            )
    for agent in (config.explorer, config.follower):
        if not bounds.contains(agent.home):
            raise InvalidConfiguration(
                f"{agent.name} home ({agent.home.x:.2f}, {agent.home.y:.2f}) exceeds world bounds {bounds.describe()}"
            )


def _section(data: Mapping[str, object], key: str) -> Dict[str, object]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidConfiguration(f"Mission '{key}' must be a mapping if provided")
    return value


def _parse_waypoints(value: object) -> List[Waypoint]:
    if not isinstance(value, dict) or not value:
        raise InvalidConfiguration("Mission must define a non-empty 'aruco_lookup_locations' mapping")
    indexed: Dict[int, object] = {}
    for key, entry in value.items():
        match = _TARGET_KEY.match(str(key))
        if match is None:
            raise InvalidConfiguration(f"Unknown lookup location '{key}' (expected target_<n>)")
        indexed[int(match.group(1))] = entry
    expected = list(range(1, len(indexed) + 1))
    if sorted(indexed) != expected:
        missing = [f"target_{n}" for n in expected if n not in indexed]
        raise InvalidConfiguration(
            "Lookup locations must be numbered target_1..target_%d; missing %s"
            % (len(indexed), ", ".join(missing) or "none")
        )
    return [_parse_point(indexed[n], f"target_{n}") for n in expected]


def _parse_point(value: object, label: str) -> Waypoint:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidConfiguration(f"'{label}' must be a 2-element [x, y] list, got: {value!r}")
    coords = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise InvalidConfiguration(f"'{label}' contains non numeric values: {value!r}")
        if not math.isfinite(item):
            raise InvalidConfiguration(f"'{label}' contains non finite values: {value!r}")
        coords.append(float(item))
    return Waypoint(coords[0], coords[1])


def _parse_agent(value: object, name: str, default_home: Waypoint) -> AgentConfig:
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise InvalidConfiguration(f"Mission '{name}' must be a mapping if provided")
    action_name = _coerce_str(value, "action_name", f"/{name}/navigate_to_pose")
    home = default_home
    if "home" in value:
        home = _parse_point(value["home"], f"{name}.home")
    return AgentConfig(name=name, action_name=action_name, home=home)


def _parse_scan(value: Dict[str, object]) -> ScanConfig:
    defaults = ScanConfig()
    return ScanConfig(
        angular_speed=_coerce_float(value, "angular_speed", defaults.angular_speed, signed=True),
        distance_threshold=_coerce_float(value, "distance_threshold", defaults.distance_threshold, positive=True),
        timeout_s=_coerce_optional_float(value, "timeout_s"),
        camera_frame=_coerce_str(value, "camera_frame", defaults.camera_frame),
        marker_frame=_coerce_str(value, "marker_frame", defaults.marker_frame),
        detection_topic=_coerce_str(value, "detection_topic", defaults.detection_topic),
        cmd_vel_topic=_coerce_str(value, "cmd_vel_topic", defaults.cmd_vel_topic),
    )


def _parse_transforms(value: Dict[str, object]) -> TransformConfig:
    defaults = TransformConfig()
    return TransformConfig(
        timeout_s=_coerce_float(value, "timeout_s", defaults.timeout_s, positive=True),
        backoff_s=_coerce_float(value, "backoff_s", defaults.backoff_s),
        max_attempts=_coerce_optional_int(value, "max_attempts", minimum=1),
    )


def _parse_dispatch(value: Dict[str, object]) -> DispatchConfig:
    defaults = DispatchConfig()
    retries = _coerce_optional_int(value, "max_goal_retries", minimum=0)
    return DispatchConfig(
        server_wait_s=_coerce_float(value, "server_wait_s", defaults.server_wait_s, positive=True),
        max_server_waits=_coerce_optional_int(value, "max_server_waits", minimum=1),
        max_goal_retries=defaults.max_goal_retries if retries is None else retries,
    )


def _parse_marker_slots(value: object, slot_count: int) -> Dict[int, int]:
    if value is None:
        return {idx: idx for idx in range(slot_count)}
    if not isinstance(value, dict) or not value:
        raise InvalidConfiguration("Mission 'marker_slots' must be a non-empty mapping of marker id -> slot")
    slots: Dict[int, int] = {}
    for raw_id, raw_slot in value.items():
        marker_id = _as_int(raw_id, "marker_slots key")
        slot = _as_int(raw_slot, f"marker_slots[{raw_id}]")
        if not 0 <= slot < slot_count:
            raise InvalidConfiguration(
                f"marker_slots[{marker_id}]={slot} is outside the follower route (0..{slot_count - 1})"
            )
        slots[marker_id] = slot
    if len(set(slots.values())) != len(slots):
        raise InvalidConfiguration("marker_slots must map each marker id to a distinct slot")
    return slots


def _parse_bounds(value: object) -> Optional[WorldBounds]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise InvalidConfiguration("Mission 'world_bounds' must be a mapping with 'x' and 'y'")
    axes = []
    for axis in ("x", "y"):
        pair = value.get(axis)
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise InvalidConfiguration(f"world_bounds.{axis} must be a sequence [min, max]")
        try:
            low, high = float(pair[0]), float(pair[1])
        except (TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"world_bounds.{axis} must contain numbers") from exc
        if not (math.isfinite(low) and math.isfinite(high)):
            raise InvalidConfiguration(f"world_bounds.{axis} must contain finite numbers")
        if low > high:
            low, high = high, low
        axes.append(AxisBounds(low, high))
    return WorldBounds(x=axes[0], y=axes[1])


def _as_int(value: object, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{label} must be an integer, got {value!r}")
    return value


def _coerce_str(container: Mapping[str, object], key: str, default: str) -> str:
    value = container.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise InvalidConfiguration(f"Mission parameter '{key}' must be a non-empty string")
    return value.strip()


def _coerce_float(
    container: Mapping[str, object], key: str, default: float, *, positive: bool = False, signed: bool = False
) -> float:
    value = container.get(key, default)
    if isinstance(value, bool):
        raise InvalidConfiguration(f"Mission parameter '{key}' must be a number")
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(f"Mission parameter '{key}' must be a number") from exc
    if not math.isfinite(result):
        raise InvalidConfiguration(f"Mission parameter '{key}' must be finite")
    if positive and result <= 0.0:
        raise InvalidConfiguration(f"Mission parameter '{key}' must be positive")
    if not (positive or signed) and result < 0.0:
        raise InvalidConfiguration(f"Mission parameter '{key}' must not be negative")
    return result


def _coerce_optional_float(container: Mapping[str, object], key: str) -> Optional[float]:
    if container.get(key) is None:
        return None
    return _coerce_float(container, key, 0.0, positive=True)


def _coerce_optional_int(container: Mapping[str, object], key: str, *, minimum: int) -> Optional[int]:
    value = container.get(key)
    if value is None:
        return None
    result = _as_int(value, f"Mission parameter '{key}'")
    if result < minimum:
        raise InvalidConfiguration(f"Mission parameter '{key}' must be >= {minimum}")
    return result


__all__ = [
    "AgentConfig",
    "ScanConfig",
    "TransformConfig",
    "DispatchConfig",
    "MissionConfig",
    "load_config",
    "parse_config",
    "validate_waypoints_in_bounds",
]
