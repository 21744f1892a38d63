"""Derive follower rendezvous goals from committed marker detections."""

from __future__ import annotations

from typing import Dict, Mapping

from .errors import InvalidMarkerId
from .model import AgentRoute, CommittedDetection, Goal, Waypoint
from .runtime import MissionRuntime


def midpoint_goal(committed: CommittedDetection, waypoint: Waypoint, frame_id: str, stamp: float = 0.0) -> Goal:
    """Goal halfway between the marker's world position and the explorer waypoint."""

    marker = committed.world_coordinate
    return Goal(
        frame_id=frame_id,
        x=(marker.x + waypoint.x) / 2.0,
        y=(marker.y + waypoint.y) / 2.0,
        stamp=stamp,
    )


class RendezvousPlanner:
    """Writes derived goals into the follower route at the slot mapped from each marker id."""

    def __init__(
        self,
        route: AgentRoute,
        marker_slots: Mapping[int, int],
        runtime: MissionRuntime,
        *,
        world_frame: str = "map",
    ) -> None:
        for marker_id, slot in marker_slots.items():
            if not 0 <= slot < len(route):
                raise ValueError(f"Marker {marker_id} mapped to slot {slot} outside the follower route")
        self._route = route
        self._slots: Dict[int, int] = dict(marker_slots)
        self._runtime = runtime
        self._world_frame = world_frame

    @property
    def route(self) -> AgentRoute:
        return self._route

    def slot_for(self, marker_id: int) -> int:
        try:
            return self._slots[marker_id]
        except KeyError:
            raise InvalidMarkerId(marker_id, self._slots.keys()) from None

    def derive(self, committed: CommittedDetection, current_waypoint: Waypoint) -> Goal:
        slot = self.slot_for(committed.marker_id)
        goal = midpoint_goal(committed, current_waypoint, self._world_frame, self._runtime.now())
        previous = self._route.assign(slot, goal)
        if previous is not None:
            self._runtime.logger.warn(
                "Follower slot %d already held (%.2f, %.2f); replaced by marker %d"
                % (slot, previous.x, previous.y, committed.marker_id)
            )
        self._runtime.logger.info(
            "Follower goal for marker %d -> slot %d: (%.3f, %.3f)"
            % (committed.marker_id, slot, goal.x, goal.y)
        )
        return goal


__all__ = ["midpoint_goal", "RendezvousPlanner"]
