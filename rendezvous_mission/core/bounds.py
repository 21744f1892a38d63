"""Planar bounds of the shared world frame used to sanity-check mission files."""

from __future__ import annotations

from dataclasses import dataclass

from .model import Waypoint


@dataclass(frozen=True)
class AxisBounds:
    minimum: float
    maximum: float

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class WorldBounds:
    """Axis-aligned rectangle in the world (map) frame, meters."""

    x: AxisBounds
    y: AxisBounds

    def contains(self, waypoint: Waypoint) -> bool:
        return self.x.contains(waypoint.x) and self.y.contains(waypoint.y)

    def describe(self) -> str:
        return "x=[%.2f, %.2f] y=[%.2f, %.2f]" % (
            self.x.minimum,
            self.x.maximum,
            self.y.minimum,
            self.y.maximum,
        )


__all__ = ["AxisBounds", "WorldBounds"]
