"""
Geometry primitives shared by the whole engine.

Points and rectangles are immutable value types; every operation returns a
new instance. Coordinates are diagram units (pixels at zoom 1).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

SIDES = ("top", "right", "bottom", "left")


@dataclass(frozen=True)
class Point:
    """A 2-D coordinate."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def scale(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle (x, y is the top-left corner)."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, point: Point) -> bool:
        """Check if a point lies inside or on the border."""
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom

    def intersects(self, other: "Rect") -> bool:
        return not (
            other.left > self.right
            or other.right < self.left
            or other.top > self.bottom
            or other.bottom < self.top
        )

    def union(self, other: "Rect") -> "Rect":
        """Smallest rectangle containing both."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        right = max(self.right, other.right)
        bottom = max(self.bottom, other.bottom)
        return Rect(x, y, right - x, bottom - y)

    def expand(self, amount: float) -> "Rect":
        return Rect(
            self.x - amount,
            self.y - amount,
            self.width + amount * 2,
            self.height + amount * 2,
        )

    def translate(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def connection_point(self, side: str) -> Point:
        """Midpoint of a side; anything else resolves to the center."""
        if side == "top":
            return Point(self.center.x, self.top)
        if side == "right":
            return Point(self.right, self.center.y)
        if side == "bottom":
            return Point(self.center.x, self.bottom)
        if side == "left":
            return Point(self.left, self.center.y)
        return self.center

    def nearest_connection_point(
        self, point: Point, sides: Iterable[str] = SIDES
    ) -> tuple[str, Point]:
        """
        Find the side midpoint closest to ``point``.

        Ties resolve to the earliest side in ``sides`` order.
        """
        nearest: Optional[tuple[str, Point]] = None
        min_dist = math.inf
        for side in sides:
            candidate = self.connection_point(side)
            dist = point.distance_to(candidate)
            if dist < min_dist:
                min_dist = dist
                nearest = (side, candidate)
        if nearest is None:
            return "center", self.center
        return nearest

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def union_all(rects: Iterable[Rect]) -> Optional[Rect]:
    """Union of any number of rectangles, or None for an empty input."""
    result: Optional[Rect] = None
    for rect in rects:
        result = rect if result is None else result.union(rect)
    return result


def point_to_segment_distance(point: Point, start: Point, end: Point) -> float:
    """
    Distance from a point to the closest point of a line segment.

    A zero-length segment is treated as a single point.
    """
    cx = end.x - start.x
    cy = end.y - start.y
    length_sq = cx * cx + cy * cy
    if length_sq == 0:
        return point.distance_to(start)

    t = ((point.x - start.x) * cx + (point.y - start.y) * cy) / length_sq
    t = clamp(t, 0.0, 1.0)
    return point.distance_to(Point(start.x + t * cx, start.y + t * cy))


def snap_to_grid(value: float, grid_size: float = 20) -> float:
    """Snap a value to the nearest grid line (grid_size <= 0 disables snapping)."""
    if grid_size <= 0:
        return value
    # Halves round up, not to even
    return math.floor(value / grid_size + 0.5) * grid_size


def snap_point_to_grid(point: Point, grid_size: float = 20) -> Point:
    return Point(snap_to_grid(point.x, grid_size), snap_to_grid(point.y, grid_size))


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def generate_id(prefix: str = "") -> str:
    """Generate a short unique id, optionally prefixed."""
    suffix = uuid.uuid4().hex[:10]
    return f"{prefix}-{suffix}" if prefix else suffix
