"""
Resize handle geometry.

Eight handles sit on the corners and edge midpoints of a shape. Dragging a
handle recomputes the bounds from the original bounds and the cumulative
pointer delta; the edge opposite the handle never moves, even when the
minimum-size clamp kicks in.
"""

from enum import Enum
from typing import Optional

from .geometry import Point, Rect


class ResizeHandle(str, Enum):
    """Compass position of a resize handle."""
    NW = "nw"
    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"

    @property
    def moves_left(self) -> bool:
        return "w" in self.value

    @property
    def moves_right(self) -> bool:
        return "e" in self.value

    @property
    def moves_top(self) -> bool:
        return "n" in self.value

    @property
    def moves_bottom(self) -> bool:
        return "s" in self.value


HANDLE_CURSORS = {
    ResizeHandle.NW: "nwse-resize",
    ResizeHandle.N: "ns-resize",
    ResizeHandle.NE: "nesw-resize",
    ResizeHandle.E: "ew-resize",
    ResizeHandle.SE: "nwse-resize",
    ResizeHandle.S: "ns-resize",
    ResizeHandle.SW: "nesw-resize",
    ResizeHandle.W: "ew-resize",
}


def handle_positions(bounds: Rect) -> dict[ResizeHandle, Point]:
    """Center of each handle for the given shape bounds."""
    cx = bounds.x + bounds.width / 2
    cy = bounds.y + bounds.height / 2
    return {
        ResizeHandle.NW: Point(bounds.left, bounds.top),
        ResizeHandle.N: Point(cx, bounds.top),
        ResizeHandle.NE: Point(bounds.right, bounds.top),
        ResizeHandle.E: Point(bounds.right, cy),
        ResizeHandle.SE: Point(bounds.right, bounds.bottom),
        ResizeHandle.S: Point(cx, bounds.bottom),
        ResizeHandle.SW: Point(bounds.left, bounds.bottom),
        ResizeHandle.W: Point(bounds.left, cy),
    }


def handle_at_point(bounds: Rect, point: Point, handle_size: float = 8) -> Optional[ResizeHandle]:
    """Return the handle whose square contains ``point``, if any."""
    half = handle_size / 2
    for handle, center in handle_positions(bounds).items():
        if abs(point.x - center.x) <= half and abs(point.y - center.y) <= half:
            return handle
    return None


def calculate_new_bounds(
    original: Rect,
    handle: ResizeHandle,
    dx: float,
    dy: float,
    min_width: float = 40,
    min_height: float = 30,
) -> Rect:
    """
    Bounds after dragging ``handle`` by (dx, dy) from its starting point.

    Corner handles adjust two edges, edge handles one. Each axis is clamped
    to its minimum; when a west or north edge is being dragged, the position
    is shifted back so the east or south edge stays put.
    """
    handle = ResizeHandle(handle)
    x, y, width, height = original.x, original.y, original.width, original.height

    if handle.moves_left:
        x += dx
        width -= dx
    elif handle.moves_right:
        width += dx

    if handle.moves_top:
        y += dy
        height -= dy
    elif handle.moves_bottom:
        height += dy

    if width < min_width:
        if handle.moves_left:
            x -= min_width - width
        width = min_width
    if height < min_height:
        if handle.moves_top:
            y -= min_height - height
        height = min_height

    return Rect(x, y, width, height)
