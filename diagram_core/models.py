"""
Entity model: shapes, connections and the diagram that owns them.

These models define the persisted schema:
- Shapes with geometry, named properties and a style record
- Connections between two shapes (``source``/``target`` endpoint descriptors)
- The Diagram container with viewport and metadata

Field Naming Convention:
- Python attributes are snake_case
- JSON uses the camelCase keys of the exchange format (``diagramType``,
  ``shapeId``, ``strokeWidth``); aliases convert between the two
- Transient UI state (``selected``, ``hovered``, ``editing``) and sizing
  constraints never reach the JSON output
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from .errors import ElementNotFoundError
from .events import ConnectionEvent, EventDispatcher, EventType, ShapeEvent
from .geometry import SIDES, Point, Rect, generate_id, point_to_segment_distance
from .logging import get_logger

logger = get_logger("models")

DEFAULT_SHAPE_STYLE = {
    "fill": "#FFFFFF",
    "stroke": "#333333",
    "strokeWidth": 1.5,
}

DEFAULT_CONNECTION_STYLE = {
    "stroke": "#333333",
    "strokeWidth": 1.5,
    "lineStyle": "solid",
    "sourceArrow": "none",
    "targetArrow": "filled",
}

AUTO_ANCHOR = "auto"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Shape(BaseModel):
    """A positioned, sized diagram node."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: generate_id("shape"))
    type: str = "rectangle"
    diagram_type: str = Field(default="generic", alias="diagramType")
    x: float = 0
    y: float = 0
    width: float = 120
    height: float = 60
    properties: dict[str, Any] = Field(default_factory=lambda: {"name": "", "stereotype": ""})
    style: dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_SHAPE_STYLE))

    # Constraints come from the shape definition, not from the file
    min_width: float = Field(default=40, alias="minWidth", exclude=True)
    min_height: float = Field(default=30, alias="minHeight", exclude=True)
    resizable: bool = Field(default=True, exclude=True)
    connection_sides: list[str] = Field(
        default_factory=lambda: list(SIDES), alias="connectionSides", exclude=True
    )

    # Transient UI state
    selected: bool = Field(default=False, exclude=True)
    hovered: bool = Field(default=False, exclude=True)
    editing: bool = Field(default=False, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def lift_name(cls, data: Any) -> Any:
        """
        Accept ``name``/``stereotype`` at top level as property shorthands.

        A shorthand overrides the same key in ``properties``.
        """
        if isinstance(data, dict):
            shorthands = {k: data[k] for k in ("name", "stereotype") if k in data}
            if shorthands:
                data = {k: v for k, v in data.items() if k not in shorthands}
                data["properties"] = {**(data.get("properties") or {}), **shorthands}
        return data

    @field_validator("properties")
    @classmethod
    def default_properties(cls, value: dict) -> dict:
        return {"name": "", "stereotype": "", **value}

    @field_validator("style")
    @classmethod
    def default_style(cls, value: dict) -> dict:
        return {**DEFAULT_SHAPE_STYLE, **value}

    @property
    def name(self) -> str:
        return self.properties.get("name", "")

    def get_bounds(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def set_position(self, x: float, y: float) -> None:
        self.x = x
        self.y = y

    def set_size(self, width: float, height: float) -> None:
        """Resize, never going below the minimum size."""
        self.width = max(width, self.min_width)
        self.height = max(height, self.min_height)

    def set_bounds(self, bounds: Rect) -> None:
        self.set_position(bounds.x, bounds.y)
        self.set_size(bounds.width, bounds.height)

    def move(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def contains_point(self, point: Point) -> bool:
        return self.get_bounds().contains(point)

    def get_connection_points(self) -> dict[str, Point]:
        """Side midpoints plus the center, keyed by anchor name."""
        bounds = self.get_bounds()
        points = {side: bounds.connection_point(side) for side in SIDES}
        points["center"] = bounds.center
        return points

    def get_nearest_connection_point(self, point: Point) -> tuple[str, Point]:
        """Nearest allowed side midpoint to ``point`` as ``(side, point)``."""
        return self.get_bounds().nearest_connection_point(point, self.connection_sides)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with exchange-format keys."""
        return {
            "id": self.id,
            "type": self.type,
            "diagramType": self.diagram_type,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "properties": dict(self.properties),
            "style": dict(self.style),
        }

    @classmethod
    def from_json_dict(cls, data: dict, **overrides: Any) -> "Shape":
        return cls.model_validate({**data, **overrides})


class Endpoint(BaseModel):
    """One end of a connection: a shape id and an anchor (side name or ``auto``)."""
    model_config = ConfigDict(populate_by_name=True)

    shape_id: Optional[str] = Field(default=None, alias="shapeId")
    anchor: str = AUTO_ANCHOR

    def to_json_dict(self) -> dict:
        return {"shapeId": self.shape_id, "anchor": self.anchor}


class Connection(BaseModel):
    """
    A directed link between two shapes.

    ``source``/``target`` hold the persisted ids; the resolved shape
    references are private and are (re)linked by the owning Diagram when the
    connection is added, so load order does not matter.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: generate_id("conn"))
    type: str = "association"
    diagram_type: str = Field(default="generic", alias="diagramType")
    source: Endpoint = Field(default_factory=Endpoint)
    target: Endpoint = Field(default_factory=Endpoint)
    waypoints: list[Point] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=lambda: {"label": ""})
    style: dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_CONNECTION_STYLE))

    selected: bool = Field(default=False, exclude=True)
    hovered: bool = Field(default=False, exclude=True)

    _source_shape: Optional[Shape] = PrivateAttr(default=None)
    _target_shape: Optional[Shape] = PrivateAttr(default=None)

    @field_validator("properties")
    @classmethod
    def default_properties(cls, value: dict) -> dict:
        return {"label": "", **value}

    @field_validator("style")
    @classmethod
    def default_style(cls, value: dict) -> dict:
        return {**DEFAULT_CONNECTION_STYLE, **value}

    @property
    def source_shape(self) -> Optional[Shape]:
        return self._source_shape

    @property
    def target_shape(self) -> Optional[Shape]:
        return self._target_shape

    def set_source(self, shape: Optional[Shape], anchor: str = AUTO_ANCHOR) -> None:
        self._source_shape = shape
        self.source = Endpoint(shape_id=shape.id if shape else None, anchor=anchor)

    def set_target(self, shape: Optional[Shape], anchor: str = AUTO_ANCHOR) -> None:
        self._target_shape = shape
        self.target = Endpoint(shape_id=shape.id if shape else None, anchor=anchor)

    def link(self, source: Optional[Shape], target: Optional[Shape]) -> None:
        """Attach resolved shape references without touching the endpoint ids."""
        self._source_shape = source
        self._target_shape = target

    def is_complete(self) -> bool:
        return self._source_shape is not None and self._target_shape is not None

    def is_attached_to(self, shape_id: str) -> bool:
        return self.source.shape_id == shape_id or self.target.shape_id == shape_id

    def get_start_point(self) -> Point:
        """
        Where the line leaves the source shape.

        ``auto`` picks the source connection point nearest to the target's
        center, or to the first waypoint while the target is unresolved.
        """
        if self._source_shape is None:
            return Point(0, 0)

        if self.source.anchor == AUTO_ANCHOR:
            if self._target_shape is not None:
                reference = self._target_shape.get_bounds().center
            elif self.waypoints:
                reference = self.waypoints[0]
            else:
                reference = Point(0, 0)
            return self._source_shape.get_nearest_connection_point(reference)[1]

        points = self._source_shape.get_connection_points()
        return points.get(self.source.anchor, points["center"])

    def get_end_point(self) -> Point:
        """Where the line enters the target shape (mirror of ``get_start_point``)."""
        if self._target_shape is None:
            return Point(0, 0)

        if self.target.anchor == AUTO_ANCHOR:
            if self._source_shape is not None:
                reference = self._source_shape.get_bounds().center
            elif self.waypoints:
                reference = self.waypoints[-1]
            else:
                reference = Point(0, 0)
            return self._target_shape.get_nearest_connection_point(reference)[1]

        points = self._target_shape.get_connection_points()
        return points.get(self.target.anchor, points["center"])

    def get_path(self) -> list[Point]:
        return [self.get_start_point(), *self.waypoints, self.get_end_point()]

    def is_point_near(self, point: Point, threshold: float = 10) -> bool:
        """Check every path segment, waypoints included."""
        path = self.get_path()
        for start, end in zip(path, path[1:]):
            if point_to_segment_distance(point, start, end) <= threshold:
                return True
        return False

    def add_waypoint(self, point: Point, index: int = -1) -> None:
        """Insert a waypoint; an out-of-range index appends."""
        if index < 0 or index > len(self.waypoints):
            index = len(self.waypoints)
        self.waypoints.insert(index, point)

    def move_waypoint(self, index: int, point: Point) -> None:
        if 0 <= index < len(self.waypoints):
            self.waypoints[index] = point

    def remove_waypoint(self, index: int) -> None:
        if 0 <= index < len(self.waypoints):
            del self.waypoints[index]

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with exchange-format keys."""
        return {
            "id": self.id,
            "type": self.type,
            "diagramType": self.diagram_type,
            "source": self.source.to_json_dict(),
            "target": self.target.to_json_dict(),
            "waypoints": [p.to_dict() for p in self.waypoints],
            "properties": dict(self.properties),
            "style": dict(self.style),
        }

    @classmethod
    def from_json_dict(cls, data: dict, **overrides: Any) -> "Connection":
        return cls.model_validate({**data, **overrides})


class Viewport(BaseModel):
    x: float = 0
    y: float = 0
    zoom: float = 1


Element = Union[Shape, Connection]
ShapeLoader = Callable[[dict], Shape]
ConnectionLoader = Callable[[dict], Connection]


class Diagram(BaseModel):
    """
    The complete diagram: shapes and connections keyed by id.

    All content mutation goes through this class so that change
    notifications fire consistently. Collections keep insertion order, which
    doubles as z-order for shapes (last inserted is on top).

    This is what gets saved to/loaded from JSON files.
    """
    id: str = Field(default_factory=lambda: generate_id("diagram"))
    type: str = "sequence"
    name: str = "Untitled Diagram"
    created: str = Field(default_factory=now_iso)
    modified: str = Field(default_factory=now_iso)
    viewport: Viewport = Field(default_factory=Viewport)
    metadata: dict[str, Any] = Field(default_factory=lambda: {"author": "", "version": "1.0"})

    _shapes: dict[str, Shape] = PrivateAttr(default_factory=dict)
    _connections: dict[str, Connection] = PrivateAttr(default_factory=dict)
    _events: Optional[EventDispatcher] = PrivateAttr(default=None)

    def __init__(self, events: Optional[EventDispatcher] = None, **data: Any):
        super().__init__(**data)
        self._events = events

    @field_validator("metadata")
    @classmethod
    def default_metadata(cls, value: dict) -> dict:
        return {"author": "", "version": "1.0", **value}

    @property
    def events(self) -> Optional[EventDispatcher]:
        return self._events

    def attach_events(self, events: Optional[EventDispatcher]) -> None:
        self._events = events

    def touch(self) -> None:
        self.modified = now_iso()

    def _emit_shape(self, event_type: EventType, shape: Shape, prop: Optional[str] = None) -> None:
        if self._events is not None:
            self._events.emit(event_type, ShapeEvent(shape, self.id, prop))

    def _emit_connection(
        self, event_type: EventType, connection: Connection, prop: Optional[str] = None
    ) -> None:
        if self._events is not None:
            self._events.emit(event_type, ConnectionEvent(connection, self.id, prop))

    # --- Shapes ---

    def add_shape(self, shape: Shape, index: Optional[int] = None) -> None:
        """Add a shape on top of the z-order, or at ``index`` when restoring."""
        shape.diagram_type = self.type
        self._shapes = _insert(self._shapes, shape.id, shape, index)
        self.touch()
        self._emit_shape(EventType.SHAPE_ADDED, shape)

    def remove_shape(self, shape_id: str) -> Optional[Shape]:
        """
        Remove a shape and return it (None if absent).

        Attached connections are left alone; callers that need a cascade
        remove them explicitly so the whole thing can be undone as one unit.
        """
        shape = self._shapes.pop(shape_id, None)
        if shape is not None:
            self.touch()
            self._emit_shape(EventType.SHAPE_REMOVED, shape)
        return shape

    def get_shape(self, shape_id: str) -> Optional[Shape]:
        return self._shapes.get(shape_id)

    def require_shape(self, shape_id: str) -> Shape:
        shape = self._shapes.get(shape_id)
        if shape is None:
            raise ElementNotFoundError(shape_id)
        return shape

    def get_shapes(self) -> list[Shape]:
        return list(self._shapes.values())

    def has_shape(self, shape_id: str) -> bool:
        return shape_id in self._shapes

    def index_of_shape(self, shape_id: str) -> int:
        return _index_of(self._shapes, shape_id)

    # --- Connections ---

    def add_connection(self, connection: Connection, index: Optional[int] = None) -> None:
        """Add a connection, resolving its endpoint shapes from this diagram."""
        connection.diagram_type = self.type
        self._link(connection)
        self._connections = _insert(self._connections, connection.id, connection, index)
        self.touch()
        self._emit_connection(EventType.CONNECTION_ADDED, connection)

    def remove_connection(self, connection_id: str) -> Optional[Connection]:
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            self.touch()
            self._emit_connection(EventType.CONNECTION_REMOVED, connection)
        return connection

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def require_connection(self, connection_id: str) -> Connection:
        connection = self._connections.get(connection_id)
        if connection is None:
            raise ElementNotFoundError(connection_id)
        return connection

    def get_connections(self) -> list[Connection]:
        return list(self._connections.values())

    def has_connection(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def index_of_connection(self, connection_id: str) -> int:
        return _index_of(self._connections, connection_id)

    def get_connections_for_shape(self, shape_id: str) -> list[Connection]:
        return [c for c in self._connections.values() if c.is_attached_to(shape_id)]

    def get_element(self, element_id: str) -> Optional[Element]:
        return self._shapes.get(element_id) or self._connections.get(element_id)

    def require_element(self, element_id: str) -> Element:
        element = self.get_element(element_id)
        if element is None:
            raise ElementNotFoundError(element_id)
        return element

    def _link(self, connection: Connection) -> None:
        source = self._shapes.get(connection.source.shape_id) if connection.source.shape_id else None
        target = self._shapes.get(connection.target.shape_id) if connection.target.shape_id else None
        connection.link(source, target)

    # --- Mutation gateway ---

    def move_shape(self, shape_id: str, dx: float, dy: float) -> Shape:
        """Translate a shape and refresh the connections attached to it."""
        shape = self.require_shape(shape_id)
        shape.move(dx, dy)
        self._emit_shape(EventType.SHAPE_UPDATED, shape, "position")
        self._refresh_connections(shape_id)
        return shape

    def set_shape_position(self, shape_id: str, x: float, y: float) -> Shape:
        shape = self.require_shape(shape_id)
        shape.set_position(x, y)
        self._emit_shape(EventType.SHAPE_UPDATED, shape, "position")
        self._refresh_connections(shape_id)
        return shape

    def set_shape_bounds(self, shape_id: str, bounds: Rect) -> Shape:
        shape = self.require_shape(shape_id)
        shape.set_bounds(bounds)
        self._emit_shape(EventType.SHAPE_UPDATED, shape, "size")
        self._refresh_connections(shape_id)
        return shape

    def set_property(self, element_id: str, key: str, value: Any) -> Element:
        element = self.require_element(element_id)
        element.properties[key] = value
        self.touch()
        self._emit_updated(element, key)
        return element

    def unset_property(self, element_id: str, key: str) -> Element:
        element = self.require_element(element_id)
        element.properties.pop(key, None)
        self.touch()
        self._emit_updated(element, key)
        return element

    def set_style(self, element_id: str, style: dict, replace: bool = False) -> Element:
        """Merge ``style`` into the element's style, or swap it in wholesale."""
        element = self.require_element(element_id)
        element.style = dict(style) if replace else {**element.style, **style}
        self.touch()
        self._emit_updated(element, "style")
        return element

    def set_waypoints(self, connection_id: str, points: list[Point]) -> Connection:
        connection = self.require_connection(connection_id)
        connection.waypoints = list(points)
        self.touch()
        self._emit_connection(EventType.CONNECTION_UPDATED, connection, "waypoints")
        return connection

    def _emit_updated(self, element: Element, prop: str) -> None:
        if isinstance(element, Shape):
            self._emit_shape(EventType.SHAPE_UPDATED, element, prop)
        else:
            self._emit_connection(EventType.CONNECTION_UPDATED, element, prop)

    def _refresh_connections(self, shape_id: str) -> None:
        self.touch()
        for connection in self.get_connections_for_shape(shape_id):
            self._emit_connection(EventType.CONNECTION_UPDATED, connection, "path")

    # --- Spatial queries ---

    def find_shape_at_point(self, point: Point) -> Optional[Shape]:
        """Topmost shape containing the point (last inserted wins)."""
        for shape in reversed(list(self._shapes.values())):
            if shape.contains_point(point):
                return shape
        return None

    def find_connection_at_point(self, point: Point, threshold: float = 10) -> Optional[Connection]:
        for connection in self._connections.values():
            if connection.is_point_near(point, threshold):
                return connection
        return None

    def find_element_at_point(self, point: Point, threshold: float = 10) -> Optional[Element]:
        """Shapes take priority over connections."""
        shape = self.find_shape_at_point(point)
        if shape is not None:
            return shape
        return self.find_connection_at_point(point, threshold)

    def get_bounds(self) -> Optional[Rect]:
        shapes = self.get_shapes()
        if not shapes:
            return None
        bounds = shapes[0].get_bounds()
        for shape in shapes[1:]:
            bounds = bounds.union(shape.get_bounds())
        return bounds

    def clear(self) -> None:
        """Drop all content without per-element notifications."""
        self._connections = {}
        self._shapes = {}
        self.touch()

    # --- Serialization ---

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with proper field names."""
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "created": self.created,
            "modified": self.modified,
            "viewport": self.viewport.model_dump(),
            "metadata": dict(self.metadata),
            "shapes": [s.to_json_dict() for s in self._shapes.values()],
            "connections": [c.to_json_dict() for c in self._connections.values()],
        }

    @classmethod
    def from_json_dict(
        cls,
        data: dict,
        shape_factory: Optional[ShapeLoader] = None,
        connection_factory: Optional[ConnectionLoader] = None,
        events: Optional[EventDispatcher] = None,
    ) -> "Diagram":
        """
        Rebuild a diagram from its JSON form.

        Concrete shape and connection classes are the factories' business.
        Loading is silent (no per-element events). A connection whose
        endpoint shape is missing is kept with an unresolved reference so it
        can be repaired or removed later.
        """
        header = {k: data[k] for k in ("id", "type", "name", "created", "modified", "viewport", "metadata") if data.get(k) is not None}
        diagram = cls(events=events, **header)

        make_shape = shape_factory or Shape.from_json_dict
        make_connection = connection_factory or Connection.from_json_dict

        for shape_data in data.get("shapes") or []:
            shape = make_shape(shape_data)
            diagram._shapes[shape.id] = shape

        for connection_data in data.get("connections") or []:
            connection = make_connection(connection_data)
            diagram._link(connection)
            for end, endpoint in (("source", connection.source), ("target", connection.target)):
                if endpoint.shape_id and not diagram.has_shape(endpoint.shape_id):
                    logger.warning(
                        "Connection %s has dangling %s %s", connection.id, end, endpoint.shape_id
                    )
            diagram._connections[connection.id] = connection

        return diagram


def _insert(collection: dict, key: str, value: Any, index: Optional[int]) -> dict:
    """Insert into an insertion-ordered dict, optionally at a position."""
    if index is None or index >= len(collection):
        collection.pop(key, None)
        collection[key] = value
        return collection
    items = [(k, v) for k, v in collection.items() if k != key]
    items.insert(max(index, 0), (key, value))
    return dict(items)


def _index_of(collection: dict, key: str) -> int:
    for i, k in enumerate(collection):
        if k == key:
            return i
    return -1
