"""
Reversible operations on a Diagram.

Each command is a small dataclass tagged with a ``kind``. Anything needed to
reverse the operation (old bounds, removed connections and their z-order
positions, previous property values) is captured when the command is
constructed, because by the time a gesture is recorded the model may
already show the new state.

Commands never touch the history stacks; ``CommandManager`` does that.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .geometry import Point, Rect
from .models import Connection, Diagram, Shape


class Command:
    """Base class for undoable operations."""
    kind = "command"

    @property
    def description(self) -> str:
        return "Unknown action"

    def execute(self) -> None:
        raise NotImplementedError(f"{type(self).__name__}.execute() must be implemented")

    def undo(self) -> None:
        raise NotImplementedError(f"{type(self).__name__}.undo() must be implemented")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.description!r}>"


@dataclass(repr=False, eq=False)
class AddShape(Command):
    diagram: Diagram
    shape: Shape
    kind = "add_shape"

    @property
    def description(self) -> str:
        return f"Add {self.shape.type}"

    def execute(self) -> None:
        self.diagram.add_shape(self.shape)

    def undo(self) -> None:
        self.diagram.remove_shape(self.shape.id)


@dataclass(repr=False, eq=False)
class RemoveShape(Command):
    """
    Remove a shape together with every connection attached to it.

    The cascade is part of this one command, so a single undo brings back
    the shape and its connections at their original z-order positions.
    """
    diagram: Diagram
    shape_id: str
    kind = "remove_shape"

    shape: Shape = field(init=False)
    shape_index: int = field(init=False)
    connections: tuple[tuple[int, Connection], ...] = field(init=False)

    def __post_init__(self):
        self.shape = self.diagram.require_shape(self.shape_id)
        self.shape_index = self.diagram.index_of_shape(self.shape_id)
        self.connections = tuple(
            (self.diagram.index_of_connection(c.id), c)
            for c in self.diagram.get_connections_for_shape(self.shape_id)
        )

    @property
    def description(self) -> str:
        return f"Delete {self.shape.type}"

    def execute(self) -> None:
        for _, connection in self.connections:
            self.diagram.remove_connection(connection.id)
        self.diagram.remove_shape(self.shape_id)

    def undo(self) -> None:
        self.diagram.add_shape(self.shape, self.shape_index)
        for index, connection in sorted(self.connections, key=lambda item: item[0]):
            self.diagram.add_connection(connection, index)


@dataclass(repr=False, eq=False)
class MoveShapes(Command):
    diagram: Diagram
    shape_ids: tuple[str, ...]
    dx: float
    dy: float
    kind = "move_shapes"

    def __post_init__(self):
        self.shape_ids = tuple(self.shape_ids)

    @property
    def description(self) -> str:
        if len(self.shape_ids) > 1:
            return f"Move {len(self.shape_ids)} shapes"
        shape = self.diagram.get_shape(self.shape_ids[0]) if self.shape_ids else None
        return f"Move {shape.type if shape else 'shape'}"

    def execute(self) -> None:
        for shape_id in self.shape_ids:
            self.diagram.move_shape(shape_id, self.dx, self.dy)

    def undo(self) -> None:
        for shape_id in self.shape_ids:
            self.diagram.move_shape(shape_id, -self.dx, -self.dy)


@dataclass(repr=False, eq=False)
class ResizeShape(Command):
    diagram: Diagram
    shape_id: str
    old_bounds: Rect
    new_bounds: Rect
    kind = "resize_shape"

    @property
    def description(self) -> str:
        shape = self.diagram.get_shape(self.shape_id)
        return f"Resize {shape.type if shape else 'shape'}"

    def execute(self) -> None:
        self.diagram.set_shape_bounds(self.shape_id, self.new_bounds)

    def undo(self) -> None:
        self.diagram.set_shape_bounds(self.shape_id, self.old_bounds)


@dataclass(repr=False, eq=False)
class AddConnection(Command):
    diagram: Diagram
    connection: Connection
    kind = "add_connection"

    @property
    def description(self) -> str:
        return f"Connect with {self.connection.type}"

    def execute(self) -> None:
        self.diagram.add_connection(self.connection)

    def undo(self) -> None:
        self.diagram.remove_connection(self.connection.id)


@dataclass(repr=False, eq=False)
class RemoveConnection(Command):
    diagram: Diagram
    connection_id: str
    kind = "remove_connection"

    connection: Connection = field(init=False)
    index: int = field(init=False)

    def __post_init__(self):
        self.connection = self.diagram.require_connection(self.connection_id)
        self.index = self.diagram.index_of_connection(self.connection_id)

    @property
    def description(self) -> str:
        return "Delete connection"

    def execute(self) -> None:
        self.diagram.remove_connection(self.connection_id)

    def undo(self) -> None:
        self.diagram.add_connection(self.connection, self.index)


_MISSING = object()


@dataclass(repr=False, eq=False)
class UpdateProperty(Command):
    """Set one named property on a shape or connection."""
    diagram: Diagram
    element_id: str
    key: str
    new_value: Any
    kind = "update_property"

    old_value: Any = field(init=False)

    def __post_init__(self):
        element = self.diagram.require_element(self.element_id)
        self.old_value = element.properties.get(self.key, _MISSING)

    @property
    def description(self) -> str:
        return f"Update {self.key}"

    def execute(self) -> None:
        self.diagram.set_property(self.element_id, self.key, self.new_value)

    def undo(self) -> None:
        if self.old_value is _MISSING:
            self.diagram.unset_property(self.element_id, self.key)
        else:
            self.diagram.set_property(self.element_id, self.key, self.old_value)


@dataclass(repr=False, eq=False)
class UpdateStyle(Command):
    """Merge style entries; undo restores the full previous style record."""
    diagram: Diagram
    element_id: str
    style: dict
    kind = "update_style"

    old_style: dict = field(init=False)

    def __post_init__(self):
        self.style = dict(self.style)
        self.old_style = dict(self.diagram.require_element(self.element_id).style)

    @property
    def description(self) -> str:
        return "Update style"

    def execute(self) -> None:
        self.diagram.set_style(self.element_id, self.style)

    def undo(self) -> None:
        self.diagram.set_style(self.element_id, self.old_style, replace=True)


@dataclass(repr=False, eq=False)
class SetWaypoints(Command):
    diagram: Diagram
    connection_id: str
    waypoints: tuple[Point, ...]
    kind = "set_waypoints"

    old_waypoints: tuple[Point, ...] = field(init=False)

    def __post_init__(self):
        self.waypoints = tuple(self.waypoints)
        self.old_waypoints = tuple(self.diagram.require_connection(self.connection_id).waypoints)

    @property
    def description(self) -> str:
        return "Edit route"

    def execute(self) -> None:
        self.diagram.set_waypoints(self.connection_id, list(self.waypoints))

    def undo(self) -> None:
        self.diagram.set_waypoints(self.connection_id, list(self.old_waypoints))


@dataclass(repr=False, eq=False)
class CompositeCommand(Command):
    """
    Several commands treated as one history entry.

    Children execute in order and undo in reverse. If a child fails while
    executing, the children that already ran are undone before the error
    propagates, so the group is all-or-nothing.
    """
    commands: list[Command] = field(default_factory=list)
    label: Optional[str] = None
    kind = "composite"

    @property
    def description(self) -> str:
        return self.label or "Multiple actions"

    def execute(self) -> None:
        done: list[Command] = []
        try:
            for command in self.commands:
                command.execute()
                done.append(command)
        except Exception:
            for command in reversed(done):
                command.undo()
            raise

    def undo(self) -> None:
        for command in reversed(self.commands):
            command.undo()

    def __len__(self) -> int:
        return len(self.commands)
