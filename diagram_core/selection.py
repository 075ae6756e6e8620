"""Selection state for the editor."""

from __future__ import annotations

from typing import Iterable, Optional

from .events import ConnectionEvent, EventDispatcher, EventType, SelectionEvent, ShapeEvent
from .geometry import Rect, union_all
from .models import Connection, Element, Shape


class SelectionManager:
    """
    Tracks which shapes and connections are selected.

    Membership and each element's ``selected`` flag always agree. Every
    public mutating operation emits exactly one ``selection:changed``
    carrying the full selection and its primary (first) element.

    When given a dispatcher, the manager also drops elements that are
    removed from the diagram, so a deleted shape never lingers selected.
    """

    def __init__(self, events: Optional[EventDispatcher] = None):
        self._events = events
        # Dicts keep selection order, first entry is primary
        self._shapes: dict[str, Shape] = {}
        self._connections: dict[str, Connection] = {}
        self._unsubscribers = []
        if events is not None:
            self._unsubscribers.append(events.subscribe(EventType.SHAPE_REMOVED, self._on_shape_removed))
            self._unsubscribers.append(
                events.subscribe(EventType.CONNECTION_REMOVED, self._on_connection_removed)
            )

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # --- Mutations ---

    def select_shape(self, shape: Shape, add_to_selection: bool = False) -> None:
        if not add_to_selection:
            self._clear()
        shape.selected = True
        self._shapes[shape.id] = shape
        self._emit()

    def select_connection(self, connection: Connection, add_to_selection: bool = False) -> None:
        if not add_to_selection:
            self._clear()
        connection.selected = True
        self._connections[connection.id] = connection
        self._emit()

    def select_shapes(self, shapes: Iterable[Shape]) -> None:
        """Replace the selection with ``shapes``."""
        self._clear()
        for shape in shapes:
            shape.selected = True
            self._shapes[shape.id] = shape
        self._emit()

    def deselect_shape(self, shape: Shape) -> None:
        shape.selected = False
        self._shapes.pop(shape.id, None)
        self._emit()

    def deselect_connection(self, connection: Connection) -> None:
        connection.selected = False
        self._connections.pop(connection.id, None)
        self._emit()

    def toggle_shape(self, shape: Shape) -> None:
        if shape.id in self._shapes:
            self.deselect_shape(shape)
        else:
            self.select_shape(shape, add_to_selection=True)

    def select_element(self, element: Element, add_to_selection: bool = False) -> None:
        if isinstance(element, Shape):
            self.select_shape(element, add_to_selection)
        else:
            self.select_connection(element, add_to_selection)

    def select_elements(self, elements: Iterable[Element], add_to_selection: bool = False) -> None:
        """Select shapes and connections in one operation."""
        if not add_to_selection:
            self._clear()
        for element in elements:
            element.selected = True
            if isinstance(element, Shape):
                self._shapes[element.id] = element
            else:
                self._connections[element.id] = element
        self._emit()

    def clear_selection(self) -> None:
        self._clear()
        self._emit()

    # --- Queries ---

    def has_selection(self) -> bool:
        return bool(self._shapes or self._connections)

    def is_selected(self, element: Element) -> bool:
        return element.id in self._shapes or element.id in self._connections

    def get_selected_shapes(self) -> list[Shape]:
        return list(self._shapes.values())

    def get_selected_connections(self) -> list[Connection]:
        return list(self._connections.values())

    def get_all_selected(self) -> list[Element]:
        return [*self._shapes.values(), *self._connections.values()]

    @property
    def count(self) -> int:
        return len(self._shapes) + len(self._connections)

    def get_primary_selection(self) -> Optional[Element]:
        """First selected shape, else first selected connection."""
        for shape in self._shapes.values():
            return shape
        for connection in self._connections.values():
            return connection
        return None

    def get_selection_bounds(self) -> Optional[Rect]:
        """Union of the selected shapes' bounds, or None without shapes."""
        return union_all(shape.get_bounds() for shape in self._shapes.values())

    def snapshot(self) -> SelectionEvent:
        return SelectionEvent(
            shapes=self.get_selected_shapes(),
            connections=self.get_selected_connections(),
            primary=self.get_primary_selection(),
        )

    # --- Internals ---

    def _clear(self) -> None:
        for shape in self._shapes.values():
            shape.selected = False
        for connection in self._connections.values():
            connection.selected = False
        self._shapes = {}
        self._connections = {}

    def _emit(self) -> None:
        if self._events is not None:
            self._events.emit(EventType.SELECTION_CHANGED, self.snapshot())

    def _on_shape_removed(self, event: ShapeEvent) -> None:
        if event.shape.id in self._shapes:
            self.deselect_shape(event.shape)

    def _on_connection_removed(self, event: ConnectionEvent) -> None:
        if event.connection.id in self._connections:
            self.deselect_connection(event.connection)
