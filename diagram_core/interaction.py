"""
Interaction state machine.

Turns raw pointer and keyboard input into selection changes and commands.
At most one gesture (drag, resize, connect) is live at a time: entering a
gesture first resets whatever else was in progress.

A live gesture mutates the model directly so the canvas can follow the
pointer. Pointer-up commits it as a single history entry; every other way
out (Escape, window blur, a tool change, a new gesture) puts the model back
exactly as it was before the gesture started.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .commands import AddConnection, AddShape, MoveShapes, RemoveConnection, RemoveShape, ResizeShape
from .config import EditorSettings
from .events import (
    ConnectionPreviewEvent,
    ConnectionRejectedEvent,
    EventDispatcher,
    EventType,
    InteractionStateEvent,
    ToolEvent,
)
from .factory import ShapeFactory
from .geometry import Point, Rect, snap_point_to_grid
from .history import CommandManager
from .logging import get_logger
from .models import Connection, Diagram, Element, Shape
from .plugins import PluginRegistry, normalize_validation
from .resize import ResizeHandle, calculate_new_bounds, handle_at_point
from .selection import SelectionManager

logger = get_logger("interaction")

SELECT_TOOL = "select"
DELETE_TOOL = "delete"


class InteractionState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    CONNECTING = "connecting"


@dataclass(frozen=True)
class PointerEvent:
    """A pointer event in diagram coordinates."""
    x: float
    y: float
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    alt: bool = False

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    @property
    def additive(self) -> bool:
        """Shift or Ctrl extends the selection instead of replacing it."""
        return self.shift or self.ctrl


@dataclass(frozen=True)
class KeyEvent:
    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    alt: bool = False

    @property
    def command(self) -> bool:
        """Ctrl on most platforms, Cmd on macOS."""
        return self.ctrl or self.meta


class TextEditor(Protocol):
    """In-place text editing, driven but not owned by the controller."""

    def start_editing(self, shape: Shape, property: str = "name") -> None: ...

    def cancel_editing(self) -> None: ...

    def is_editing(self) -> bool: ...


class InteractionController:
    """
    Routes input to the current tool.

    Collaborators are passed in explicitly; several controllers (one per
    editor) can coexist.
    """

    def __init__(
        self,
        diagram: Diagram,
        selection: SelectionManager,
        history: CommandManager,
        plugins: PluginRegistry,
        factory: ShapeFactory,
        events: Optional[EventDispatcher] = None,
        settings: Optional[EditorSettings] = None,
        text_editor: Optional[TextEditor] = None,
    ):
        self.diagram = diagram
        self.selection = selection
        self.history = history
        self.plugins = plugins
        self.factory = factory
        self.events = events
        self.settings = settings or EditorSettings()
        self.text_editor = text_editor

        self._tool = SELECT_TOOL
        self._state = InteractionState.IDLE

        # Drag
        self._drag_start: Optional[Point] = None
        self._drag_last: Optional[Point] = None
        self._drag_shape_ids: tuple[str, ...] = ()

        # Resize
        self._resize_shape: Optional[Shape] = None
        self._resize_handle: Optional[ResizeHandle] = None
        self._resize_start: Optional[Point] = None
        self._resize_original: Optional[Rect] = None

        # Connect
        self._connection_source: Optional[Shape] = None

        self._hovered: Optional[Element] = None

    # --- Properties ---

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def current_tool(self) -> str:
        return self._tool

    @property
    def connection_source(self) -> Optional[Shape]:
        return self._connection_source

    @property
    def is_dragging(self) -> bool:
        return self._state == InteractionState.DRAGGING

    @property
    def is_resizing(self) -> bool:
        return self._state == InteractionState.RESIZING

    @property
    def is_connecting(self) -> bool:
        return self._state == InteractionState.CONNECTING

    def set_diagram(self, diagram: Diagram) -> None:
        """Point the controller at another diagram (the old one is discarded)."""
        self._clear_gesture()
        self._set_state(InteractionState.IDLE)
        self._hovered = None
        self.diagram = diagram

    # --- Tools ---

    def select_tool(self, tool_id: str) -> None:
        self.reset(revert=True)
        self._tool = tool_id
        logger.debug("Tool selected: %s", tool_id)
        self._emit(EventType.TOOL_SELECTED, ToolEvent(tool_id))

    def drop_tool(self, tool_id: str, x: float, y: float) -> Optional[Shape]:
        """
        Handle a tool dragged from the toolbar onto the canvas.

        Shape tools create a shape centred on the drop point; connector
        tools need two clicks and are ignored here.
        """
        plugin = self.plugins.active
        if plugin is None or plugin.is_connector_tool(tool_id):
            return None
        if not plugin.is_shape_tool(tool_id):
            return None
        self.reset(revert=True)
        shape = self._create_shape(tool_id, Point(x, y))
        self.selection.select_shape(shape)
        return shape

    # --- Pointer input ---

    def pointer_down(self, event: PointerEvent) -> None:
        if self._tool == SELECT_TOOL:
            self._select_down(event)
        elif self._tool == DELETE_TOOL:
            self._delete_click(event.point)
        else:
            plugin = self.plugins.active
            if plugin is None:
                return
            if plugin.is_shape_tool(self._tool):
                self._shape_tool_click(event.point)
            elif plugin.is_connector_tool(self._tool):
                self._connector_click(event.point)

    def pointer_move(self, event: PointerEvent) -> None:
        point = event.point
        if self._state == InteractionState.DRAGGING:
            self._drag_to(point)
        elif self._state == InteractionState.RESIZING:
            self._resize_to(point)
        elif self._state == InteractionState.CONNECTING:
            self._preview_to(point)
        else:
            self._update_hover(point)

    def pointer_up(self, event: PointerEvent) -> None:
        if self._state == InteractionState.DRAGGING:
            self._drag_to(event.point)
            self._end_drag()
        elif self._state == InteractionState.RESIZING:
            self._resize_to(event.point)
            self._end_resize()

    def double_click(self, event: PointerEvent) -> None:
        shape = self.diagram.find_shape_at_point(event.point)
        if shape is not None and self.text_editor is not None:
            self.reset(revert=True)
            self.text_editor.start_editing(shape, "name")

    # --- Keyboard input ---

    def key_down(self, event: KeyEvent) -> bool:
        """Handle a key press. Returns True if the key was consumed."""
        if self.text_editor is not None and self.text_editor.is_editing():
            if event.key == "Escape":
                self.text_editor.cancel_editing()
                return True
            return False

        if event.key in ("Delete", "Backspace"):
            return self.delete_selection()

        key = event.key.lower()
        if event.command and key in ("z", "y"):
            self.reset(revert=True)
            if key == "y" or event.shift:
                self.history.redo()
            else:
                self.history.undo()
            return True

        if event.key == "Escape":
            self.reset(revert=True)
            self.selection.clear_selection()
            return True

        if not (event.ctrl or event.meta or event.alt):
            tool_id = self._tool_for_shortcut(key)
            if tool_id is not None:
                self.select_tool(tool_id)
                return True
        return False

    def delete_selection(self) -> bool:
        """
        Remove the selected connections and shapes.

        Each removal is its own command; a shape removal takes its attached
        connections with it.
        """
        connections = self.selection.get_selected_connections()
        shapes = self.selection.get_selected_shapes()
        if not connections and not shapes:
            return False

        self.reset(revert=True)
        # One selection:changed for the whole delete
        self.selection.clear_selection()
        for connection in connections:
            if self.diagram.has_connection(connection.id):
                self.history.execute(RemoveConnection(self.diagram, connection.id))
        for shape in shapes:
            if self.diagram.has_shape(shape.id):
                self.history.execute(RemoveShape(self.diagram, shape.id))
        return True

    def cancel(self) -> None:
        """Abort any live gesture (e.g. the window lost focus). Selection is kept."""
        self.reset(revert=True)

    def reset(self, revert: bool = True) -> None:
        """Return to idle, reverting the live gesture unless ``revert`` is False."""
        if revert:
            self._revert_gesture()
        self._clear_gesture()
        self._set_state(InteractionState.IDLE)

    # --- Select tool ---

    def _select_down(self, event: PointerEvent) -> None:
        point = event.point

        handle_shape, handle = self._handle_at(point)
        if handle_shape is not None and handle is not None:
            self._start_resize(handle_shape, handle, point)
            return

        element = self.diagram.find_element_at_point(point, self.settings.hit_tolerance)
        if isinstance(element, Shape):
            if event.additive:
                self.selection.toggle_shape(element)
            elif not self.selection.is_selected(element):
                self.selection.select_shape(element)
            if self.selection.is_selected(element):
                self._start_drag(point)
            else:
                self.reset(revert=True)
        elif isinstance(element, Connection):
            self.reset(revert=True)
            self.selection.select_connection(element, add_to_selection=event.additive)
        else:
            self.reset(revert=True)
            if not event.additive:
                self.selection.clear_selection()

    def _handle_at(self, point: Point) -> tuple[Optional[Shape], Optional[ResizeHandle]]:
        """Resize handles only exist when exactly one resizable shape is selected."""
        shapes = self.selection.get_selected_shapes()
        if len(shapes) != 1 or not shapes[0].resizable:
            return None, None
        shape = shapes[0]
        handle = handle_at_point(shape.get_bounds(), point, self.settings.handle_size)
        return (shape, handle) if handle is not None else (None, None)

    # --- Drag ---

    def _start_drag(self, point: Point) -> None:
        shape_ids = tuple(s.id for s in self.selection.get_selected_shapes())
        if not shape_ids:
            return
        self._enter(InteractionState.DRAGGING)
        self._drag_start = point
        self._drag_last = point
        self._drag_shape_ids = shape_ids

    def _drag_to(self, point: Point) -> None:
        if self._drag_last is None:
            return
        delta = point - self._drag_last
        if delta.x == 0 and delta.y == 0:
            return
        for shape_id in self._drag_shape_ids:
            if self.diagram.has_shape(shape_id):
                self.diagram.move_shape(shape_id, delta.x, delta.y)
        self._drag_last = point

    def _end_drag(self) -> None:
        total = self._drag_last - self._drag_start
        shape_ids = tuple(s for s in self._drag_shape_ids if self.diagram.has_shape(s))
        if shape_ids and (total.x != 0 or total.y != 0):
            self.history.add_to_history(MoveShapes(self.diagram, shape_ids, total.x, total.y))
        self.reset(revert=False)

    # --- Resize ---

    def _start_resize(self, shape: Shape, handle: ResizeHandle, point: Point) -> None:
        self._enter(InteractionState.RESIZING)
        self._resize_shape = shape
        self._resize_handle = handle
        self._resize_start = point
        self._resize_original = shape.get_bounds()

    def _resize_to(self, point: Point) -> None:
        shape = self._resize_shape
        if shape is None or not self.diagram.has_shape(shape.id):
            return
        delta = point - self._resize_start
        bounds = calculate_new_bounds(
            self._resize_original,
            self._resize_handle,
            delta.x,
            delta.y,
            shape.min_width,
            shape.min_height,
        )
        self.diagram.set_shape_bounds(shape.id, bounds)

    def _end_resize(self) -> None:
        shape = self._resize_shape
        if shape is not None and self.diagram.has_shape(shape.id):
            new_bounds = shape.get_bounds()
            if new_bounds != self._resize_original:
                self.history.add_to_history(
                    ResizeShape(self.diagram, shape.id, self._resize_original, new_bounds)
                )
        self.reset(revert=False)

    # --- Connect ---

    def _connector_click(self, point: Point) -> None:
        shape = self.diagram.find_shape_at_point(point)
        if shape is None:
            # Empty canvas cancels a pending connection
            self.reset(revert=True)
            return

        if self._connection_source is None:
            self._enter(InteractionState.CONNECTING)
            self._connection_source = shape
            self._emit(EventType.CONNECTION_PREVIEW, ConnectionPreviewEvent(shape.id, point.x, point.y))
            return

        plugin = self.plugins.active
        connector = plugin.get_connector_type(self._tool)
        source = self._connection_source
        if shape.id == source.id and not (connector and connector.allow_self):
            return

        verdict = normalize_validation(plugin.validate_connection(source, shape, self._tool))
        if verdict.valid:
            connection = self.factory.create_connection(
                self._tool, source, shape, diagram_type=plugin.id
            )
            self.history.execute(AddConnection(self.diagram, connection))
        else:
            logger.warning("Invalid connection: %s", verdict.message)
            self._emit(
                EventType.CONNECTION_REJECTED,
                ConnectionRejectedEvent(verdict.message, source.id, shape.id, self._tool),
            )
        self.reset(revert=True)

    def _preview_to(self, point: Point) -> None:
        source = self._connection_source
        hover = self.diagram.find_shape_at_point(point)
        hover_id = hover.id if hover is not None and hover.id != source.id else None
        self._emit(
            EventType.CONNECTION_PREVIEW,
            ConnectionPreviewEvent(source.id, point.x, point.y, hover_id),
        )

    # --- Other tools ---

    def _delete_click(self, point: Point) -> None:
        element = self.diagram.find_element_at_point(point, self.settings.hit_tolerance)
        if isinstance(element, Shape):
            self.history.execute(RemoveShape(self.diagram, element.id))
        elif isinstance(element, Connection):
            self.history.execute(RemoveConnection(self.diagram, element.id))

    def _shape_tool_click(self, point: Point) -> None:
        shape = self._create_shape(self._tool, point)
        self.selection.select_shape(shape)
        self.select_tool(SELECT_TOOL)

    def _create_shape(self, tool_id: str, point: Point) -> Shape:
        """Create a shape centred on the grid-snapped point and record it."""
        plugin = self.plugins.active
        definition = plugin.get_shape_definition(tool_id)
        center = snap_point_to_grid(point, self.settings.grid_size)
        options = definition.shape_options()
        shape = self.factory.create(
            tool_id,
            **{
                **options,
                "x": center.x - definition.default_width / 2,
                "y": center.y - definition.default_height / 2,
                "diagram_type": plugin.id,
            },
        )
        self.history.execute(AddShape(self.diagram, shape))
        return shape

    def _tool_for_shortcut(self, key: str) -> Optional[str]:
        if key == "v":
            return SELECT_TOOL
        if key == "d":
            return DELETE_TOOL
        plugin = self.plugins.active
        if plugin is None:
            return None
        for tool in plugin.tools():
            if tool.shortcut and tool.shortcut.lower() == key:
                return tool.id
        return None

    def _update_hover(self, point: Point) -> None:
        element = self.diagram.find_element_at_point(point, self.settings.hit_tolerance)
        if element is self._hovered:
            return
        if self._hovered is not None:
            self._hovered.hovered = False
        if element is not None:
            element.hovered = True
        self._hovered = element

    # --- State bookkeeping ---

    def _enter(self, state: InteractionState) -> None:
        """Enter a gesture state, fully reverting any other live gesture first."""
        if self._state != InteractionState.IDLE:
            self.reset(revert=True)
        self._set_state(state)

    def _set_state(self, state: InteractionState) -> None:
        if state == self._state:
            return
        previous = self._state
        self._state = state
        logger.debug("Interaction %s -> %s", previous.value, state.value)
        self._emit(EventType.INTERACTION_STATE, InteractionStateEvent(state.value, previous.value))

    def _revert_gesture(self) -> None:
        if self._state == InteractionState.DRAGGING and self._drag_last is not None:
            delta = self._drag_last - self._drag_start
            if delta.x != 0 or delta.y != 0:
                for shape_id in self._drag_shape_ids:
                    if self.diagram.has_shape(shape_id):
                        self.diagram.move_shape(shape_id, -delta.x, -delta.y)
        elif self._state == InteractionState.RESIZING and self._resize_shape is not None:
            shape = self._resize_shape
            if self.diagram.has_shape(shape.id) and shape.get_bounds() != self._resize_original:
                self.diagram.set_shape_bounds(shape.id, self._resize_original)

    def _clear_gesture(self) -> None:
        had_source = self._connection_source is not None
        self._drag_start = None
        self._drag_last = None
        self._drag_shape_ids = ()
        self._resize_shape = None
        self._resize_handle = None
        self._resize_start = None
        self._resize_original = None
        self._connection_source = None
        if had_source:
            self._emit(EventType.CONNECTION_PREVIEW, ConnectionPreviewEvent(None))

    def _emit(self, event_type: EventType, payload) -> None:
        if self.events is not None:
            self.events.emit(event_type, payload)
