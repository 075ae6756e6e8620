"""
Typed change notifications.

Every topic in ``EventType`` carries exactly one payload type, declared in
``PAYLOAD_TYPES``. The dispatcher checks payloads against that table so a
topic/payload mismatch fails loudly at the emit site instead of surfacing as
a confusing error inside some listener.

Dispatchers are plain objects: each editor instance constructs its own and
hands it to the components that publish or observe changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from .logging import get_logger

if TYPE_CHECKING:
    from .models import Connection, Shape

logger = get_logger("events")


class EventType(str, Enum):
    """Notification topics."""
    SHAPE_ADDED = "shape:added"
    SHAPE_REMOVED = "shape:removed"
    SHAPE_UPDATED = "shape:updated"
    CONNECTION_ADDED = "connection:added"
    CONNECTION_REMOVED = "connection:removed"
    CONNECTION_UPDATED = "connection:updated"
    SELECTION_CHANGED = "selection:changed"
    HISTORY_CHANGED = "history:changed"
    DIAGRAM_MODIFIED = "diagram:modified"
    COMMAND_EXECUTED = "command:executed"
    COMMAND_UNDONE = "command:undone"
    COMMAND_REDONE = "command:redone"
    TOOL_SELECTED = "tool:selected"
    PLUGIN_ACTIVATED = "plugin:activated"
    INTERACTION_STATE = "interaction:state"
    CONNECTION_PREVIEW = "connection:preview"
    CONNECTION_REJECTED = "connection:rejected"
    TEXT_EDITING = "text:editing"


# --- Payloads ---

@dataclass
class ShapeEvent:
    """Shape added, removed or updated (``property`` names what changed)."""
    shape: "Shape"
    diagram_id: str
    property: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"shape": self.shape.to_json_dict(), "diagram_id": self.diagram_id}
        if self.property:
            result["property"] = self.property
        return result


@dataclass
class ConnectionEvent:
    """Connection added, removed or updated."""
    connection: "Connection"
    diagram_id: str
    property: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"connection": self.connection.to_json_dict(), "diagram_id": self.diagram_id}
        if self.property:
            result["property"] = self.property
        return result


@dataclass
class SelectionEvent:
    """Full current selection after a user-visible selection operation."""
    shapes: list["Shape"] = field(default_factory=list)
    connections: list["Connection"] = field(default_factory=list)
    primary: Optional[Union["Shape", "Connection"]] = None

    @property
    def count(self) -> int:
        return len(self.shapes) + len(self.connections)

    def to_dict(self) -> dict:
        return {
            "shapes": [s.id for s in self.shapes],
            "connections": [c.id for c in self.connections],
            "count": self.count,
            "primary": self.primary.id if self.primary is not None else None,
        }


@dataclass(frozen=True)
class HistoryState:
    """Undo/redo availability for toolbar buttons."""
    can_undo: bool = False
    can_redo: bool = False
    undo_description: Optional[str] = None
    redo_description: Optional[str] = None
    length: int = 0

    def to_dict(self) -> dict:
        return {
            "canUndo": self.can_undo,
            "canRedo": self.can_redo,
            "undoDescription": self.undo_description,
            "redoDescription": self.redo_description,
            "length": self.length,
        }


@dataclass
class DiagramModifiedEvent:
    """A committed mutation happened (for "unsaved changes" indicators)."""
    diagram_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"diagram_id": self.diagram_id}


@dataclass
class CommandEvent:
    """A command went through the history manager."""
    description: str
    kind: str = ""

    def to_dict(self) -> dict:
        return {"description": self.description, "kind": self.kind}


@dataclass
class ToolEvent:
    tool_id: str

    def to_dict(self) -> dict:
        return {"tool_id": self.tool_id}


@dataclass
class PluginEvent:
    plugin_id: str
    name: str = ""

    def to_dict(self) -> dict:
        return {"plugin_id": self.plugin_id, "name": self.name}


@dataclass
class InteractionStateEvent:
    state: str
    previous: str

    def to_dict(self) -> dict:
        return {"state": self.state, "previous": self.previous}


@dataclass
class ConnectionPreviewEvent:
    """Live preview line while connecting; ``point`` None hides it."""
    source_id: Optional[str]
    x: Optional[float] = None
    y: Optional[float] = None
    hover_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"source_id": self.source_id, "x": self.x, "y": self.y, "hover_id": self.hover_id}


@dataclass
class ConnectionRejectedEvent:
    message: str
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    connector_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "connector_type": self.connector_type,
        }


@dataclass
class TextEditingEvent:
    shape_id: str
    property: str
    active: bool

    def to_dict(self) -> dict:
        return {"shape_id": self.shape_id, "property": self.property, "active": self.active}


PAYLOAD_TYPES: dict[EventType, type] = {
    EventType.SHAPE_ADDED: ShapeEvent,
    EventType.SHAPE_REMOVED: ShapeEvent,
    EventType.SHAPE_UPDATED: ShapeEvent,
    EventType.CONNECTION_ADDED: ConnectionEvent,
    EventType.CONNECTION_REMOVED: ConnectionEvent,
    EventType.CONNECTION_UPDATED: ConnectionEvent,
    EventType.SELECTION_CHANGED: SelectionEvent,
    EventType.HISTORY_CHANGED: HistoryState,
    EventType.DIAGRAM_MODIFIED: DiagramModifiedEvent,
    EventType.COMMAND_EXECUTED: CommandEvent,
    EventType.COMMAND_UNDONE: CommandEvent,
    EventType.COMMAND_REDONE: CommandEvent,
    EventType.TOOL_SELECTED: ToolEvent,
    EventType.PLUGIN_ACTIVATED: PluginEvent,
    EventType.INTERACTION_STATE: InteractionStateEvent,
    EventType.CONNECTION_PREVIEW: ConnectionPreviewEvent,
    EventType.CONNECTION_REJECTED: ConnectionRejectedEvent,
    EventType.TEXT_EDITING: TextEditingEvent,
}

Handler = Callable[[Any], None]
AnyHandler = Callable[[EventType, Any], None]


class EventDispatcher:
    """
    Synchronous publish/subscribe over ``EventType`` topics.

    Listeners run in subscription order on the emitting thread. A listener
    that raises is logged and skipped so one broken observer cannot stop
    the others (or the mutation that triggered the event).
    """

    def __init__(self):
        self._handlers: dict[EventType, list[Handler]] = {}
        self._any_handlers: list[AnyHandler] = []

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        """Register a handler for one topic. Returns an unsubscribe function."""
        self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscribe_all(self, handler: AnyHandler) -> Callable[[], None]:
        """Register a handler receiving ``(event_type, payload)`` for every topic."""
        self._any_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._any_handlers:
                self._any_handlers.remove(handler)

        return unsubscribe

    def emit(self, event_type: EventType, payload: Any) -> None:
        """Deliver a payload to every subscriber of ``event_type``."""
        expected = PAYLOAD_TYPES[event_type]
        if not isinstance(payload, expected):
            raise TypeError(
                f"{event_type.value} expects {expected.__name__}, got {type(payload).__name__}"
            )

        for handler in list(self._handlers.get(event_type, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Error in listener for %s", event_type.value)

        for any_handler in list(self._any_handlers):
            try:
                any_handler(event_type, payload)
            except Exception:
                logger.exception("Error in listener for %s", event_type.value)

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        if event_type is None:
            return sum(len(h) for h in self._handlers.values()) + len(self._any_handlers)
        return len(self._handlers.get(event_type, []))

    def clear(self) -> None:
        self._handlers.clear()
        self._any_handlers.clear()
