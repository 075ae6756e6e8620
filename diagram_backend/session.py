"""
Editor Session - One open diagram with its history, selection and tools.

This module implements:
- Ownership of the engine collaborators for one editor (dispatcher, plugin
  registry, shape factory, history, selection, interaction controller)
- JSON file persistence with a dirty flag
- Property/style edits issued as undoable commands
- Inline text editing committed through the history
- Change callbacks for real-time sync
"""

import json
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from diagram_core.commands import UpdateProperty, UpdateStyle
from diagram_core.config import EditorSettings
from diagram_core.events import EventDispatcher, EventType, TextEditingEvent
from diagram_core.factory import ShapeFactory
from diagram_core.history import CommandManager
from diagram_core.interaction import SELECT_TOOL, InteractionController
from diagram_core.logging import get_logger
from diagram_core.models import Diagram, Shape
from diagram_core.notations import builtin_plugins
from diagram_core.plugins import DiagramPlugin, PluginRegistry
from diagram_core.selection import SelectionManager
from diagram_core.validation import repair_command

logger = get_logger("session")


class SessionTextEditor:
    """
    Inline text editing for one session.

    The browser shows the input box; the session only tracks which shape
    and property are being edited and turns the committed value into an
    ``UpdateProperty`` command.
    """

    def __init__(self, session: "EditorSession"):
        self._session = session
        self._shape: Optional[Shape] = None
        self._property: Optional[str] = None

    @property
    def shape(self) -> Optional[Shape]:
        return self._shape

    @property
    def property(self) -> Optional[str]:
        return self._property

    def is_editing(self) -> bool:
        return self._shape is not None

    def start_editing(self, shape: Shape, property: str = "name") -> None:
        if self._shape is not None:
            self.cancel_editing()
        self._shape = shape
        self._property = property
        shape.editing = True
        self._emit(True)

    def initial_value(self) -> str:
        if self._shape is None:
            return ""
        return str(self._shape.properties.get(self._property, ""))

    def commit(self, value: Any) -> bool:
        """
        Finish editing with ``value``.

        Returns False if nothing was being edited or the shape is gone.
        An unchanged value ends editing without a history entry.
        """
        if self._shape is None:
            return False

        shape, prop = self._shape, self._property
        diagram = self._session.diagram
        if not diagram.has_shape(shape.id):
            self.cancel_editing()
            return False

        if shape.properties.get(prop) != value:
            self._session.history.execute(UpdateProperty(diagram, shape.id, prop, value))
        self._stop()
        return True

    def cancel_editing(self) -> None:
        if self._shape is not None:
            self._stop()

    def _stop(self) -> None:
        self._shape.editing = False
        self._emit(False)
        self._shape = None
        self._property = None

    def _emit(self, active: bool) -> None:
        self._session.events.emit(
            EventType.TEXT_EDITING, TextEditingEvent(self._shape.id, self._property, active)
        )


class EditorSession:
    """
    Manages a single diagram's editing state and persistence.

    Features:
    - Built-in notations registered, the configured default activated
    - Command-based undo/redo (bounded by ``history_limit``)
    - Dirty tracking from ``diagram:modified`` notifications
    - Change callbacks for real-time sync
    """

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        plugins: Optional[Iterable[DiagramPlugin]] = None,
    ):
        self.settings = settings or EditorSettings()
        self.events = EventDispatcher()
        self.registry = PluginRegistry(self.events)
        for plugin in (builtin_plugins() if plugins is None else plugins):
            self.registry.register(plugin)
        self.factory = ShapeFactory(self.settings)

        self.diagram = Diagram(events=self.events, type=self.settings.default_notation)
        self.history = CommandManager(self.events, self.settings.history_limit, self.diagram.id)
        self.selection = SelectionManager(self.events)
        self.text_editor = SessionTextEditor(self)
        self.controller = InteractionController(
            self.diagram,
            self.selection,
            self.history,
            self.registry,
            self.factory,
            events=self.events,
            settings=self.settings,
            text_editor=self.text_editor,
        )

        self._file_path: Optional[Path] = None
        self._dirty = False  # True if unsaved changes exist
        self._on_change_callbacks: list[Callable[[], None]] = []
        self.events.subscribe(EventType.DIAGRAM_MODIFIED, self._on_modified)

        if self.registry.has(self.settings.default_notation):
            self.activate_plugin(self.settings.default_notation)

    # --- Properties ---

    @property
    def file_path(self) -> Optional[Path]:
        return self._file_path

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def plugin(self) -> Optional[DiagramPlugin]:
        return self.registry.active

    # --- Change Notification ---

    def on_change(self, callback: Callable[[], None]) -> None:
        """Register a callback for diagram changes (edits, new, open)."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self) -> None:
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Error in change callback")

    def _on_modified(self, event) -> None:
        self._dirty = True
        self._notify_change()

    # --- Plugins ---

    def activate_plugin(self, plugin_id: str) -> DiagramPlugin:
        """
        Switch the active notation.

        The factory is re-registered with the plugin's shape types, since
        several notations define a type with the same id. The current tool
        falls back to select.
        """
        plugin = self.registry.activate(plugin_id)
        self.factory.register_plugin(plugin)
        self.controller.select_tool(SELECT_TOOL)
        return plugin

    # --- File Operations ---

    def new_diagram(self, name: str = "Untitled Diagram", diagram_type: Optional[str] = None) -> Diagram:
        """
        Create a new empty diagram.

        ``diagram_type`` activates that notation (UnknownPluginError if it is
        not registered); without it the active notation is kept.
        """
        if diagram_type:
            self.activate_plugin(diagram_type)
        else:
            diagram_type = self.plugin.id if self.plugin else self.settings.default_notation
        self._replace(Diagram(events=self.events, name=name, type=diagram_type))
        self._file_path = None
        self._notify_change()
        return self.diagram

    def open_diagram(self, file_path: str | Path) -> Diagram:
        """Open a diagram from a JSON file."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Diagram file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        diagram_type = data.get("type")
        if diagram_type and self.registry.has(diagram_type):
            self.activate_plugin(diagram_type)
        elif diagram_type:
            logger.warning("No plugin for diagram type %s, keeping %s", diagram_type,
                           self.plugin.id if self.plugin else None)

        diagram = Diagram.from_json_dict(
            data,
            shape_factory=self.factory.shape_from_json,
            connection_factory=self.factory.connection_from_json,
            events=self.events,
        )
        self._replace(diagram)
        self._file_path = path
        logger.info("Opened %s (%d shapes, %d connections)", path,
                    len(diagram.get_shapes()), len(diagram.get_connections()))
        self._notify_change()
        return diagram

    def save_diagram(self, file_path: Optional[str | Path] = None) -> Path:
        """
        Save the diagram to a JSON file.

        If file_path is provided, save to that path (Save As).
        Otherwise, save to the current file_path.
        """
        if file_path:
            path = Path(file_path)
        elif self._file_path:
            path = self._file_path
        else:
            raise ValueError("No file path specified and no current file path")

        self.diagram.touch()
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.diagram.to_json_dict(), f, indent=2)

        self._file_path = path
        self._dirty = False
        logger.info("Saved %s", path)
        return path

    def _replace(self, diagram: Diagram) -> None:
        self.text_editor.cancel_editing()
        self.selection.clear_selection()
        self.diagram = diagram
        self.controller.set_diagram(diagram)
        self.history.diagram_id = diagram.id
        self.history.clear()
        self._dirty = False

    # --- Editing ---

    def set_property(self, element_id: str, key: str, value: Any) -> None:
        """Set a shape or connection property as an undoable command."""
        self.history.execute(UpdateProperty(self.diagram, element_id, key, value))

    def set_style(self, element_id: str, style: dict) -> None:
        """Merge style keys into an element as an undoable command."""
        self.history.execute(UpdateStyle(self.diagram, element_id, style))

    def repair(self) -> int:
        """Remove connections with missing endpoints. Returns how many were removed."""
        command = repair_command(self.diagram)
        if command is None:
            return 0
        self.history.execute(command)
        return len(command)

    # --- State ---

    def get_state(self) -> dict:
        """Get the full editor state for the frontend."""
        editor = self.text_editor
        return {
            "diagram": self.diagram.to_json_dict(),
            "file_path": str(self._file_path) if self._file_path else None,
            "dirty": self._dirty,
            "plugin": self.plugin.id if self.plugin else None,
            "tool": self.controller.current_tool,
            "interaction": self.controller.state.value,
            "selection": self.selection.snapshot().to_dict(),
            "history": self.history.get_state().to_dict(),
            "editing": {
                "shape_id": editor.shape.id,
                "property": editor.property,
                "value": editor.initial_value(),
            } if editor.is_editing() else None,
        }
