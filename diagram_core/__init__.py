"""
Diagram Editor Core - Editing engine for multi-notation diagrams.

Entity model, command history, selection, notation plugins and the
interaction state machine. The backend session service and the CLI are
thin layers over what is exported here.
"""

from .geometry import Point, Rect, snap_to_grid, snap_point_to_grid, point_to_segment_distance
from .models import (
    # Core models
    Shape,
    Connection,
    Endpoint,
    Diagram,
    Viewport,
    DEFAULT_SHAPE_STYLE,
    DEFAULT_CONNECTION_STYLE,
)
from .events import EventType, EventDispatcher, HistoryState, SelectionEvent
from .commands import (
    Command,
    AddShape,
    RemoveShape,
    MoveShapes,
    ResizeShape,
    AddConnection,
    RemoveConnection,
    UpdateProperty,
    UpdateStyle,
    SetWaypoints,
    CompositeCommand,
)
from .history import CommandManager
from .selection import SelectionManager
from .plugins import (
    DiagramPlugin,
    PluginRegistry,
    ToolDefinition,
    ShapeDefinition,
    ConnectorDefinition,
    PropertyEditor,
    ValidationResult,
    normalize_validation,
)
from .factory import ShapeFactory
from .resize import ResizeHandle, calculate_new_bounds
from .interaction import InteractionController, InteractionState, PointerEvent, KeyEvent
from .validation import validate_diagram, validation_summary, repair_command, ValidationIssue, IssueSeverity
from .config import EditorSettings
from .errors import DiagramError, UnknownPluginError, UnknownShapeTypeError, ElementNotFoundError

__all__ = [
    # Geometry
    "Point",
    "Rect",
    "snap_to_grid",
    "snap_point_to_grid",
    "point_to_segment_distance",
    # Models
    "Shape",
    "Connection",
    "Endpoint",
    "Diagram",
    "Viewport",
    "DEFAULT_SHAPE_STYLE",
    "DEFAULT_CONNECTION_STYLE",
    # Events
    "EventType",
    "EventDispatcher",
    "HistoryState",
    "SelectionEvent",
    # Commands
    "Command",
    "AddShape",
    "RemoveShape",
    "MoveShapes",
    "ResizeShape",
    "AddConnection",
    "RemoveConnection",
    "UpdateProperty",
    "UpdateStyle",
    "SetWaypoints",
    "CompositeCommand",
    "CommandManager",
    # Selection
    "SelectionManager",
    # Plugins
    "DiagramPlugin",
    "PluginRegistry",
    "ToolDefinition",
    "ShapeDefinition",
    "ConnectorDefinition",
    "PropertyEditor",
    "ValidationResult",
    "normalize_validation",
    "ShapeFactory",
    # Interaction
    "ResizeHandle",
    "calculate_new_bounds",
    "InteractionController",
    "InteractionState",
    "PointerEvent",
    "KeyEvent",
    # Validation
    "validate_diagram",
    "validation_summary",
    "repair_command",
    "ValidationIssue",
    "IssueSeverity",
    # Config and errors
    "EditorSettings",
    "DiagramError",
    "UnknownPluginError",
    "UnknownShapeTypeError",
    "ElementNotFoundError",
]
