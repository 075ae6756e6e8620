"""
Diagram notations as plugins.

A plugin bundles the shape definitions, connector types, toolbar tools and
connection rules of one diagram language (sequence, class, state, ...).
The engine consults the active plugin but never hard-codes a notation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from pydantic import BaseModel, Field, model_validator

from .errors import UnknownPluginError
from .events import EventDispatcher, EventType, PluginEvent
from .geometry import SIDES
from .logging import get_logger

if TYPE_CHECKING:
    from .models import Connection, Element, Shape

logger = get_logger("plugins")


class ToolType(str, Enum):
    """What a toolbar tool does when clicked on the canvas."""
    SHAPE = "shape"
    CONNECTOR = "connector"
    ACTION = "action"


class LineStyle(str, Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class ArrowType(str, Enum):
    """Arrow heads at a connector end."""
    NONE = "none"
    FILLED = "filled"
    OPEN = "open"
    TRIANGLE = "triangle"
    DIAMOND = "diamond"
    DIAMOND_FILLED = "diamond-filled"
    CIRCLE_FILLED = "circle-filled"
    CROWFOOT = "crowfoot"


class ToolDefinition(BaseModel):
    """A toolbar entry."""
    id: str
    name: str
    type: ToolType = ToolType.SHAPE
    shortcut: Optional[str] = None
    cursor: str = "crosshair"


class ShapeDefinition(BaseModel):
    """Sizing and anchoring rules for one shape type."""
    type: str
    name: str
    default_width: float = 120
    default_height: float = 60
    min_width: float = 40
    min_height: float = 30
    resizable: bool = True
    has_text: bool = True
    connection_points: list[str] = Field(default_factory=lambda: list(SIDES))
    default_properties: dict[str, Any] = Field(default_factory=dict)
    default_style: dict[str, Any] = Field(default_factory=dict)
    shortcut: Optional[str] = None

    @model_validator(mode="after")
    def fit_minimum(self) -> "ShapeDefinition":
        # Small markers (bars, pseudo-states) are smaller than the generic minimum
        self.min_width = min(self.min_width, self.default_width)
        self.min_height = min(self.min_height, self.default_height)
        return self

    def shape_options(self) -> dict[str, Any]:
        """Constructor options for a new shape of this type."""
        options: dict[str, Any] = {
            "width": self.default_width,
            "height": self.default_height,
            "min_width": self.min_width,
            "min_height": self.min_height,
            "resizable": self.resizable,
            "connection_sides": list(self.connection_points),
        }
        if self.default_properties:
            options["properties"] = dict(self.default_properties)
        if self.default_style:
            options["style"] = dict(self.default_style)
        return options


class ConnectorDefinition(BaseModel):
    """Line style, arrow heads and endpoint rules for one connector type."""
    type: str
    name: str
    line_style: LineStyle = LineStyle.SOLID
    source_arrow: ArrowType = ArrowType.NONE
    target_arrow: ArrowType = ArrowType.FILLED
    # Empty means any shape type
    valid_sources: list[str] = Field(default_factory=list)
    valid_targets: list[str] = Field(default_factory=list)
    allow_self: bool = False
    shortcut: Optional[str] = None

    def style(self) -> dict[str, Any]:
        """Connection style record for this connector."""
        return {
            "lineStyle": self.line_style.value,
            "sourceArrow": self.source_arrow.value,
            "targetArrow": self.target_arrow.value,
        }

    def accepts(self, source_type: str, target_type: str) -> bool:
        if self.valid_sources and source_type not in self.valid_sources:
            return False
        if self.valid_targets and target_type not in self.valid_targets:
            return False
        return True


class PropertyEditor(BaseModel):
    """Describes one editable field in a properties panel."""
    key: str
    label: str
    type: str = "text"
    options: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


ConnectionVerdict = Union[bool, Mapping[str, Any], ValidationResult, None]

INVALID_CONNECTION = "Invalid connection"


def normalize_validation(result: ConnectionVerdict) -> ValidationResult:
    """
    Accept every verdict shape a plugin may return.

    ``True``/``False``, a mapping with ``valid``/``message``, or a
    ``ValidationResult``. ``None`` counts as a rejection.
    """
    if isinstance(result, ValidationResult):
        return result
    if isinstance(result, bool):
        return ValidationResult(result, None if result else INVALID_CONNECTION)
    if isinstance(result, Mapping):
        valid = bool(result.get("valid", False))
        message = result.get("message")
        if not valid and not message:
            message = INVALID_CONNECTION
        return ValidationResult(valid, message)
    return ValidationResult(False, INVALID_CONNECTION)


class DiagramPlugin(ABC):
    """
    Capability interface of a diagram notation.

    Subclasses set ``id``, ``name`` and ``color`` and provide their shape
    definitions and connector types. Tools default to one per definition,
    using each definition's shortcut.
    """
    id: str = ""
    name: str = ""
    color: str = "#666666"

    @abstractmethod
    def shape_definitions(self) -> dict[str, ShapeDefinition]:
        """Shape definitions keyed by shape type."""

    def connector_types(self) -> list[ConnectorDefinition]:
        return []

    def shape_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(id=d.type, name=d.name, type=ToolType.SHAPE, shortcut=d.shortcut)
            for d in self.shape_definitions().values()
        ]

    def connector_tools(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(id=c.type, name=c.name, type=ToolType.CONNECTOR, shortcut=c.shortcut)
            for c in self.connector_types()
        ]

    def tools(self) -> list[ToolDefinition]:
        return [*self.shape_tools(), *self.connector_tools()]

    def get_shape_definition(self, shape_type: str) -> Optional[ShapeDefinition]:
        return self.shape_definitions().get(shape_type)

    def get_connector_type(self, connector_type: str) -> Optional[ConnectorDefinition]:
        for connector in self.connector_types():
            if connector.type == connector_type:
                return connector
        return None

    def is_shape_tool(self, tool_id: str) -> bool:
        return tool_id in self.shape_definitions()

    def is_connector_tool(self, tool_id: str) -> bool:
        return self.get_connector_type(tool_id) is not None

    def validate_connection(
        self, source: "Shape", target: "Shape", connector_type: str
    ) -> ConnectionVerdict:
        """
        Decide whether ``source`` may connect to ``target`` with a connector.

        The default enforces the connector's valid source/target type lists
        and its self-connection flag.
        """
        connector = self.get_connector_type(connector_type)
        if connector is None:
            return ValidationResult(True)
        if source.id == target.id and not connector.allow_self:
            return ValidationResult(False, f"{connector.name} cannot connect a shape to itself")
        if connector.valid_sources and source.type not in connector.valid_sources:
            return ValidationResult(False, f"{connector.name} cannot start at {source.type}")
        if connector.valid_targets and target.type not in connector.valid_targets:
            return ValidationResult(False, f"{connector.name} cannot end at {target.type}")
        return ValidationResult(True)

    def property_editors(self, element: "Element") -> list[PropertyEditor]:
        from .models import Connection

        if isinstance(element, Connection):
            return [PropertyEditor(key="label", label="Label")]
        return [PropertyEditor(key="name", label="Name")]

    def on_activate(self) -> None:
        logger.debug("%s activated", self.name)

    def on_deactivate(self) -> None:
        logger.debug("%s deactivated", self.name)

    def to_json_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "shapeTools": [t.model_dump(mode="json") for t in self.shape_tools()],
            "connectorTools": [t.model_dump(mode="json") for t in self.connector_tools()],
            "shapes": {k: d.model_dump(mode="json") for k, d in self.shape_definitions().items()},
            "connectors": [c.model_dump(mode="json") for c in self.connector_types()],
        }


class PluginRegistry:
    """Registered notations and the one currently active."""

    def __init__(self, events: Optional[EventDispatcher] = None):
        self._events = events
        self._plugins: dict[str, DiagramPlugin] = {}
        self._active: Optional[DiagramPlugin] = None

    def register(self, plugin: DiagramPlugin) -> None:
        if not isinstance(plugin, DiagramPlugin):
            raise TypeError("Plugin must extend DiagramPlugin")
        self._plugins[plugin.id] = plugin
        logger.info("Registered plugin: %s", plugin.name)

    def get(self, plugin_id: str) -> Optional[DiagramPlugin]:
        return self._plugins.get(plugin_id)

    def all(self) -> list[DiagramPlugin]:
        return list(self._plugins.values())

    def ids(self) -> list[str]:
        return list(self._plugins)

    def has(self, plugin_id: str) -> bool:
        return plugin_id in self._plugins

    @property
    def active(self) -> Optional[DiagramPlugin]:
        return self._active

    def activate(self, plugin_id: str) -> DiagramPlugin:
        """Switch the active notation. Raises UnknownPluginError if unregistered."""
        plugin = self._plugins.get(plugin_id)
        if plugin is None:
            raise UnknownPluginError(plugin_id)

        if self._active is not None:
            self._active.on_deactivate()

        self._active = plugin
        plugin.on_activate()
        logger.info("Activated plugin: %s", plugin.name)

        if self._events is not None:
            self._events.emit(EventType.PLUGIN_ACTIVATED, PluginEvent(plugin.id, plugin.name))
        return plugin
