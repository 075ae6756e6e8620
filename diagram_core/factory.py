"""Construction of concrete shapes and connections by type id."""

from __future__ import annotations

from typing import Any, Optional

from .config import EditorSettings
from .errors import UnknownShapeTypeError
from .logging import get_logger
from .models import Connection, Shape
from .plugins import DiagramPlugin

logger = get_logger("factory")


class ShapeFactory:
    """
    Maps shape type ids to a Shape class and default options.

    Unknown types fall back to the plain ``Shape`` unless ``strict`` is set,
    so a file written with a notation that is not installed still loads.
    """

    def __init__(self, settings: Optional[EditorSettings] = None):
        settings = settings or EditorSettings()
        self._classes: dict[str, type[Shape]] = {}
        self._defaults: dict[str, dict[str, Any]] = {}
        self._connector_styles: dict[str, dict[str, Any]] = {}
        self.register("rectangle", Shape, {
            "width": 120,
            "height": 60,
            "min_width": settings.default_min_width,
            "min_height": settings.default_min_height,
        })

    def register(
        self, shape_type: str, shape_cls: type[Shape] = Shape, defaults: Optional[dict] = None
    ) -> None:
        self._classes[shape_type] = shape_cls
        self._defaults[shape_type] = dict(defaults or {})

    def register_plugin(self, plugin: DiagramPlugin) -> None:
        """Register every shape and connector type a plugin defines."""
        for shape_type, definition in plugin.shape_definitions().items():
            self.register(shape_type, Shape, definition.shape_options())
        for connector in plugin.connector_types():
            self._connector_styles[connector.type] = connector.style()
        logger.debug("Registered %d shape types from %s", len(plugin.shape_definitions()), plugin.id)

    def has(self, shape_type: str) -> bool:
        return shape_type in self._classes

    def types(self) -> list[str]:
        return list(self._classes)

    def defaults(self, shape_type: str) -> dict[str, Any]:
        return dict(self._defaults.get(shape_type, {}))

    def create(self, shape_type: str, strict: bool = False, **options: Any) -> Shape:
        """Create a shape; explicit options override the registered defaults."""
        if strict and shape_type not in self._classes:
            raise UnknownShapeTypeError(shape_type)
        shape_cls = self._classes.get(shape_type, Shape)
        data = {**self._defaults.get(shape_type, {}), **options, "type": shape_type}
        return shape_cls.model_validate(data)

    def create_connection(
        self,
        connector_type: str,
        source: Optional[Shape] = None,
        target: Optional[Shape] = None,
        **options: Any,
    ) -> Connection:
        """Create a connection styled for its connector type, linked to its shapes."""
        style = {**self._connector_styles.get(connector_type, {}), **options.pop("style", {})}
        connection = Connection.model_validate({**options, "type": connector_type, "style": style})
        if source is not None:
            connection.set_source(source, connection.source.anchor)
        if target is not None:
            connection.set_target(target, connection.target.anchor)
        return connection

    def shape_from_json(self, data: dict) -> Shape:
        """
        Rebuild a shape from its JSON form.

        Sizing constraints are not persisted, so they come from the type's
        registered defaults; persisted geometry wins over default sizes.
        """
        shape_type = data.get("type", "rectangle")
        shape_cls = self._classes.get(shape_type, Shape)
        if shape_type not in self._classes:
            logger.debug("No registered class for shape type %s", shape_type)
        return shape_cls.model_validate({**self._defaults.get(shape_type, {}), **data})

    def connection_from_json(self, data: dict) -> Connection:
        return Connection.model_validate(data)
