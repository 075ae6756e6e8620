"""
Exceptions raised by the editing engine.

Expected user-driven outcomes (an invalid connection attempt, an empty undo
stack) are return values, not exceptions. These types cover contract
violations and lookups that callers cannot recover from locally.
"""


class DiagramError(Exception):
    """Base class for editing engine errors."""


class UnknownPluginError(DiagramError, KeyError):
    """Raised when activating or looking up a notation that is not registered."""

    def __init__(self, plugin_id: str):
        super().__init__(f"Plugin not found: {plugin_id}")
        self.plugin_id = plugin_id

    def __str__(self) -> str:
        return self.args[0]


class UnknownShapeTypeError(DiagramError, KeyError):
    """Raised by a strict factory lookup for an unregistered shape type."""

    def __init__(self, shape_type: str):
        super().__init__(f"Unknown shape type: {shape_type}")
        self.shape_type = shape_type

    def __str__(self) -> str:
        return self.args[0]


class ElementNotFoundError(DiagramError, LookupError):
    """Raised when a shape or connection id does not exist in the diagram."""

    def __init__(self, element_id: str):
        super().__init__(f"Element not found: {element_id}")
        self.element_id = element_id
