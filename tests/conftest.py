"""Shared fixtures: a small test notation and a fully wired editor."""

import pytest

from diagram_backend.session import EditorSession
from diagram_core.config import EditorSettings
from diagram_core.events import EventDispatcher
from diagram_core.factory import ShapeFactory
from diagram_core.history import CommandManager
from diagram_core.interaction import InteractionController
from diagram_core.models import Diagram, Shape
from diagram_core.plugins import ConnectorDefinition, DiagramPlugin, PluginRegistry, ShapeDefinition
from diagram_core.selection import SelectionManager


class BoxPlugin(DiagramPlugin):
    """Plain boxes; ``verdict`` overrides the connection rule when set."""
    id = "boxes"
    name = "Boxes"

    def __init__(self):
        self.verdict = None

    def shape_definitions(self):
        return {
            "box": ShapeDefinition(type="box", name="Box", default_width=100, default_height=60, shortcut="B"),
            "dot": ShapeDefinition(
                type="dot", name="Dot", default_width=20, default_height=20, resizable=False,
            ),
        }

    def connector_types(self):
        return [
            ConnectorDefinition(type="link", name="Link", shortcut="K"),
            ConnectorDefinition(type="loop", name="Loop", allow_self=True),
        ]

    def validate_connection(self, source, target, connector_type):
        if self.verdict is not None:
            return self.verdict
        return super().validate_connection(source, target, connector_type)


class Recorder:
    """Collects every emitted event as ``(event_type, payload)``."""

    def __init__(self, events: EventDispatcher):
        self.events = []
        events.subscribe_all(lambda event_type, payload: self.events.append((event_type, payload)))

    def of(self, event_type):
        return [payload for t, payload in self.events if t == event_type]

    def types(self):
        return [t for t, _ in self.events]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def events() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
def recorder(events) -> Recorder:
    return Recorder(events)


@pytest.fixture
def diagram(events) -> Diagram:
    return Diagram(events=events, type="boxes", name="Test")


@pytest.fixture
def history(events, diagram) -> CommandManager:
    return CommandManager(events, max_history=50, diagram_id=diagram.id)


@pytest.fixture
def selection(events) -> SelectionManager:
    return SelectionManager(events)


@pytest.fixture
def plugin() -> BoxPlugin:
    return BoxPlugin()


@pytest.fixture
def registry(events, plugin) -> PluginRegistry:
    registry = PluginRegistry(events)
    registry.register(plugin)
    registry.activate(plugin.id)
    return registry


@pytest.fixture
def factory(plugin) -> ShapeFactory:
    factory = ShapeFactory()
    factory.register_plugin(plugin)
    return factory


@pytest.fixture
def controller(diagram, selection, history, registry, factory, events) -> InteractionController:
    return InteractionController(
        diagram, selection, history, registry, factory, events=events, settings=EditorSettings(),
    )


@pytest.fixture
def add_box(diagram):
    """Add a box straight to the diagram (no history entry)."""
    def _add(x=0, y=0, width=100, height=60, **kwargs) -> Shape:
        shape = Shape(type="box", x=x, y=y, width=width, height=height, **kwargs)
        diagram.add_shape(shape)
        return shape
    return _add


@pytest.fixture
def session() -> EditorSession:
    """A session with only the box notation installed."""
    return EditorSession(EditorSettings(default_notation="boxes"), plugins=[BoxPlugin()])
