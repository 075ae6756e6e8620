"""Activity diagrams."""

from ..plugins import ArrowType, ConnectorDefinition, LineStyle, ShapeDefinition
from .state import StatePlugin

SHAPES = [
    ShapeDefinition(
        type="actInitial", name="Initial", default_width=30, default_height=30,
        resizable=False, has_text=False,
    ),
    ShapeDefinition(
        type="actFinal", name="Final", default_width=30, default_height=30,
        resizable=False, has_text=False,
    ),
    ShapeDefinition(
        type="action", name="Action", default_width=140, default_height=50,
        default_properties={"name": "Action"},
    ),
    ShapeDefinition(
        type="decision", name="Decision/Merge", default_width=40, default_height=40,
        resizable=False, has_text=False,
    ),
    ShapeDefinition(
        type="actForkJoin", name="Fork/Join", default_width=100, default_height=8, has_text=False,
    ),
    ShapeDefinition(
        type="swimlane", name="Swimlane", default_width=180, default_height=400,
        default_properties={"name": "Swimlane"},
    ),
    ShapeDefinition(
        type="objectNode", name="Object", default_width=100, default_height=50,
        default_properties={"name": "Object"},
    ),
    ShapeDefinition(
        type="sendSignal", name="Send Signal", default_width=100, default_height=40,
        default_properties={"name": "Signal"},
    ),
    ShapeDefinition(
        type="acceptEvent", name="Accept Event", default_width=100, default_height=40,
        default_properties={"name": "Event"},
    ),
]

CONNECTORS = [
    ConnectorDefinition(type="controlFlow", name="Control Flow", target_arrow=ArrowType.FILLED),
    ConnectorDefinition(
        type="objectFlow", name="Object Flow",
        line_style=LineStyle.DASHED, target_arrow=ArrowType.FILLED,
    ),
]


class ActivityPlugin(StatePlugin):
    """Shares the initial/final node rules of state machines."""
    id = "activity"
    name = "Activity Diagram"
    color = "#EF4444"

    initial_type = "actInitial"
    final_type = "actFinal"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)
