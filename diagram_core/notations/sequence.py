"""Sequence diagrams: lifelines exchanging messages."""

from ..plugins import (
    ArrowType,
    ConnectorDefinition,
    DiagramPlugin,
    LineStyle,
    PropertyEditor,
    ShapeDefinition,
)
from ..models import Connection

PARTICIPANTS = ["object", "actor", "activation"]

SHAPES = [
    ShapeDefinition(
        type="object", name="Lifeline", default_width=120, default_height=50,
        connection_points=["left", "right", "bottom"],
        default_properties={"name": "Object"}, shortcut="L",
    ),
    ShapeDefinition(
        type="actor", name="Actor", default_width=60, default_height=80,
        connection_points=["bottom"],
        default_properties={"name": "Actor"}, shortcut="A",
    ),
    ShapeDefinition(
        type="activation", name="Activation Bar", default_width=16, default_height=60,
        connection_points=["left", "right"], has_text=False, shortcut="B",
    ),
    ShapeDefinition(
        type="fragment", name="Combined Fragment", default_width=200, default_height=120,
        default_properties={"name": "alt", "guard": ""}, shortcut="F",
    ),
    ShapeDefinition(
        type="destroy", name="Destroy", default_width=24, default_height=24,
        resizable=False, has_text=False, shortcut="X",
    ),
    ShapeDefinition(
        type="endpoint", name="Found/Lost Message", default_width=16, default_height=16,
        resizable=False, has_text=False, shortcut="E",
    ),
    ShapeDefinition(
        type="boundary", name="Boundary Object", default_width=100, default_height=50,
        default_properties={"name": "Boundary"},
    ),
]

CONNECTORS = [
    ConnectorDefinition(
        type="syncMessage", name="Synchronous Message", target_arrow=ArrowType.FILLED,
        valid_sources=PARTICIPANTS, valid_targets=PARTICIPANTS, shortcut="M",
    ),
    ConnectorDefinition(
        type="asyncMessage", name="Asynchronous Message", target_arrow=ArrowType.OPEN,
        valid_sources=PARTICIPANTS, valid_targets=PARTICIPANTS, shortcut="N",
    ),
    ConnectorDefinition(
        type="returnMessage", name="Return Message", line_style=LineStyle.DASHED,
        target_arrow=ArrowType.OPEN,
        valid_sources=PARTICIPANTS, valid_targets=PARTICIPANTS, shortcut="R",
    ),
    ConnectorDefinition(
        type="selfMessage", name="Self Call", target_arrow=ArrowType.FILLED,
        valid_sources=PARTICIPANTS, valid_targets=PARTICIPANTS, allow_self=True, shortcut="S",
    ),
]


class SequencePlugin(DiagramPlugin):
    id = "sequence"
    name = "Sequence Diagram"
    color = "#10B981"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)

    def validate_connection(self, source, target, connector_type):
        # Messages to the same lifeline must use the self-call connector
        if connector_type != "selfMessage" and source.id == target.id:
            return {"valid": False, "message": "Use self-call for messages to same object"}
        return super().validate_connection(source, target, connector_type)

    def property_editors(self, element):
        if isinstance(element, Connection):
            return [
                PropertyEditor(key="label", label="Message"),
                PropertyEditor(key="sequenceNumber", label="Sequence #"),
            ]
        if element.type == "object":
            return [
                PropertyEditor(key="name", label="Object Name"),
                PropertyEditor(key="stereotype", label="Stereotype"),
            ]
        if element.type == "actor":
            return [PropertyEditor(key="name", label="Actor Name")]
        return []
