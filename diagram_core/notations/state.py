"""State machine diagrams."""

from ..plugins import ArrowType, ConnectorDefinition, DiagramPlugin, PropertyEditor, ShapeDefinition

SHAPES = [
    ShapeDefinition(
        type="initial", name="Initial State", default_width=30, default_height=30,
        resizable=False, has_text=False,
    ),
    ShapeDefinition(
        type="final", name="Final State", default_width=30, default_height=30,
        resizable=False, has_text=False,
    ),
    ShapeDefinition(
        type="state", name="State", default_width=120, default_height=60,
        default_properties={"name": "State", "entryAction": "", "exitAction": "", "doActivity": ""},
    ),
    ShapeDefinition(
        type="composite", name="Composite State", default_width=200, default_height=150,
        default_properties={"name": "Composite State"},
    ),
    ShapeDefinition(
        type="choice", name="Choice", default_width=40, default_height=40,
        resizable=False, has_text=False,
    ),
    ShapeDefinition(
        type="forkjoin", name="Fork/Join", default_width=8, default_height=80, has_text=False,
    ),
    ShapeDefinition(
        type="history", name="History", default_width=30, default_height=30,
        resizable=False, default_properties={"deep": False},
    ),
]

CONNECTORS = [
    ConnectorDefinition(type="transition", name="Transition", target_arrow=ArrowType.OPEN),
    ConnectorDefinition(
        type="selfTransition", name="Self Transition", target_arrow=ArrowType.FILLED,
        valid_sources=["state", "composite"], valid_targets=["state", "composite"], allow_self=True,
    ),
]


class StatePlugin(DiagramPlugin):
    id = "state"
    name = "State Machine"
    color = "#8B5CF6"

    initial_type = "initial"
    final_type = "final"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)

    def validate_connection(self, source, target, connector_type):
        if target.type == self.initial_type:
            return {"valid": False, "message": "Nothing can transition into an initial node"}
        if source.type == self.final_type:
            return {"valid": False, "message": "A final node has no outgoing transitions"}
        return super().validate_connection(source, target, connector_type)

    def property_editors(self, element):
        if element.type == "state":
            return [
                PropertyEditor(key="name", label="State Name"),
                PropertyEditor(key="entryAction", label="Entry Action"),
                PropertyEditor(key="exitAction", label="Exit Action"),
                PropertyEditor(key="doActivity", label="Do Activity"),
            ]
        return super().property_editors(element)
