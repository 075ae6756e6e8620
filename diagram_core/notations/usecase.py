"""Use case diagrams."""

from ..plugins import ArrowType, ConnectorDefinition, DiagramPlugin, LineStyle, ShapeDefinition

SHAPES = [
    ShapeDefinition(
        type="ucActor", name="Actor", default_width=50, default_height=80,
        default_properties={"name": "Actor"},
    ),
    ShapeDefinition(
        type="usecase", name="Use Case", default_width=140, default_height=60,
        default_properties={"name": "Use Case"},
    ),
    ShapeDefinition(
        type="system", name="System Boundary", default_width=300, default_height=400,
        default_properties={"name": "System"},
    ),
]

CONNECTORS = [
    ConnectorDefinition(type="ucAssociation", name="Association", target_arrow=ArrowType.NONE),
    ConnectorDefinition(
        type="include", name="Include", line_style=LineStyle.DASHED, target_arrow=ArrowType.OPEN,
        valid_sources=["usecase"], valid_targets=["usecase"],
    ),
    ConnectorDefinition(
        type="extend", name="Extend", line_style=LineStyle.DASHED, target_arrow=ArrowType.OPEN,
        valid_sources=["usecase"], valid_targets=["usecase"],
    ),
    ConnectorDefinition(type="generalization", name="Generalization", target_arrow=ArrowType.TRIANGLE),
]


class UseCasePlugin(DiagramPlugin):
    id = "usecase"
    name = "Use Case Diagram"
    color = "#F97316"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)
