"""Component diagrams."""

from ..plugins import ArrowType, ConnectorDefinition, DiagramPlugin, LineStyle, ShapeDefinition

SHAPES = [
    ShapeDefinition(
        type="component", name="Component", default_width=140, default_height=80,
        default_properties={"name": "Component"},
    ),
    ShapeDefinition(
        type="interface", name="Interface", default_width=60, default_height=40,
        default_properties={"name": "IInterface"},
    ),
    ShapeDefinition(
        type="port", name="Port", default_width=16, default_height=16,
        resizable=False, has_text=False,
    ),
    ShapeDefinition(
        type="provided", name="Provided Interface", default_width=30, default_height=30,
        resizable=False,
    ),
    ShapeDefinition(
        type="required", name="Required Interface", default_width=30, default_height=30,
        resizable=False,
    ),
    ShapeDefinition(
        type="artifact", name="Artifact", default_width=100, default_height=70,
        default_properties={"name": "artifact.jar"},
    ),
]

CONNECTORS = [
    ConnectorDefinition(
        type="compDependency", name="Dependency",
        line_style=LineStyle.DASHED, target_arrow=ArrowType.OPEN,
    ),
    ConnectorDefinition(type="compAssembly", name="Assembly", target_arrow=ArrowType.NONE),
]


class ComponentPlugin(DiagramPlugin):
    id = "component"
    name = "Component Diagram"
    color = "#78716C"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)
