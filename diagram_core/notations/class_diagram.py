"""UML class diagrams."""

from ..models import Connection
from ..plugins import ArrowType, ConnectorDefinition, DiagramPlugin, LineStyle, PropertyEditor, ShapeDefinition

CLASSIFIER_PROPERTIES = {
    "stereotype": "",
    "attributes": [],
    "methods": [],
    "isAbstract": False,
}

SHAPES = [
    ShapeDefinition(
        type="class", name="Class", default_width=150, default_height=120,
        default_properties={"name": "ClassName", **CLASSIFIER_PROPERTIES}, shortcut="C",
    ),
    ShapeDefinition(
        type="interface", name="Interface", default_width=150, default_height=120,
        default_properties={
            "name": "IInterface", **CLASSIFIER_PROPERTIES, "stereotype": "interface",
        },
        shortcut="I",
    ),
    ShapeDefinition(
        type="package", name="Package", default_width=200, default_height=150,
        default_properties={"name": "Package"}, shortcut="P",
    ),
]

CONNECTORS = [
    ConnectorDefinition(type="inheritance", name="Inheritance", target_arrow=ArrowType.TRIANGLE),
    ConnectorDefinition(type="association", name="Association", target_arrow=ArrowType.NONE, allow_self=True),
    ConnectorDefinition(
        type="aggregation", name="Aggregation",
        source_arrow=ArrowType.DIAMOND, target_arrow=ArrowType.NONE,
    ),
    ConnectorDefinition(
        type="composition", name="Composition",
        source_arrow=ArrowType.DIAMOND_FILLED, target_arrow=ArrowType.NONE,
    ),
    ConnectorDefinition(
        type="dependency", name="Dependency",
        line_style=LineStyle.DASHED, target_arrow=ArrowType.OPEN,
    ),
    ConnectorDefinition(
        type="realization", name="Realization",
        line_style=LineStyle.DASHED, target_arrow=ArrowType.TRIANGLE,
        valid_targets=["interface"],
    ),
]


class ClassPlugin(DiagramPlugin):
    id = "class"
    name = "Class Diagram"
    color = "#3B82F6"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)

    def property_editors(self, element):
        if isinstance(element, Connection):
            return [
                PropertyEditor(key="label", label="Label"),
                PropertyEditor(key="sourceMultiplicity", label="Source Multiplicity"),
                PropertyEditor(key="targetMultiplicity", label="Target Multiplicity"),
            ]
        if element.type in ("class", "interface"):
            return [
                PropertyEditor(key="name", label="Name"),
                PropertyEditor(key="stereotype", label="Stereotype"),
                PropertyEditor(key="isAbstract", label="Abstract", type="checkbox"),
                PropertyEditor(key="attributes", label="Attributes", type="list"),
                PropertyEditor(key="methods", label="Methods", type="list"),
            ]
        if element.type == "package":
            return [PropertyEditor(key="name", label="Package Name")]
        return []
