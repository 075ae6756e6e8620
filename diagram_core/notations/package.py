"""Package diagrams."""

from ..plugins import ArrowType, ConnectorDefinition, DiagramPlugin, LineStyle, PropertyEditor, ShapeDefinition

SHAPES = [
    ShapeDefinition(
        type=shape_type, name=label, default_width=180, default_height=120,
        default_properties={"name": label, **extra},
    )
    for shape_type, label, extra in (
        ("package", "Package", {}),
        ("subsystem", "Subsystem", {"stereotype": "subsystem"}),
        ("model", "Model", {"stereotype": "model"}),
        ("profile", "Profile", {"stereotype": "profile"}),
    )
] + [
    ShapeDefinition(
        type="namespace", name="Namespace", default_width=150, default_height=80,
        default_properties={"name": "Namespace"},
    ),
]

CONNECTORS = [
    ConnectorDefinition(
        type="pkgImport", name="Import", line_style=LineStyle.DASHED, target_arrow=ArrowType.OPEN,
    ),
    ConnectorDefinition(
        type="pkgAccess", name="Access", line_style=LineStyle.DASHED, target_arrow=ArrowType.OPEN,
    ),
    ConnectorDefinition(
        type="pkgMerge", name="Merge", line_style=LineStyle.DASHED, target_arrow=ArrowType.OPEN,
    ),
    ConnectorDefinition(
        type="pkgContainment", name="Containment",
        source_arrow=ArrowType.CIRCLE_FILLED, target_arrow=ArrowType.NONE,
    ),
]


class PackagePlugin(DiagramPlugin):
    id = "package"
    name = "Package Diagram"
    color = "#64748B"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)

    def property_editors(self, element):
        if element.type in self.shape_definitions():
            return [
                PropertyEditor(key="name", label="Name"),
                PropertyEditor(key="stereotype", label="Stereotype"),
            ]
        return super().property_editors(element)
