"""Entity-relationship diagrams."""

from ..plugins import ArrowType, ConnectorDefinition, DiagramPlugin, PropertyEditor, ShapeDefinition

ENTITY_PROPERTIES = {
    "attributes": [
        {"name": "id", "isPK": True, "type": "INT"},
        {"name": "name", "isPK": False, "type": "VARCHAR"},
    ],
}

SHAPES = [
    ShapeDefinition(
        type="entity", name="Entity", default_width=150, default_height=120,
        default_properties={"name": "Entity", **ENTITY_PROPERTIES},
    ),
    ShapeDefinition(
        type="weakEntity", name="Weak Entity", default_width=150, default_height=120,
        default_properties={"name": "WeakEntity", **ENTITY_PROPERTIES},
    ),
    ShapeDefinition(
        type="attribute", name="Attribute", default_width=100, default_height=40,
        default_properties={
            "name": "attribute", "isKey": False, "isMultivalued": False, "isDerived": False,
        },
    ),
    ShapeDefinition(
        type="relationship", name="Relationship", default_width=80, default_height=60,
        default_properties={"name": "relates"},
    ),
]

CONNECTORS = [
    ConnectorDefinition(type="erdLink", name="Link", target_arrow=ArrowType.NONE),
    ConnectorDefinition(
        type="erdOneToMany", name="One to Many",
        source_arrow=ArrowType.NONE, target_arrow=ArrowType.CROWFOOT,
    ),
    ConnectorDefinition(
        type="erdManyToMany", name="Many to Many",
        source_arrow=ArrowType.CROWFOOT, target_arrow=ArrowType.CROWFOOT,
    ),
]


class ERDPlugin(DiagramPlugin):
    id = "erd"
    name = "Entity Relationship"
    color = "#06B6D4"

    def shape_definitions(self):
        return {d.type: d for d in SHAPES}

    def connector_types(self):
        return list(CONNECTORS)

    def property_editors(self, element):
        if element.type in ("entity", "weakEntity"):
            return [
                PropertyEditor(key="name", label="Entity Name"),
                PropertyEditor(key="attributes", label="Attributes", type="list"),
            ]
        if element.type == "attribute":
            return [
                PropertyEditor(key="name", label="Name"),
                PropertyEditor(key="isKey", label="Primary Key", type="checkbox"),
                PropertyEditor(key="isMultivalued", label="Multivalued", type="checkbox"),
                PropertyEditor(key="isDerived", label="Derived", type="checkbox"),
            ]
        return super().property_editors(element)
