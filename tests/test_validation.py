"""Tests for diagram validation and repair."""

from diagram_core.models import Connection, Diagram, Shape
from diagram_core.validation import IssueSeverity, repair_command, validate_diagram, validation_summary


def messages(issues, severity):
    return [i.message for i in issues if i.severity == severity]


def test_empty_diagram() -> None:
    issues = validate_diagram(Diagram())
    assert [i.to_dict() for i in issues] == [{"type": "info", "message": "Diagram has no shapes"}]
    assert validation_summary(issues)["valid"]


def test_clean_diagram_has_no_errors(diagram, add_box, plugin) -> None:
    a, b = add_box(0, 0, name="A"), add_box(300, 0, name="B")
    diagram.add_connection(Connection(type="link", source={"shapeId": a.id}, target={"shapeId": b.id}))
    issues = validate_diagram(diagram, plugin)
    assert issues == []
    assert validation_summary(issues) == {"total": 0, "errors": 0, "warnings": 0, "info": 0, "valid": True}


def test_structural_problems(diagram, add_box, plugin) -> None:
    a = add_box(0, 0, name="A")
    b = add_box(300, 0)
    c = add_box(600, 0, name="C")
    c.width = 10
    diagram.add_shape(Shape(type="hexagon", name="H"))
    diagram.add_connection(Connection(type="link", source={"shapeId": a.id}, target={"shapeId": b.id}))
    diagram.add_connection(Connection(type="link", source={"shapeId": a.id}, target={"shapeId": b.id}))
    diagram.add_connection(Connection(type="link", source={"shapeId": a.id}, target={"shapeId": a.id}))
    diagram.add_connection(Connection(type="wire", source={"shapeId": b.id}, target={"shapeId": "ghost"}))

    issues = validate_diagram(diagram, plugin)
    errors = messages(issues, IssueSeverity.ERROR)
    warnings = messages(issues, IssueSeverity.WARNING)

    assert "Connection target 'ghost' does not exist" in errors
    assert any("below its minimum" in m for m in errors)
    assert any(m.startswith("Duplicate link connection") for m in warnings)
    assert "Connection connects a shape to itself" in warnings
    assert "box shape has no name" in warnings
    assert "Shape type 'hexagon' is not part of Boxes" in warnings
    assert "Connector type 'wire' is not part of Boxes" in warnings
    assert "Shape 'C' has no connections" in messages(issues, IssueSeverity.INFO)
    assert not validation_summary(issues)["valid"]


def test_repair_removes_dangling_connections_undoably(history) -> None:
    data = {
        "type": "boxes",
        "shapes": [{"id": "a", "type": "box", "properties": {"name": "A"}}],
        "connections": [
            {"id": "c1", "source": {"shapeId": "a"}, "target": {"shapeId": "ghost"}},
            {"id": "c2", "source": {"shapeId": None}, "target": {"shapeId": "a"}},
        ],
    }
    diagram = Diagram.from_json_dict(data)
    command = repair_command(diagram)
    assert command is not None
    assert command.description == "Remove 2 dangling connections"

    history.execute(command)
    assert diagram.get_connections() == []
    assert repair_command(diagram) is None

    history.undo()
    assert [c.id for c in diagram.get_connections()] == ["c1", "c2"]
