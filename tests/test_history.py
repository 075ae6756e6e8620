"""Tests for commands and the undo/redo history."""

import pytest

from diagram_core.commands import (
    AddConnection,
    AddShape,
    Command,
    CompositeCommand,
    MoveShapes,
    RemoveConnection,
    RemoveShape,
    ResizeShape,
    SetWaypoints,
    UpdateProperty,
    UpdateStyle,
)
from diagram_core.errors import ElementNotFoundError
from diagram_core.events import EventType
from diagram_core.geometry import Point, Rect
from diagram_core.history import CommandManager
from diagram_core.models import Connection, Shape


def content(diagram) -> dict:
    """Diagram JSON without the timestamps."""
    data = diagram.to_json_dict()
    return {"shapes": data["shapes"], "connections": data["connections"]}


@pytest.fixture
def linked(diagram, add_box):
    a, b = add_box(0, 0, name="A"), add_box(300, 0, name="B")
    conn = Connection(type="link", source={"shapeId": a.id}, target={"shapeId": b.id})
    diagram.add_connection(conn)
    return a, b, conn


class FailingCommand(Command):
    def __init__(self, fail_on="execute"):
        self.fail_on = fail_on

    @property
    def description(self) -> str:
        return "Fail"

    def execute(self) -> None:
        if self.fail_on == "execute":
            raise RuntimeError("execute failed")

    def undo(self) -> None:
        if self.fail_on == "undo":
            raise RuntimeError("undo failed")


# ===================================================================
# Commands: execute then undo restores the diagram
# ===================================================================


class TestInverseLaw:
    def _check(self, diagram, command) -> None:
        before = content(diagram)
        command.execute()
        assert content(diagram) != before
        command.undo()
        assert content(diagram) == before

    def test_add_shape(self, diagram, linked) -> None:
        self._check(diagram, AddShape(diagram, Shape(type="box")))

    def test_remove_shape(self, diagram, linked) -> None:
        self._check(diagram, RemoveShape(diagram, linked[0].id))

    def test_move_shapes(self, diagram, linked) -> None:
        self._check(diagram, MoveShapes(diagram, [linked[0].id, linked[1].id], 15, -5))

    def test_resize_shape(self, diagram, linked) -> None:
        a = linked[0]
        self._check(diagram, ResizeShape(diagram, a.id, a.get_bounds(), Rect(0, 0, 200, 90)))

    def test_add_connection(self, diagram, linked) -> None:
        a, b, _ = linked
        conn = Connection(type="link", source={"shapeId": b.id}, target={"shapeId": a.id})
        self._check(diagram, AddConnection(diagram, conn))

    def test_remove_connection(self, diagram, linked) -> None:
        self._check(diagram, RemoveConnection(diagram, linked[2].id))

    def test_update_existing_property(self, diagram, linked) -> None:
        self._check(diagram, UpdateProperty(diagram, linked[0].id, "name", "Renamed"))

    def test_update_new_property_is_removed_on_undo(self, diagram, linked) -> None:
        a = linked[0]
        self._check(diagram, UpdateProperty(diagram, a.id, "guard", "x"))
        assert "guard" not in a.properties

    def test_update_style(self, diagram, linked) -> None:
        self._check(diagram, UpdateStyle(diagram, linked[2].id, {"stroke": "#FF0000", "dash": "4 2"}))
        assert "dash" not in linked[2].style

    def test_set_waypoints(self, diagram, linked) -> None:
        self._check(diagram, SetWaypoints(diagram, linked[2].id, [Point(150, 100)]))

    def test_composite(self, diagram, linked) -> None:
        a, b, conn = linked
        composite = CompositeCommand([
            RemoveConnection(diagram, conn.id),
            UpdateProperty(diagram, a.id, "name", "X"),
        ], label="Two things")
        assert composite.description == "Two things"
        assert len(composite) == 2
        self._check(diagram, composite)


class TestRemoveShapeCascade:
    def test_removes_attached_connections(self, diagram, linked) -> None:
        a, b, conn = linked
        command = RemoveShape(diagram, a.id)
        command.execute()
        assert not diagram.has_shape(a.id)
        assert diagram.get_connections() == []

    def test_undo_restores_order_and_references(self, diagram, add_box, linked) -> None:
        a, b, conn = linked
        c = add_box(600, 0)
        other = Connection(source={"shapeId": b.id}, target={"shapeId": c.id})
        diagram.add_connection(other)
        back = Connection(source={"shapeId": c.id}, target={"shapeId": a.id})
        diagram.add_connection(back)

        command = RemoveShape(diagram, a.id)
        command.execute()
        assert [x.id for x in diagram.get_connections()] == [other.id]

        command.undo()
        assert [s.id for s in diagram.get_shapes()] == [a.id, b.id, c.id]
        assert [x.id for x in diagram.get_connections()] == [conn.id, other.id, back.id]
        assert conn.source_shape is a
        assert back.target_shape is a

    def test_missing_shape_raises_at_construction(self, diagram) -> None:
        with pytest.raises(ElementNotFoundError):
            RemoveShape(diagram, "ghost")


class TestDescriptions:
    def test_descriptions(self, diagram, linked) -> None:
        a, b, conn = linked
        assert AddShape(diagram, Shape(type="actor")).description == "Add actor"
        assert RemoveShape(diagram, a.id).description == "Delete box"
        assert MoveShapes(diagram, [a.id], 1, 1).description == "Move box"
        assert MoveShapes(diagram, [a.id, b.id], 1, 1).description == "Move 2 shapes"
        assert AddConnection(diagram, Connection(type="link")).description == "Connect with link"
        assert RemoveConnection(diagram, conn.id).description == "Delete connection"
        assert UpdateProperty(diagram, a.id, "name", "x").description == "Update name"
        assert CompositeCommand([]).description == "Multiple actions"

    def test_base_command_is_abstract(self) -> None:
        command = Command()
        assert command.description == "Unknown action"
        with pytest.raises(NotImplementedError):
            command.execute()
        with pytest.raises(NotImplementedError):
            command.undo()


class TestCompositeRollback:
    def test_partial_failure_is_rolled_back(self, diagram, linked) -> None:
        a = linked[0]
        before = content(diagram)
        composite = CompositeCommand([UpdateProperty(diagram, a.id, "name", "X"), FailingCommand()])
        with pytest.raises(RuntimeError):
            composite.execute()
        assert content(diagram) == before


# ===================================================================
# CommandManager
# ===================================================================


class TestCommandManager:
    def test_undo_redo_chain(self, diagram, history) -> None:
        shapes = [Shape(type="box", name=str(i)) for i in range(3)]
        for shape in shapes:
            history.execute(AddShape(diagram, shape))
        assert len(diagram.get_shapes()) == 3

        assert history.undo() and history.undo() and history.undo()
        assert diagram.get_shapes() == []
        assert not history.can_undo()
        assert history.undo() is False

        assert history.redo() and history.redo() and history.redo()
        assert [s.name for s in diagram.get_shapes()] == ["0", "1", "2"]
        assert not history.can_redo()
        assert history.redo() is False

    def test_new_command_clears_redo(self, diagram, history) -> None:
        history.execute(AddShape(diagram, Shape()))
        history.undo()
        assert history.can_redo()
        history.execute(AddShape(diagram, Shape()))
        assert not history.can_redo()

    def test_capacity_evicts_oldest(self, diagram, events) -> None:
        history = CommandManager(events, max_history=50)
        commands = [AddShape(diagram, Shape()) for _ in range(51)]
        for command in commands:
            history.execute(command)
        assert len(history.undo_stack) == 50
        assert history.undo_stack[0] is commands[1]
        assert history.get_state().length == 50

    def test_state_and_events(self, diagram, history, recorder) -> None:
        history.execute(AddShape(diagram, Shape(type="box")))
        state = history.get_state()
        assert state.can_undo and not state.can_redo
        assert state.undo_description == "Add box"

        assert recorder.types()[-3:] == [
            EventType.COMMAND_EXECUTED,
            EventType.HISTORY_CHANGED,
            EventType.DIAGRAM_MODIFIED,
        ]
        assert recorder.of(EventType.DIAGRAM_MODIFIED)[0].diagram_id == diagram.id

        recorder.clear()
        history.undo()
        assert recorder.types()[-3:] == [
            EventType.COMMAND_UNDONE,
            EventType.HISTORY_CHANGED,
            EventType.DIAGRAM_MODIFIED,
        ]
        assert history.get_state().redo_description == "Add box"

    def test_add_to_history_does_not_execute(self, diagram, history, add_box, recorder) -> None:
        a = add_box()
        a.move(10, 0)
        history.add_to_history(MoveShapes(diagram, [a.id], 10, 0))
        assert a.x == 10
        assert EventType.COMMAND_EXECUTED not in recorder.types()
        history.undo()
        assert a.x == 0

    def test_failed_execute_is_not_recorded(self, history, caplog) -> None:
        with pytest.raises(RuntimeError):
            history.execute(FailingCommand())
        assert not history.can_undo()
        assert "Error executing command: Fail" in caplog.text

    def test_failed_undo_keeps_command(self, history) -> None:
        command = FailingCommand(fail_on="undo")
        history.execute(command)
        assert history.undo() is False
        assert history.undo_stack == (command,)
        assert not history.can_redo()

    def test_clear(self, diagram, history, recorder) -> None:
        history.execute(AddShape(diagram, Shape()))
        history.undo()
        recorder.clear()
        history.clear()
        assert not history.can_undo() and not history.can_redo()
        assert recorder.types() == [EventType.HISTORY_CHANGED]
