"""Tests for the entity model."""

import json
import logging

import pytest
from pydantic import ValidationError

from diagram_core.errors import ElementNotFoundError
from diagram_core.events import EventType
from diagram_core.geometry import Point, Rect
from diagram_core.models import DEFAULT_CONNECTION_STYLE, Connection, Diagram, Shape


# ===================================================================
# Shape
# ===================================================================


class TestShape:
    def test_defaults(self) -> None:
        shape = Shape()
        assert shape.id.startswith("shape-")
        assert shape.properties == {"name": "", "stereotype": ""}
        assert shape.style["fill"] == "#FFFFFF"
        assert shape.style["strokeWidth"] == 1.5

    def test_name_shorthand_lands_in_properties(self) -> None:
        shape = Shape(name="Order", properties={"guard": "x"})
        assert shape.name == "Order"
        assert shape.properties["guard"] == "x"

    def test_name_shorthand_overrides_properties(self) -> None:
        shape = Shape(name="Explicit", properties={"name": "Default", "stereotype": "entity"})
        assert shape.name == "Explicit"
        assert shape.properties["stereotype"] == "entity"

    def test_style_merges_with_defaults(self) -> None:
        shape = Shape(style={"fill": "#000000"})
        assert shape.style["fill"] == "#000000"
        assert shape.style["stroke"] == "#333333"

    def test_set_size_respects_minimum(self) -> None:
        shape = Shape(min_width=40, min_height=30)
        shape.set_size(5, 5)
        assert (shape.width, shape.height) == (40, 30)

    def test_connection_points(self) -> None:
        shape = Shape(x=0, y=0, width=100, height=60)
        points = shape.get_connection_points()
        assert points["right"] == Point(100, 30)
        assert points["center"] == Point(50, 30)

    def test_nearest_point_uses_allowed_sides(self) -> None:
        shape = Shape(x=0, y=0, width=60, height=80, connection_sides=["bottom"])
        assert shape.get_nearest_connection_point(Point(500, 40)) == ("bottom", Point(30, 80))

    def test_json_omits_transient_state(self) -> None:
        shape = Shape(type="class", diagram_type="class", selected=True, min_width=10)
        data = shape.to_json_dict()
        assert data["diagramType"] == "class"
        for key in ("selected", "hovered", "editing", "minWidth", "min_width"):
            assert key not in data
        assert "selected" not in shape.model_dump(by_alias=True)

    def test_from_json_accepts_camel_case(self) -> None:
        shape = Shape.from_json_dict({"id": "s1", "type": "actor", "diagramType": "sequence", "x": 5})
        assert shape.diagram_type == "sequence"
        assert shape.x == 5

    def test_malformed_geometry_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Shape.from_json_dict({"id": "s1", "x": "left"})


# ===================================================================
# Connection
# ===================================================================


class TestConnection:
    def _pair(self):
        a = Shape(id="a", x=0, y=0, width=100, height=60)
        b = Shape(id="b", x=300, y=0, width=100, height=60)
        conn = Connection()
        conn.set_source(a)
        conn.set_target(b)
        return a, b, conn

    def test_defaults(self) -> None:
        conn = Connection()
        assert conn.style == DEFAULT_CONNECTION_STYLE
        assert conn.properties == {"label": ""}
        assert not conn.is_complete()

    def test_auto_anchors_face_each_other(self) -> None:
        _, _, conn = self._pair()
        assert conn.get_start_point() == Point(100, 30)
        assert conn.get_end_point() == Point(300, 30)

    def test_unresolved_ends_fall_back_to_origin(self) -> None:
        conn = Connection()
        assert conn.get_start_point() == Point(0, 0)
        assert conn.get_end_point() == Point(0, 0)

    def test_named_anchor(self) -> None:
        a, b, conn = self._pair()
        conn.set_source(a, "bottom")
        assert conn.get_start_point() == Point(50, 60)

    def test_unknown_anchor_resolves_to_center(self) -> None:
        a, _, conn = self._pair()
        conn.set_source(a, "middle-ish")
        assert conn.get_start_point() == Point(50, 30)

    def test_is_point_near(self) -> None:
        _, _, conn = self._pair()
        assert conn.is_point_near(Point(200, 35))
        assert not conn.is_point_near(Point(200, 50))

    def test_waypoint_editing(self) -> None:
        _, _, conn = self._pair()
        conn.add_waypoint(Point(200, 100))
        conn.add_waypoint(Point(150, 100), 0)
        conn.add_waypoint(Point(250, 100), 99)
        assert conn.waypoints == [Point(150, 100), Point(200, 100), Point(250, 100)]
        conn.move_waypoint(1, Point(200, 120))
        conn.remove_waypoint(0)
        assert conn.waypoints == [Point(200, 120), Point(250, 100)]
        assert len(conn.get_path()) == 4

    def test_json_round_trip_keys(self) -> None:
        _, _, conn = self._pair()
        conn.add_waypoint(Point(1, 2))
        data = conn.to_json_dict()
        assert data["source"] == {"shapeId": "a", "anchor": "auto"}
        assert data["waypoints"] == [{"x": 1, "y": 2}]
        loaded = Connection.from_json_dict(json.loads(json.dumps(data)))
        assert loaded.source.shape_id == "a"
        assert loaded.waypoints == [Point(1, 2)]
        assert loaded.source_shape is None


# ===================================================================
# Diagram
# ===================================================================


class TestDiagram:
    def test_add_shape_sets_diagram_type_and_emits(self, diagram, recorder) -> None:
        shape = Shape(type="box")
        diagram.add_shape(shape)
        assert shape.diagram_type == "boxes"
        assert recorder.types() == [EventType.SHAPE_ADDED]

    def test_add_shape_at_index_restores_z_order(self, diagram, add_box) -> None:
        a, b, c = add_box(), add_box(), add_box()
        diagram.remove_shape(b.id)
        diagram.add_shape(b, 1)
        assert [s.id for s in diagram.get_shapes()] == [a.id, b.id, c.id]

    def test_remove_missing_shape_returns_none(self, diagram) -> None:
        assert diagram.remove_shape("nope") is None

    def test_require_raises(self, diagram) -> None:
        with pytest.raises(ElementNotFoundError):
            diagram.require_shape("nope")
        with pytest.raises(ElementNotFoundError):
            diagram.require_element("nope")

    def test_add_connection_links_shapes(self, diagram, add_box) -> None:
        a, b = add_box(0, 0), add_box(300, 0)
        conn = Connection(source={"shapeId": a.id}, target={"shapeId": b.id})
        diagram.add_connection(conn)
        assert conn.source_shape is a
        assert conn.target_shape is b
        assert diagram.get_connections_for_shape(a.id) == [conn]

    def test_move_shape_refreshes_connections(self, diagram, add_box, recorder) -> None:
        a, b = add_box(0, 0), add_box(300, 0)
        diagram.add_connection(Connection(source={"shapeId": a.id}, target={"shapeId": b.id}))
        recorder.clear()
        diagram.move_shape(a.id, 10, 0)
        assert a.x == 10
        updates = recorder.of(EventType.CONNECTION_UPDATED)
        assert [u.property for u in updates] == ["path"]

    def test_set_and_unset_property(self, diagram, add_box) -> None:
        a = add_box()
        diagram.set_property(a.id, "guard", "x > 1")
        assert a.properties["guard"] == "x > 1"
        diagram.unset_property(a.id, "guard")
        assert "guard" not in a.properties

    def test_set_style_merge_and_replace(self, diagram, add_box) -> None:
        a = add_box()
        diagram.set_style(a.id, {"fill": "#FF0000"})
        assert a.style["stroke"] == "#333333"
        diagram.set_style(a.id, {"fill": "#00FF00"}, replace=True)
        assert a.style == {"fill": "#00FF00"}

    def test_find_shape_at_point_prefers_topmost(self, diagram, add_box) -> None:
        add_box(0, 0)
        top = add_box(50, 0)
        assert diagram.find_shape_at_point(Point(60, 10)) is top
        assert diagram.find_shape_at_point(Point(500, 500)) is None

    def test_find_element_prefers_shapes(self, diagram, add_box) -> None:
        a, b = add_box(0, 0), add_box(300, 0)
        conn = Connection(source={"shapeId": a.id}, target={"shapeId": b.id})
        diagram.add_connection(conn)
        assert diagram.find_element_at_point(Point(200, 32)) is conn
        assert diagram.find_element_at_point(Point(99, 30)) is a

    def test_get_bounds(self, diagram, add_box) -> None:
        assert diagram.get_bounds() is None
        add_box(0, 0)
        add_box(300, 100)
        assert diagram.get_bounds() == Rect(0, 0, 400, 160)

    def test_clear(self, diagram, add_box) -> None:
        add_box()
        diagram.clear()
        assert diagram.get_shapes() == []
        assert diagram.get_connections() == []


class TestDiagramSerialization:
    def test_round_trip(self, diagram, add_box) -> None:
        a, b = add_box(0, 0, name="A"), add_box(300, 0, name="B")
        diagram.add_connection(Connection(type="link", source={"shapeId": a.id}, target={"shapeId": b.id}))
        data = json.loads(json.dumps(diagram.to_json_dict()))

        loaded = Diagram.from_json_dict(data)
        assert loaded.to_json_dict() == diagram.to_json_dict()
        conn = loaded.get_connections()[0]
        assert conn.source_shape is loaded.get_shape(a.id)

    def test_load_emits_nothing(self, events, recorder) -> None:
        data = {"type": "boxes", "shapes": [{"id": "a", "type": "box"}], "connections": []}
        Diagram.from_json_dict(data, events=events)
        assert recorder.events == []

    def test_dangling_connection_is_kept(self, caplog) -> None:
        data = {
            "type": "boxes",
            "shapes": [{"id": "a", "type": "box"}],
            "connections": [{"id": "c1", "source": {"shapeId": "a"}, "target": {"shapeId": "ghost"}}],
        }
        with caplog.at_level(logging.WARNING, logger="diagram_core"):
            loaded = Diagram.from_json_dict(data)
        conn = loaded.get_connection("c1")
        assert conn is not None
        assert conn.source_shape is loaded.get_shape("a")
        assert conn.target_shape is None
        assert "dangling target ghost" in caplog.text

    def test_metadata_defaults_merge(self) -> None:
        loaded = Diagram.from_json_dict({"metadata": {"author": "ana"}})
        assert loaded.metadata == {"author": "ana", "version": "1.0"}
