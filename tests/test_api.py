"""Tests for the HTTP/WebSocket service around an editor session."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from diagram_backend.main import create_app
from diagram_backend.settings import ServerSettings
from diagram_backend.websocket_manager import WebSocketManager, event_message
from diagram_core.events import EventType, ToolEvent


@pytest.fixture
def client(session, tmp_path) -> TestClient:
    return TestClient(create_app(session, ServerSettings(diagrams_dir=str(tmp_path))))


def drop(client, x=100, y=100) -> dict:
    response = client.post("/api/tool/drop", json={"tool_id": "box", "x": x, "y": y})
    assert response.status_code == 200
    return response.json()["shape"]


# ===================================================================
# Diagram and files
# ===================================================================


class TestDiagramEndpoints:
    def test_health(self, client) -> None:
        assert client.get("/api/health").json() == {"status": "ok", "connections": 0}

    def test_get_diagram(self, client) -> None:
        state = client.get("/api/diagram").json()
        assert state["plugin"] == "boxes"
        assert state["diagram"]["type"] == "boxes"
        assert state["editing"] is None

    def test_new_diagram(self, client) -> None:
        response = client.post("/api/diagram/new", json={"name": "Flows"})
        assert response.json()["diagram"]["name"] == "Flows"
        assert client.post("/api/diagram/new", json={"type": "nope"}).status_code == 400

    def test_save_open_and_list(self, client, tmp_path) -> None:
        shape = drop(client)
        path = tmp_path / "one.json"
        response = client.post("/api/diagram/save", json={"file_path": str(path)})
        assert response.json() == {"success": True, "file_path": str(path)}

        client.post("/api/diagram/new", json={})
        opened = client.post("/api/diagram/open", json={"file_path": str(path)}).json()
        assert [s["id"] for s in opened["diagram"]["shapes"]] == [shape["id"]]

        (tmp_path / "junk.json").write_text("not json")
        listed = client.get("/api/diagrams").json()["diagrams"]
        assert [(d["path"], d["shapes"]) for d in listed] == [(str(path), 1)]

    def test_list_missing_directory(self, client, tmp_path) -> None:
        response = client.get("/api/diagrams", params={"directory": str(tmp_path / "none")})
        assert response.json() == {"success": True, "diagrams": []}

    def test_open_errors(self, client, tmp_path) -> None:
        assert client.post("/api/diagram/open", json={"file_path": str(tmp_path / "x.json")}).status_code == 404
        bad = tmp_path / "bad.json"
        bad.write_text("{broken")
        assert client.post("/api/diagram/open", json={"file_path": str(bad)}).status_code == 400

    def test_save_without_path(self, client) -> None:
        assert client.post("/api/diagram/save", json={}).status_code == 400


# ===================================================================
# Plugins, tools and input
# ===================================================================


class TestInputEndpoints:
    def test_plugins(self, client) -> None:
        data = client.get("/api/plugins").json()
        assert data["active"] == "boxes"
        assert [p["id"] for p in data["plugins"]] == ["boxes"]
        assert client.post("/api/plugins/nope/activate").status_code == 404

    def test_drop_connector_is_rejected(self, client) -> None:
        response = client.post("/api/tool/drop", json={"tool_id": "link", "x": 0, "y": 0})
        assert response.status_code == 400

    def test_connect_through_pointer_input(self, client, session) -> None:
        a = drop(client, 50, 30)
        b = drop(client, 350, 30)
        assert client.post("/api/tool", json={"tool_id": "link"}).json()["tool"] == "link"

        state = client.post("/api/input/pointer", json={"action": "down", "x": 60, "y": 30}).json()
        assert state["state"] == "connecting"
        client.post("/api/input/pointer", json={"action": "down", "x": 350, "y": 30})

        [conn] = session.diagram.get_connections()
        assert (conn.source.shape_id, conn.target.shape_id) == (a["id"], b["id"])

    def test_drag_through_pointer_input(self, client, session) -> None:
        shape = drop(client, 100, 100)
        client.post("/api/input/pointer", json={"action": "down", "x": 100, "y": 100})
        state = client.post("/api/input/pointer", json={"action": "move", "x": 120, "y": 100}).json()
        assert state["state"] == "dragging"
        state = client.post("/api/input/pointer", json={"action": "up", "x": 140, "y": 100}).json()
        assert state["state"] == "idle"
        assert state["history"]["undoDescription"] == "Move box"
        assert session.diagram.get_shape(shape["id"]).x == shape["x"] + 40

    def test_cancel_reverts_drag(self, client, session) -> None:
        shape = drop(client, 100, 100)
        client.post("/api/input/pointer", json={"action": "down", "x": 100, "y": 100})
        client.post("/api/input/pointer", json={"action": "move", "x": 200, "y": 100})
        assert client.post("/api/input/cancel").json()["state"] == "idle"
        assert session.diagram.get_shape(shape["id"]).x == shape["x"]

    def test_keys(self, client, session) -> None:
        drop(client)
        response = client.post("/api/input/key", json={"key": "Delete"}).json()
        assert response["handled"] is True
        assert session.diagram.get_shapes() == []
        assert client.post("/api/input/key", json={"key": "z", "ctrl": True}).json()["handled"]
        assert len(session.diagram.get_shapes()) == 1
        assert client.post("/api/input/key", json={"key": "q"}).json()["handled"] is False


# ===================================================================
# History, selection and elements
# ===================================================================


class TestEditingEndpoints:
    def test_undo_redo(self, client) -> None:
        assert client.post("/api/undo").json() == {"success": False, "message": "Nothing to undo"}
        drop(client)
        assert client.post("/api/undo").json()["history"]["canRedo"] is True
        assert client.post("/api/redo").json()["success"] is True
        history = client.get("/api/history").json()
        assert history["undo"] == ["Add box"]
        assert history["redo"] == []

    def test_selection(self, client) -> None:
        a = drop(client, 100, 100)
        b = drop(client, 400, 100)
        selection = client.post("/api/selection", json={"element_ids": [a["id"], b["id"]]}).json()
        assert selection["selection"]["count"] == 2
        assert client.post("/api/selection", json={"element_ids": ["ghost"]}).status_code == 404

        assert client.delete("/api/selection").json()["success"] is True
        assert client.get("/api/selection").json()["selection"]["count"] == 0
        assert client.delete("/api/selection").json()["success"] is False

    def test_multi_select_emits_one_change(self, client, session) -> None:
        ids = [drop(client, 100, 100)["id"], drop(client, 400, 100)["id"]]
        changes = []
        session.events.subscribe(EventType.SELECTION_CHANGED, changes.append)
        client.post("/api/selection", json={"element_ids": ids})
        assert [c.count for c in changes] == [2]

    def test_element_edits(self, client) -> None:
        shape = drop(client)
        element = client.get(f"/api/elements/{shape['id']}").json()
        assert element["kind"] == "shape"
        assert element["editors"][0]["key"] == "name"

        updated = client.patch(f"/api/elements/{shape['id']}/properties", json={"key": "name", "value": "API"})
        assert updated.json()["element"]["properties"]["name"] == "API"
        styled = client.patch(f"/api/elements/{shape['id']}/style", json={"style": {"fill": "#000000"}})
        assert styled.json()["element"]["style"]["fill"] == "#000000"

        assert client.get("/api/elements/ghost").status_code == 404
        assert client.patch("/api/elements/ghost/properties", json={"key": "name"}).status_code == 404
        assert client.patch("/api/elements/ghost/style", json={"style": {}}).status_code == 404

    def test_connection_hit_test(self, client, session) -> None:
        drop(client, 50, 30)
        drop(client, 350, 30)
        client.post("/api/tool", json={"tool_id": "link"})
        client.post("/api/input/pointer", json={"action": "down", "x": 50, "y": 30})
        client.post("/api/input/pointer", json={"action": "down", "x": 350, "y": 30})
        conn = session.diagram.get_connections()[0]

        start = conn.get_start_point()
        end = conn.get_end_point()
        middle = {"x": (start.x + end.x) / 2, "y": (start.y + end.y) / 2 + 3}
        assert client.get("/api/connections/at", params=middle).json()["connection"]["id"] == conn.id
        assert client.get("/api/connections/at", params={"x": 0, "y": 500}).json()["connection"] is None

    def test_text_editing(self, client, session) -> None:
        shape = drop(client)
        assert client.post("/api/text/commit", json={"value": "x"}).status_code == 400

        client.post("/api/input/pointer", json={"action": "double_click", "x": 100, "y": 100})
        assert client.get("/api/diagram").json()["editing"]["shape_id"] == shape["id"]
        client.post("/api/text/commit", json={"value": "Named"})
        assert session.diagram.get_shape(shape["id"]).name == "Named"

        client.post("/api/input/pointer", json={"action": "double_click", "x": 100, "y": 100})
        client.post("/api/text/cancel")
        assert client.get("/api/diagram").json()["editing"] is None

    def test_validate_and_repair(self, client, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({
            "type": "boxes",
            "shapes": [{"id": "a", "type": "box", "properties": {"name": "A"}}],
            "connections": [{"id": "c", "source": {"shapeId": "a"}, "target": {"shapeId": "gone"}}],
        }))
        client.post("/api/diagram/open", json={"file_path": str(path)})
        report = client.get("/api/diagram/validate").json()
        assert report["summary"]["valid"] is False

        assert client.post("/api/diagram/repair").json() == {"success": True, "removed": 1}
        assert client.get("/api/diagram/validate").json()["summary"]["errors"] == 0


# ===================================================================
# WebSocket
# ===================================================================


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(json.loads(text))


class TestWebSocket:
    def test_ping(self, client) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("ping")
            assert json.loads(ws.receive_text()) == {"type": "pong"}

    def test_event_message(self) -> None:
        assert event_message(EventType.TOOL_SELECTED, ToolEvent("box")) == {
            "type": "tool:selected", "payload": {"tool_id": "box"},
        }

    def test_broadcast_drops_failed_sockets(self) -> None:
        manager = WebSocketManager()
        good, bad = FakeSocket(), FakeSocket(fail=True)

        async def scenario():
            await manager.connect(good)
            await manager.connect(bad)
            await manager.broadcast({"type": "x"})

        asyncio.run(scenario())
        assert good.accepted
        assert good.sent == [{"type": "x"}]
        assert manager.connection_count == 1

    def test_enqueued_events_are_broadcast(self) -> None:
        manager = WebSocketManager()
        socket = FakeSocket()
        manager.enqueue(EventType.TOOL_SELECTED, ToolEvent("ignored"))

        async def scenario():
            await manager.connect(socket)
            task = asyncio.create_task(manager.run())
            await asyncio.sleep(0)
            manager.enqueue(EventType.TOOL_SELECTED, ToolEvent("box"))
            for _ in range(5):
                await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert socket.sent == [{"type": "tool:selected", "payload": {"tool_id": "box"}}]
