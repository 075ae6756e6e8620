"""
Diagram Editor Backend - FastAPI Application

Exposes one editor session to a browser UI:
- REST API for file operations, plugins, tools, pointer/key input,
  undo/redo, selection, property edits and validation
- WebSocket endpoint broadcasting every engine event
- CORS configuration for local frontend development

Run with ``diagram-editor serve`` or
``uvicorn diagram_backend.main:create_app --factory``.
"""
import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from diagram_core.errors import DiagramError, ElementNotFoundError, UnknownPluginError
from diagram_core.geometry import Point
from diagram_core.models import Connection, Shape
from diagram_core.validation import validate_diagram, validation_summary

from .models import (
    DropToolRequest,
    KeyRequest,
    NewDiagramRequest,
    OpenDiagramRequest,
    PointerAction,
    PointerRequest,
    SaveDiagramRequest,
    SelectRequest,
    SelectToolRequest,
    TextCommitRequest,
    UpdatePropertyRequest,
    UpdateStyleRequest,
)
from .session import EditorSession
from .settings import ServerSettings
from .websocket_manager import WebSocketManager


def _element_dict(element) -> dict:
    kind = "shape" if isinstance(element, Shape) else "connection"
    return {"kind": kind, "element": element.to_json_dict()}


def create_app(
    session: Optional[EditorSession] = None,
    settings: Optional[ServerSettings] = None,
) -> FastAPI:
    """Build the API around ``session`` (a fresh one by default)."""
    session = session or EditorSession()
    settings = settings or ServerSettings.from_env()
    ws_manager = WebSocketManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Forward engine events to WebSocket clients while the app runs."""
        unsubscribe = session.events.subscribe_all(ws_manager.enqueue)
        broadcaster_task = asyncio.create_task(ws_manager.run())

        yield

        unsubscribe()
        broadcaster_task.cancel()
        try:
            await broadcaster_task
        except asyncio.CancelledError:
            pass

    app = FastAPI(
        title="Diagram Editor API",
        description="Editor session service for multi-notation diagrams",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.session = session
    app.state.settings = settings
    app.state.ws_manager = ws_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def interaction_state() -> dict:
        return {
            "success": True,
            "state": session.controller.state.value,
            "tool": session.controller.current_tool,
            "selection": session.selection.snapshot().to_dict(),
            "history": session.history.get_state().to_dict(),
        }

    # --- Health Check ---

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "connections": ws_manager.connection_count}

    # --- Diagram State ---

    @app.get("/api/diagram")
    async def get_diagram():
        """Get the full editor state."""
        return session.get_state()

    # --- File Operations ---

    @app.post("/api/diagram/new")
    async def new_diagram(request: NewDiagramRequest):
        """Create a new empty diagram."""
        try:
            diagram = session.new_diagram(name=request.name, diagram_type=request.type)
        except UnknownPluginError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "diagram": diagram.to_json_dict()}

    @app.post("/api/diagram/open")
    async def open_diagram(request: OpenDiagramRequest):
        """Open a diagram from a JSON file."""
        try:
            diagram = session.open_diagram(request.file_path)
        except FileNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except (ValueError, DiagramError) as e:
            raise HTTPException(status_code=400, detail=f"Failed to open diagram: {e}")
        return {
            "success": True,
            "diagram": diagram.to_json_dict(),
            "file_path": str(session.file_path),
        }

    @app.post("/api/diagram/save")
    async def save_diagram(request: SaveDiagramRequest):
        """Save the diagram to a JSON file."""
        try:
            path = session.save_diagram(request.file_path)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except OSError as e:
            raise HTTPException(status_code=500, detail=f"Failed to save: {e}")
        return {"success": True, "file_path": str(path)}

    @app.get("/api/diagrams")
    async def list_diagrams(directory: Optional[str] = Query(default=None)):
        """List diagram files in a directory."""
        path = Path(directory).expanduser() if directory else settings.diagrams_path
        if not path.exists():
            return {"success": True, "diagrams": []}

        diagrams = []
        for f in sorted(path.glob("*.json")):
            try:
                with open(f) as file:
                    data = json.load(file)
            except (OSError, ValueError):
                continue
            if not isinstance(data, dict):
                continue
            diagrams.append({
                "path": str(f),
                "name": data.get("name", f.stem),
                "type": data.get("type"),
                "shapes": len(data.get("shapes") or []),
                "connections": len(data.get("connections") or []),
            })

        return {"success": True, "diagrams": diagrams}

    # --- Plugins ---

    @app.get("/api/plugins")
    async def list_plugins():
        """List registered notations and the active one."""
        active = session.plugin
        return {
            "success": True,
            "active": active.id if active else None,
            "plugins": [p.to_json_dict() for p in session.registry.all()],
        }

    @app.post("/api/plugins/{plugin_id}/activate")
    async def activate_plugin(plugin_id: str):
        """Switch the active notation."""
        try:
            plugin = session.activate_plugin(plugin_id)
        except UnknownPluginError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {"success": True, "plugin": plugin.to_json_dict()}

    # --- Tools and Input ---

    @app.post("/api/tool")
    async def select_tool(request: SelectToolRequest):
        session.controller.select_tool(request.tool_id)
        return interaction_state()

    @app.post("/api/tool/drop")
    async def drop_tool(request: DropToolRequest):
        """Create a shape from a toolbar item dropped on the canvas."""
        shape = session.controller.drop_tool(request.tool_id, request.x, request.y)
        if shape is None:
            raise HTTPException(status_code=400, detail=f"Tool cannot be dropped: {request.tool_id}")
        return {**interaction_state(), "shape": shape.to_json_dict()}

    @app.post("/api/input/pointer")
    async def pointer_input(request: PointerRequest):
        """Forward a pointer event to the interaction controller."""
        controller = session.controller
        event = request.to_event()
        if request.action == PointerAction.DOWN:
            controller.pointer_down(event)
        elif request.action == PointerAction.MOVE:
            controller.pointer_move(event)
        elif request.action == PointerAction.UP:
            controller.pointer_up(event)
        else:
            controller.double_click(event)
        return interaction_state()

    @app.post("/api/input/key")
    async def key_input(request: KeyRequest):
        """Forward a key press. ``handled`` tells the browser to prevent the default."""
        handled = session.controller.key_down(request.to_event())
        return {**interaction_state(), "handled": handled}

    @app.post("/api/input/cancel")
    async def cancel_input():
        """Abort the live gesture (window lost focus)."""
        session.controller.cancel()
        return interaction_state()

    # --- Undo/Redo ---

    @app.post("/api/undo")
    async def undo():
        """Undo the last action."""
        session.controller.reset()
        if session.history.undo():
            return {"success": True, "history": session.history.get_state().to_dict()}
        return {"success": False, "message": "Nothing to undo"}

    @app.post("/api/redo")
    async def redo():
        """Redo the last undone action."""
        session.controller.reset()
        if session.history.redo():
            return {"success": True, "history": session.history.get_state().to_dict()}
        return {"success": False, "message": "Nothing to redo"}

    @app.get("/api/history")
    async def get_history():
        history = session.history
        return {
            "success": True,
            "state": history.get_state().to_dict(),
            "undo": [c.description for c in history.undo_stack],
            "redo": [c.description for c in history.redo_stack],
        }

    # --- Selection ---

    @app.get("/api/selection")
    async def get_selection():
        return {"success": True, "selection": session.selection.snapshot().to_dict()}

    @app.post("/api/selection")
    async def select_elements(request: SelectRequest):
        """Select elements by id."""
        diagram = session.diagram
        try:
            elements = [diagram.require_element(element_id) for element_id in request.element_ids]
        except ElementNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

        session.selection.select_elements(elements, add_to_selection=request.add)
        return {"success": True, "selection": session.selection.snapshot().to_dict()}

    @app.delete("/api/selection")
    async def delete_selection():
        """Delete the selected connections and shapes."""
        if not session.controller.delete_selection():
            return {"success": False, "message": "Nothing selected"}
        return interaction_state()

    # --- Elements ---

    @app.get("/api/elements/{element_id}")
    async def get_element(element_id: str):
        element = session.diagram.get_element(element_id)
        if element is None:
            raise HTTPException(status_code=404, detail="Element not found")
        result = {"success": True, **_element_dict(element)}
        if session.plugin is not None:
            result["editors"] = [e.model_dump(mode="json") for e in session.plugin.property_editors(element)]
        return result

    @app.patch("/api/elements/{element_id}/properties")
    async def update_property(element_id: str, request: UpdatePropertyRequest):
        """Set one property as an undoable edit."""
        try:
            session.set_property(element_id, request.key, request.value)
        except ElementNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {"success": True, **_element_dict(session.diagram.require_element(element_id))}

    @app.patch("/api/elements/{element_id}/style")
    async def update_style(element_id: str, request: UpdateStyleRequest):
        """Merge style keys as an undoable edit."""
        try:
            session.set_style(element_id, request.style)
        except ElementNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {"success": True, **_element_dict(session.diagram.require_element(element_id))}

    @app.get("/api/connections/at")
    async def connection_at(x: float, y: float):
        """Hit-test connections at a point (within the configured tolerance)."""
        connection: Optional[Connection] = session.diagram.find_connection_at_point(
            Point(x, y), session.settings.hit_tolerance
        )
        if connection is None:
            return {"success": True, "connection": None}
        return {"success": True, "connection": connection.to_json_dict()}

    # --- Text Editing ---

    @app.post("/api/text/commit")
    async def commit_text(request: TextCommitRequest):
        """Finish inline editing with the typed value."""
        if not session.text_editor.commit(request.value):
            raise HTTPException(status_code=400, detail="No text editing in progress")
        return interaction_state()

    @app.post("/api/text/cancel")
    async def cancel_text():
        session.text_editor.cancel_editing()
        return interaction_state()

    # --- Validation ---

    @app.get("/api/diagram/validate")
    async def validate_current_diagram():
        """
        Validate the current diagram for structural issues.

        Returns a list of issues (errors, warnings, info) and a summary.
        """
        issues = validate_diagram(session.diagram, session.plugin)
        return {
            "success": True,
            "issues": [issue.to_dict() for issue in issues],
            "summary": validation_summary(issues),
        }

    @app.post("/api/diagram/repair")
    async def repair_diagram():
        """Remove connections with missing endpoints (undoable)."""
        removed = session.repair()
        return {"success": True, "removed": removed}

    # --- WebSocket ---

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        WebSocket endpoint for real-time updates.

        Clients receive every engine event as it happens.
        """
        await ws_manager.connect(websocket)

        try:
            while True:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text('{"type": "pong"}')
        except WebSocketDisconnect:
            await ws_manager.disconnect(websocket)

    return app


# --- Run with uvicorn ---

if __name__ == "__main__":
    import uvicorn

    server_settings = ServerSettings.from_env()
    uvicorn.run(create_app(settings=server_settings), host=server_settings.host, port=server_settings.port)
