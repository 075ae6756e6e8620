"""
API request models for the editor session service.

Pointer and key bodies mirror the browser events the frontend forwards;
coordinates are already converted to diagram space.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from diagram_core.interaction import KeyEvent, PointerEvent


class PointerAction(str, Enum):
    """Which pointer handler an input event goes to."""
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    DOUBLE_CLICK = "double_click"


class NewDiagramRequest(BaseModel):
    """Request to start a new empty diagram."""
    name: str = "Untitled Diagram"
    type: Optional[str] = None


class OpenDiagramRequest(BaseModel):
    file_path: str


class SaveDiagramRequest(BaseModel):
    file_path: Optional[str] = None


class SelectToolRequest(BaseModel):
    tool_id: str


class DropToolRequest(BaseModel):
    """A toolbar item dropped on the canvas."""
    tool_id: str
    x: float
    y: float


class PointerRequest(BaseModel):
    """A pointer event in diagram coordinates."""
    action: PointerAction = PointerAction.DOWN
    x: float
    y: float
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    alt: bool = False

    def to_event(self) -> PointerEvent:
        return PointerEvent(self.x, self.y, self.shift, self.ctrl, self.meta, self.alt)


class KeyRequest(BaseModel):
    """A key press (``key`` uses browser names: "Delete", "Escape", "z")."""
    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    alt: bool = False

    def to_event(self) -> KeyEvent:
        return KeyEvent(self.key, self.shift, self.ctrl, self.meta, self.alt)


class SelectRequest(BaseModel):
    """Select elements by id, replacing the selection unless ``add`` is set."""
    element_ids: list[str] = Field(default_factory=list)
    add: bool = False


class UpdatePropertyRequest(BaseModel):
    key: str
    value: Any = None


class UpdateStyleRequest(BaseModel):
    style: dict[str, Any] = Field(default_factory=dict)


class TextCommitRequest(BaseModel):
    value: Any = ""
