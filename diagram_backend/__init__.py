"""
Diagram Editor Backend - Editor session service.

Wraps the editing engine in a session object with file persistence and
exposes it to a browser UI over REST and WebSocket.
"""

from .session import EditorSession, SessionTextEditor
from .settings import ServerSettings

__all__ = [
    "EditorSession",
    "SessionTextEditor",
    "ServerSettings",
]
