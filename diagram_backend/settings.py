"""Server configuration for the editor session service."""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from diagram_core.config import read_env


def _default_diagrams_dir() -> str:
    return os.path.expanduser("~/diagrams")


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8765, gt=0, lt=65536)
    # Local frontend dev servers
    cors_origins: list[str] = Field(default_factory=lambda: [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ])
    diagrams_dir: str = Field(default_factory=_default_diagrams_dir)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerSettings":
        """Build settings from ``DIAGRAM_EDITOR_HOST``/``_PORT``/``_DIAGRAMS_DIR``."""
        values = read_env(cls, environ)
        if "cors_origins" in values:
            values["cors_origins"] = [o.strip() for o in values["cors_origins"].split(",") if o.strip()]
        return cls(**values)

    @property
    def diagrams_path(self) -> Path:
        return Path(self.diagrams_dir).expanduser()
