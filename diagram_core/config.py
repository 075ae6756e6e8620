"""
Editor configuration.

Values have sensible defaults and can be overridden with
``DIAGRAM_EDITOR_<FIELD>`` environment variables, e.g.
``DIAGRAM_EDITOR_HISTORY_LIMIT=100``.
"""

import os
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "DIAGRAM_EDITOR_"


class EditorSettings(BaseModel):
    """Tunables of the editing engine."""
    history_limit: int = Field(default=50, ge=1)
    grid_size: int = Field(default=20, ge=0)  # 0 = snapping disabled
    hit_tolerance: float = Field(default=10.0, ge=0)
    handle_size: float = Field(default=8.0, gt=0)
    default_min_width: float = Field(default=40.0, ge=0)
    default_min_height: float = Field(default=30.0, ge=0)
    default_notation: str = "sequence"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EditorSettings":
        """Build settings from environment variables (missing ones keep defaults)."""
        return cls(**read_env(cls, environ))


def read_env(model: type[BaseModel], environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect ``DIAGRAM_EDITOR_*`` overrides for the fields of ``model``."""
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for name in model.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in env:
            values[name] = env[key]
    return values
