"""Scene patch events published by the orchestrator."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .scene import Scene


class PatchKind(str, Enum):
    """Kind of change a patch describes."""
    CREATED = "created"
    UPDATED = "updated"
    RESET = "reset"


class ScenePatch(BaseModel):
    """An immutable change to one scene (or a storyboard reset)."""

    sequence: int = Field(..., description="Monotonic event number")
    generation: int = Field(..., description="Storyboard build number")
    kind: PatchKind
    scene_id: Optional[str] = Field(None, description="None for resets")
    changes: Dict[str, Any] = Field(default_factory=dict)
    scene: Optional[Scene] = Field(None, description="Snapshot after the change")

    class Config:
        """Pydantic config."""
        frozen = True
