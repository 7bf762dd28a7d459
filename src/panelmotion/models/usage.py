"""Usage event model."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UsageEvent(BaseModel):
    """Cost / metering record emitted for an external-service call."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    task: str = Field(..., description="Human-readable task name")
    tokens: Optional[int] = Field(None, description="Total text tokens")
    images: Optional[int] = Field(None, description="Images generated")
    video_seconds: Optional[int] = Field(None, description="Seconds of video generated")
    cost_usd: float = Field(default=0.0, ge=0)
    timestamp: datetime = Field(default_factory=datetime.now)

    class Config:
        """Pydantic config."""
        frozen = True
