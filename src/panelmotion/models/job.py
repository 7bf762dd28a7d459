"""Video job value types."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .scene import VideoStatus


class JobHandle(BaseModel):
    """Reference to a submitted video job."""

    job_id: str = Field(..., description="Provider operation name")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        """Pydantic config."""
        frozen = True


class JobState(str, Enum):
    """State reported by a single poll."""
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class JobStatus(BaseModel):
    """Result of polling a video job."""

    state: JobState
    artifact_ref: Optional[str] = Field(None, description="Result location when done")
    message: Optional[str] = Field(None, description="Error message when failed")

    class Config:
        """Pydantic config."""
        frozen = True

    @classmethod
    def pending(cls) -> "JobStatus":
        return cls(state=JobState.PENDING)

    @classmethod
    def done(cls, artifact_ref: Optional[str]) -> "JobStatus":
        return cls(state=JobState.DONE, artifact_ref=artifact_ref)

    @classmethod
    def error(cls, message: str) -> "JobStatus":
        return cls(state=JobState.ERROR, message=message)


class JobUpdate(BaseModel):
    """Progress or terminal update published by the video job runner."""

    status: VideoStatus
    progress: str
    video_url: Optional[str] = None
    poll: Optional[int] = Field(None, description="Poll tick number for in-progress updates")

    class Config:
        """Pydantic config."""
        frozen = True

    @property
    def settled(self) -> bool:
        return self.status in (VideoStatus.DONE, VideoStatus.ERROR)

    def as_scene_changes(self) -> Dict[str, Any]:
        changes: Dict[str, Any] = {
            "video_generation_status": self.status,
            "video_generation_progress": self.progress,
        }
        changes["generated_video_url"] = (
            self.video_url if self.status == VideoStatus.DONE else None
        )
        return changes
