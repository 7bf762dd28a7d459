"""Scene data model."""

import base64
import mimetypes
import re
import uuid
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

MAX_SCENE_DURATION = 10
MIN_SCENE_DURATION = 1

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


class VideoModelId(str, Enum):
    """Target video-generation backends."""
    SEEDANCE = "seedance"
    HAILUO = "hailuo"
    VEO = "veo"
    KLING = "kling"

    @property
    def display_name(self) -> str:
        return VIDEO_MODEL_NAMES[self]


VIDEO_MODEL_NAMES = {
    VideoModelId.SEEDANCE: "Seedance Pro 1.0",
    VideoModelId.HAILUO: "Hailuo 02",
    VideoModelId.VEO: "Veo 3",
    VideoModelId.KLING: "Kling",
}


class VideoStatus(str, Enum):
    """Video job state of a scene."""
    IDLE = "idle"
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class FrameType(str, Enum):
    """Which keyframe of a scene."""
    START = "start"
    END = "end"

    @property
    def field_name(self) -> str:
        return f"{self.value}_frame"


class Image(BaseModel):
    """An encoded still image (page, keyframe)."""

    data: bytes = Field(..., description="Encoded image bytes")
    mime_type: str = Field(default="image/png", description="Image MIME type")

    class Config:
        """Pydantic config."""
        frozen = True

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def extension(self) -> str:
        return mimetypes.guess_extension(self.mime_type) or ".png"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.b64}"

    @classmethod
    def from_data_url(cls, url: str) -> "Image":
        """Parse a ``data:image/...;base64,`` URL."""
        match = _DATA_URL_RE.match(url.strip())
        if not match:
            raise ValueError("Not a base64 image data URL")
        return cls(data=base64.b64decode(match.group(2)), mime_type=match.group(1))

    @classmethod
    def from_b64(cls, data: str, mime_type: str = "image/png") -> "Image":
        return cls(data=base64.b64decode(data), mime_type=mime_type)

    @classmethod
    def from_path(cls, path: Path) -> "Image":
        """Load an image file, guessing the MIME type from its suffix."""
        mime_type, _ = mimetypes.guess_type(str(path))
        return cls(data=Path(path).read_bytes(), mime_type=mime_type or "image/png")

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        return path


class Character(BaseModel):
    """A named character from the roster."""

    name: str = Field(..., description="Character name as used in scenes")
    description: Optional[str] = Field(None, description="Visual description")


class DecomposedScene(BaseModel):
    """Raw scene item as returned by the generation service (unvalidated)."""

    description: str = Field(..., description="Cinematic first-frame description")
    narrative: str = Field(..., description="Action that happens during the scene")
    duration: float = Field(..., description="Suggested duration in seconds")
    characters_in_scene: List[str] = Field(default_factory=list)
    source_page_index: int = Field(..., description="0-based index of the source page")


class InitialScene(BaseModel):
    """Decomposition result after clamping and roster validation."""

    description: str
    narrative: str
    duration: int = Field(..., ge=MIN_SCENE_DURATION, le=MAX_SCENE_DURATION)
    characters_in_scene: List[str] = Field(default_factory=list)
    source_page_index: int = Field(..., ge=0)
    dropped_characters: List[str] = Field(
        default_factory=list, description="Names not found in the roster"
    )


class Recommendation(BaseModel):
    """Recommended video backend for a scene."""

    model: VideoModelId
    reasoning: str
    fallback: bool = False

    class Config:
        """Pydantic config."""
        frozen = True


def new_scene_id() -> str:
    return f"scene-{uuid.uuid4().hex[:12]}"


class Scene(BaseModel):
    """Represents a single animated scene of the storyboard.

    Scenes are immutable snapshots; the orchestrator publishes a new snapshot
    for every change.
    """

    id: str = Field(default_factory=new_scene_id, description="Unique scene identifier")
    description: str = Field(..., description="Cinematic first-frame description")
    narrative: str = Field(..., description="Action that happens during the scene")
    duration: int = Field(..., description="Scene duration in seconds",
                          ge=MIN_SCENE_DURATION, le=MAX_SCENE_DURATION)
    source_page_index: int = Field(..., description="Index of the source page", ge=0)
    characters_in_scene: List[str] = Field(default_factory=list)

    recommended_model: Optional[VideoModelId] = Field(None, description="Best backend")
    reasoning: Optional[str] = Field(None, description="Why the backend was chosen")
    recommendation_fallback: bool = Field(default=False)

    start_frame: Optional[Image] = None
    end_frame: Optional[Image] = None
    prompts: Dict[VideoModelId, str] = Field(default_factory=dict)

    is_loading: bool = Field(default=True)
    error: Optional[str] = Field(None, description="Frame stage failure message")

    video_generation_status: VideoStatus = Field(default=VideoStatus.IDLE)
    video_generation_progress: Optional[str] = None
    generated_video_url: Optional[str] = None

    class Config:
        """Pydantic config."""
        frozen = True

    @classmethod
    def placeholder(cls, initial: InitialScene) -> "Scene":
        """Create a loading placeholder from a decomposition result."""
        return cls(
            description=initial.description,
            narrative=initial.narrative,
            duration=initial.duration,
            source_page_index=initial.source_page_index,
            characters_in_scene=list(initial.characters_in_scene),
        )

    @property
    def failed(self) -> bool:
        return self.error is not None

    def frame(self, frame_type: FrameType) -> Optional[Image]:
        return self.start_frame if frame_type == FrameType.START else self.end_frame
