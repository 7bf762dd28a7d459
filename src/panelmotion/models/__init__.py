"""Data models for the storyboard pipeline."""

from .scene import (
    Character,
    DecomposedScene,
    FrameType,
    Image,
    InitialScene,
    Recommendation,
    Scene,
    VideoModelId,
    VideoStatus,
)
from .job import JobHandle, JobState, JobStatus, JobUpdate
from .patch import PatchKind, ScenePatch
from .storyboard import Storyboard
from .usage import UsageEvent

__all__ = [
    "Character",
    "DecomposedScene",
    "FrameType",
    "Image",
    "InitialScene",
    "Recommendation",
    "Scene",
    "VideoModelId",
    "VideoStatus",
    "JobHandle",
    "JobState",
    "JobStatus",
    "JobUpdate",
    "PatchKind",
    "ScenePatch",
    "Storyboard",
    "UsageEvent",
]
