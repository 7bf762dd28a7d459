"""Storyboard pipeline: decomposition, keyframes, prompts and video jobs."""

from .channel import Channel
from .decomposer import SceneDecomposer, clamp_duration
from .frames import FrameSynthesizer
from .orchestrator import StoryboardOrchestrator
from .prompts import PromptComposer
from .recommender import ModelRecommender
from .video import VideoJobRunner

__all__ = [
    "Channel",
    "SceneDecomposer",
    "clamp_duration",
    "FrameSynthesizer",
    "StoryboardOrchestrator",
    "PromptComposer",
    "ModelRecommender",
    "VideoJobRunner",
]
