"""Claude agents used by the default generation service."""

from .base import BaseAgent, extract_json
from .decomposer import DecomposeInput, SceneDecomposerAgent
from .recommender import ModelRecommenderAgent, RecommendInput

__all__ = [
    "BaseAgent",
    "extract_json",
    "DecomposeInput",
    "SceneDecomposerAgent",
    "ModelRecommenderAgent",
    "RecommendInput",
]
