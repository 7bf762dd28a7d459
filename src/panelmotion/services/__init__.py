"""External service integrations.

The Claude/Imagen ``StudioGenerationService`` lives in
``panelmotion.services.generation`` (it depends on ``panelmotion.agents``).
"""

from .anthropic import AnthropicClient, MessageResult
from .base import GenerationService, VideoService
from .imagen import ImagenClient
from .veo import VeoClient

__all__ = [
    "AnthropicClient",
    "MessageResult",
    "GenerationService",
    "VideoService",
    "ImagenClient",
    "VeoClient",
]
