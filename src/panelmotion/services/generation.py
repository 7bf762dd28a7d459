"""Default GenerationService: Claude agents for text, Imagen for keyframes."""

import logging
from typing import List, Optional, Sequence, Tuple

from ..agents import (
    DecomposeInput,
    ModelRecommenderAgent,
    RecommendInput,
    SceneDecomposerAgent,
)
from ..config import config
from ..models import (
    Character,
    DecomposedScene,
    Image,
    Recommendation,
    UsageEvent,
    VideoModelId,
)
from ..usage import image_usage
from .anthropic import AnthropicClient
from .imagen import ImagenClient

logger = logging.getLogger(__name__)

FRAME_NEGATIVE = "comic panel borders, speech bubbles, text, watermark, photorealism"

START_FRAME_PROMPT = (
    "A full-screen {aspect} animation frame in the art style of [1]: {prompt}. "
    "Keep the character designs and colors of the reference page. If the page's "
    "background is simple or white, paint a complete, detailed and fitting background. "
    "A single undivided scene, not a comic page layout."
)

END_FRAME_PROMPT = (
    "The final frame of a {duration}-second animated scene that begins with [1]. "
    "During the scene: {narrative}. Show the clear result of this action with a changed "
    "pose, expression or position so the frame is visibly different from [1]. Keep "
    "character design, clothing, background and art style identical."
)

EDIT_FRAME_PROMPT = (
    "Revise frame [1]: {instruction}. Original scene: {context}. Keep the art style, "
    "character designs and composition."
)

ALTERNATIVE_FRAME_PROMPT = (
    "A new, different version of frame [1] for the scene: {context}. Reinterpret it "
    "creatively while keeping the art style, character designs and aspect ratio."
)


class StudioGenerationService:
    """GenerationService backed by Anthropic Claude and Google Imagen."""

    def __init__(
        self,
        anthropic_client: Optional[AnthropicClient] = None,
        imagen_client: Optional[ImagenClient] = None,
        aspect_ratio: Optional[str] = None,
    ) -> None:
        client = anthropic_client or AnthropicClient()
        self._decomposer = SceneDecomposerAgent(client=client)
        self._recommender = ModelRecommenderAgent(client=client)
        self._imagen = imagen_client or ImagenClient()
        self._aspect_ratio = aspect_ratio or config.frame_aspect_ratio

    async def decompose_scenes(
        self, pages: Sequence[Image], characters: Sequence[Character]
    ) -> Tuple[List[DecomposedScene], UsageEvent]:
        return await self._decomposer.run(
            DecomposeInput(pages=list(pages), characters=list(characters))
        )

    async def recommend_model(
        self, description: str, narrative: str, models: Sequence[VideoModelId]
    ) -> Tuple[Recommendation, UsageEvent]:
        return await self._recommender.run(
            RecommendInput(description=description, narrative=narrative, models=list(models))
        )

    async def synthesize_start_frame(
        self, prompt: str, reference_image: Image
    ) -> Tuple[Image, UsageEvent]:
        image = await self._imagen.generate_with_style(
            START_FRAME_PROMPT.format(aspect=self._aspect_ratio, prompt=prompt),
            style_reference=reference_image,
            aspect_ratio=self._aspect_ratio,
            negative_prompt=FRAME_NEGATIVE,
        )
        return image, image_usage("Generate Video Frame")

    async def synthesize_end_frame(
        self, start_frame: Image, narrative: str, duration: int
    ) -> Tuple[Image, UsageEvent]:
        image = await self._imagen.edit(
            END_FRAME_PROMPT.format(duration=duration, narrative=narrative),
            base_image=start_frame,
            aspect_ratio=self._aspect_ratio,
            negative_prompt=FRAME_NEGATIVE,
        )
        return image, image_usage("Generate End Frame")

    async def regenerate_frame(
        self, original: Image, edit_instruction: str, context: str
    ) -> Tuple[Image, UsageEvent]:
        if edit_instruction.strip():
            prompt = EDIT_FRAME_PROMPT.format(instruction=edit_instruction.strip(), context=context)
        else:
            prompt = ALTERNATIVE_FRAME_PROMPT.format(context=context)

        image = await self._imagen.edit(
            prompt,
            base_image=original,
            aspect_ratio=self._aspect_ratio,
            negative_prompt=FRAME_NEGATIVE,
        )
        return image, image_usage("Regenerate Frame")
