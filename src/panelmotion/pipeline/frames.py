"""Keyframe synthesis: start frame, end frame and regeneration."""

import logging
from typing import Optional, Tuple

from ..exceptions import UpstreamRefused
from ..models import Image, UsageEvent
from ..services.base import GenerationService
from ..usage import UsageLedger

logger = logging.getLogger(__name__)


class FrameSynthesizer:
    """Produces the keyframes of a scene through the generation service.

    Inputs are never modified; every call returns a new image or raises an
    ``UpstreamError``.
    """

    def __init__(self, service: GenerationService, ledger: Optional[UsageLedger] = None) -> None:
        self._service = service
        self._ledger = ledger

    async def start_frame(self, prompt: str, reference_page: Image) -> Image:
        """Generate the first frame using the source page as style reference."""
        logger.debug(f"Start frame: {prompt[:60]}...")
        return self._accept(
            "start frame",
            await self._service.synthesize_start_frame(prompt, reference_page),
        )

    async def end_frame(self, start_frame: Image, narrative: str, duration: int) -> Image:
        """Generate the frame showing the result of ``narrative``."""
        logger.debug(f"End frame ({duration}s): {narrative[:60]}...")
        return self._accept(
            "end frame",
            await self._service.synthesize_end_frame(start_frame, narrative, duration),
        )

    async def regenerate(
        self, original_frame: Image, edit_instruction: Optional[str], scene_context: str
    ) -> Image:
        """Re-render a frame.

        An empty instruction asks for a creative alternative instead of an edit.
        """
        instruction = (edit_instruction or "").strip()
        logger.info(
            f"Regenerating frame ({'edit: ' + instruction[:40] if instruction else 'alternative'})"
        )
        return self._accept(
            "regenerated frame",
            await self._service.regenerate_frame(original_frame, instruction, scene_context),
        )

    def _accept(self, what: str, result: Tuple[Image, UsageEvent]) -> Image:
        image, usage = result
        if self._ledger is not None:
            self._ledger.record(usage)
        if image is None or not image.data:
            raise UpstreamRefused(f"The service returned an empty {what}")
        return image
