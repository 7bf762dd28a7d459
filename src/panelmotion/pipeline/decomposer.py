"""Scene decomposition with ingestion-time validation."""

import logging
import math
from typing import List, Optional, Sequence

from ..exceptions import InvalidResult, UpstreamRefused
from ..models import Character, DecomposedScene, Image, InitialScene
from ..models.scene import MAX_SCENE_DURATION, MIN_SCENE_DURATION
from ..services.base import GenerationService
from ..usage import UsageLedger

logger = logging.getLogger(__name__)


def clamp_duration(value: float) -> int:
    """Round half up to whole seconds and clamp to the allowed scene range."""
    if value is None or not math.isfinite(value):
        raise InvalidResult(f"Invalid scene duration: {value!r}")
    rounded = int(math.floor(value + 0.5))
    return max(MIN_SCENE_DURATION, min(MAX_SCENE_DURATION, rounded))


class SceneDecomposer:
    """Turns page images into validated :class:`InitialScene` descriptors."""

    def __init__(self, service: GenerationService, ledger: Optional[UsageLedger] = None) -> None:
        self._service = service
        self._ledger = ledger

    async def decompose(
        self, pages: Sequence[Image], characters: Sequence[Character]
    ) -> List[InitialScene]:
        """Decompose the pages into scenes, in narrative order.

        Raises:
            UpstreamError: When the service fails or returns unusable scenes.
        """
        raw_scenes, usage = await self._service.decompose_scenes(pages, characters)
        if self._ledger is not None:
            self._ledger.record(usage)

        if not raw_scenes:
            raise UpstreamRefused("No scenes were found in the provided pages")

        roster = [c.name for c in characters]
        scenes = [
            self._validate(i, raw, len(pages), roster) for i, raw in enumerate(raw_scenes)
        ]
        logger.info(f"Decomposed {len(pages)} pages into {len(scenes)} scenes")
        return scenes

    def _validate(
        self, index: int, raw: DecomposedScene, num_pages: int, roster: List[str]
    ) -> InitialScene:
        if not 0 <= raw.source_page_index < num_pages:
            raise InvalidResult(
                f"Scene {index} references page {raw.source_page_index}, "
                f"but only {num_pages} pages were provided",
                details={"scene": index, "source_page_index": raw.source_page_index},
            )

        duration = clamp_duration(raw.duration)
        if duration != raw.duration:
            logger.debug(f"Scene {index}: duration {raw.duration} clamped to {duration}")

        known = set(roster)
        characters: List[str] = []
        dropped: List[str] = []
        for name in raw.characters_in_scene:
            name = name.strip()
            target = characters if name in known else dropped
            if name and name not in target:
                target.append(name)

        if dropped:
            logger.warning(f"Scene {index}: dropping unknown characters {dropped}")

        return InitialScene(
            description=raw.description.strip(),
            narrative=raw.narrative.strip(),
            duration=duration,
            characters_in_scene=characters,
            source_page_index=raw.source_page_index,
            dropped_characters=dropped,
        )
