"""Video backend recommendation with a non-fatal fallback."""

import logging
from typing import Optional, Sequence

from ..models import Recommendation, VideoModelId
from ..services.base import GenerationService
from ..usage import UsageLedger

logger = logging.getLogger(__name__)


class ModelRecommender:
    """Asks the generation service for the best backend of a scene.

    Failures never propagate: the first configured backend is substituted.
    """

    def __init__(
        self,
        service: GenerationService,
        models: Sequence[VideoModelId],
        ledger: Optional[UsageLedger] = None,
    ) -> None:
        if not models:
            raise ValueError("At least one video model must be configured")
        self._service = service
        self._models = list(models)
        self._ledger = ledger

    @property
    def default_model(self) -> VideoModelId:
        return self._models[0]

    async def recommend(self, description: str, narrative: str) -> Recommendation:
        try:
            recommendation, usage = await self._service.recommend_model(
                description, narrative, self._models
            )
        except Exception as e:
            logger.warning(f"Model recommendation failed, using {self.default_model.value}: {e}")
            return self.fallback(str(getattr(e, "message", None) or e))

        if self._ledger is not None:
            self._ledger.record(usage)

        if recommendation.model not in self._models:
            logger.warning(
                f"Recommended model {recommendation.model.value} is not enabled, "
                f"using {self.default_model.value}"
            )
            return self.fallback(f"'{recommendation.model.value}' is not enabled")

        return recommendation

    def fallback(self, reason: str) -> Recommendation:
        return Recommendation(
            model=self.default_model,
            reasoning=f"Default recommendation ({reason}).",
            fallback=True,
        )
