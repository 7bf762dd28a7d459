"""
Tests for ModelRecommender

Recommendation failures must never propagate.
"""

import pytest

from panelmotion.exceptions import InvalidResult, UpstreamUnavailable
from panelmotion.models import Recommendation, VideoModelId
from panelmotion.pipeline.recommender import ModelRecommender

ALL_MODELS = [VideoModelId.SEEDANCE, VideoModelId.HAILUO, VideoModelId.VEO, VideoModelId.KLING]


class TestModelRecommender:
    """Tests for recommendation and fallback."""

    @pytest.mark.asyncio
    async def test_returns_service_recommendation(self, generation_service, ledger):
        recommender = ModelRecommender(generation_service, ALL_MODELS, ledger)
        result = await recommender.recommend("desc", "narr")

        assert result.model == VideoModelId.VEO
        assert result.fallback is False
        assert [r.task for r in ledger.records] == ["Recommend Video Model"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        UpstreamUnavailable("down"),
        InvalidResult("bad json"),
        TimeoutError("recommendation timed out"),
        ConnectionError("reset by peer"),
    ])
    async def test_failure_falls_back_to_first_model(self, generation_service, error):
        generation_service.recommend_error = error
        result = await ModelRecommender(generation_service, ALL_MODELS).recommend("d", "n")

        assert result.model == VideoModelId.SEEDANCE
        assert result.fallback is True
        assert result.reasoning.startswith("Default recommendation")

    @pytest.mark.asyncio
    async def test_disabled_model_falls_back(self, generation_service):
        generation_service.recommendation = Recommendation(model=VideoModelId.KLING, reasoning="x")
        recommender = ModelRecommender(generation_service, [VideoModelId.HAILUO, VideoModelId.VEO])
        result = await recommender.recommend("d", "n")

        assert result.model == VideoModelId.HAILUO
        assert result.fallback is True

    def test_requires_models(self, generation_service):
        with pytest.raises(ValueError):
            ModelRecommender(generation_service, [])
