"""
Tests for SceneDecomposer

Covers duration clamping, roster validation and failure propagation.
"""

import math

import pytest

from panelmotion.exceptions import InvalidResult, UpstreamRefused, UpstreamUnavailable
from panelmotion.models import DecomposedScene
from panelmotion.pipeline.decomposer import SceneDecomposer, clamp_duration


class TestClampDuration:
    """Tests for duration rounding and clamping."""

    @pytest.mark.parametrize("value,expected", [
        (4.4, 4),
        (4.5, 5),
        (12, 10),
        (10.49, 10),
        (0.2, 1),
        (-3, 1),
        (7, 7),
    ])
    def test_round_and_clamp(self, value, expected):
        assert clamp_duration(value) == expected

    @pytest.mark.parametrize("value", [math.nan, math.inf])
    def test_non_finite_is_invalid(self, value):
        with pytest.raises(InvalidResult):
            clamp_duration(value)


class TestSceneDecomposer:
    """Tests for decomposition validation."""

    @pytest.mark.asyncio
    async def test_scenes_are_validated(self, generation_service, ledger, pages, characters):
        decomposer = SceneDecomposer(generation_service, ledger)
        scenes = await decomposer.decompose(pages, characters)

        assert len(scenes) == 2
        assert scenes[0].duration == 4
        assert scenes[1].duration == 10
        assert scenes[1].characters_in_scene == ["Joon", "Mina"]
        assert scenes[1].dropped_characters == ["Ghost"]
        assert [s.source_page_index for s in scenes] == [0, 1]

    @pytest.mark.asyncio
    async def test_usage_is_recorded(self, generation_service, ledger, pages, characters):
        await SceneDecomposer(generation_service, ledger).decompose(pages, characters)
        assert [r.task for r in ledger.records] == ["Storyboard Generation"]

    @pytest.mark.asyncio
    async def test_duplicate_names_are_collapsed(self, generation_service, pages, characters):
        generation_service.scenes = [DecomposedScene(
            description="d", narrative="n", duration=3,
            characters_in_scene=["Mina", " Mina", "Mina"], source_page_index=0,
        )]
        scenes = await SceneDecomposer(generation_service).decompose(pages, characters)
        assert scenes[0].characters_in_scene == ["Mina"]

    @pytest.mark.asyncio
    async def test_page_index_out_of_range(self, generation_service, pages, characters):
        generation_service.scenes = [DecomposedScene(
            description="d", narrative="n", duration=3, source_page_index=2,
        )]
        with pytest.raises(InvalidResult):
            await SceneDecomposer(generation_service).decompose(pages, characters)

    @pytest.mark.asyncio
    async def test_empty_result_is_refused(self, generation_service, pages, characters):
        generation_service.scenes = []
        with pytest.raises(UpstreamRefused):
            await SceneDecomposer(generation_service).decompose(pages, characters)

    @pytest.mark.asyncio
    async def test_service_errors_propagate(self, generation_service, pages, characters):
        generation_service.decompose_error = UpstreamUnavailable("down")
        with pytest.raises(UpstreamUnavailable):
            await SceneDecomposer(generation_service).decompose(pages, characters)
