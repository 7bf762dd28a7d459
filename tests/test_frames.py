"""
Tests for FrameSynthesizer
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from panelmotion.exceptions import UpstreamRefused, UpstreamUnavailable
from panelmotion.models import Image, UsageEvent
from panelmotion.pipeline.frames import FrameSynthesizer


class TestFrameSynthesizer:
    """Tests for keyframe generation."""

    @pytest.mark.asyncio
    async def test_start_frame_uses_reference_page(self, generation_service, ledger, pages):
        frames = FrameSynthesizer(generation_service, ledger)
        image = await frames.start_frame("a rooftop", pages[1])

        assert image.data == b"start:a rooftop|ref:page-1"
        assert ledger.records[0].task == "Generate Video Frame"

    @pytest.mark.asyncio
    async def test_end_frame(self, generation_service, pages):
        frames = FrameSynthesizer(generation_service)
        start = await frames.start_frame("a rooftop", pages[0])
        end = await frames.end_frame(start, "she turns", 4)

        assert end.data == b"end:she turns:4"
        assert start.data == b"start:a rooftop|ref:page-0"

    @pytest.mark.asyncio
    async def test_regenerate_without_instruction_asks_for_alternative(self, generation_service):
        frames = FrameSynthesizer(generation_service)
        original = Image(data=b"frame")
        image = await frames.regenerate(original, "   ", "context")

        assert image.data == b"regen:frame:alternative"
        assert generation_service.calls[-1] == "regenerate:"

    @pytest.mark.asyncio
    async def test_regenerate_with_instruction(self, generation_service):
        image = await FrameSynthesizer(generation_service).regenerate(
            Image(data=b"frame"), " make it night ", "context"
        )
        assert image.data == b"regen:frame:make it night"

    @pytest.mark.asyncio
    async def test_errors_propagate(self, generation_service, pages):
        generation_service.fail_start_for = ["blocked"]
        with pytest.raises(UpstreamRefused):
            await FrameSynthesizer(generation_service).start_frame("blocked", pages[0])

        generation_service.regenerate_error = UpstreamUnavailable("down")
        with pytest.raises(UpstreamUnavailable):
            await FrameSynthesizer(generation_service).regenerate(Image(data=b"x"), "", "c")

    @pytest.mark.asyncio
    async def test_empty_image_is_refused(self, ledger, pages):
        service = MagicMock()
        service.synthesize_start_frame = AsyncMock(
            return_value=(Image(data=b""), UsageEvent(task="Generate Video Frame"))
        )
        with pytest.raises(UpstreamRefused):
            await FrameSynthesizer(service, ledger).start_frame("p", pages[0])
        assert len(ledger.records) == 1
