"""
Tests for usage accounting
"""

import pytest

from panelmotion.usage import (
    IMAGEN_PER_IMAGE,
    InMemoryUsageLedger,
    UsageLedger,
    calculate_text_cost,
    image_usage,
    text_usage,
    video_usage,
)


class TestPricing:
    """Tests for cost calculation."""

    def test_text_cost(self):
        cost = calculate_text_cost(1_000_000, 1_000_000, "claude-sonnet-4-20250514")
        assert cost == pytest.approx(18.0)

    def test_unknown_model_is_free(self):
        assert calculate_text_cost(1000, 1000, "unknown") == 0.0

    def test_event_factories(self):
        text = text_usage("Storyboard Generation", 1000, 500, "claude-sonnet-4-20250514")
        assert text.tokens == 1500
        assert image_usage("Generate Video Frame", 2).cost_usd == pytest.approx(2 * IMAGEN_PER_IMAGE)
        assert video_usage("Generate Video", 8).cost_usd == pytest.approx(0.08)


class TestInMemoryUsageLedger:
    """Tests for the in-memory ledger."""

    def test_totals_and_summary(self):
        ledger = InMemoryUsageLedger()
        ledger.record(image_usage("Generate Video Frame"))
        ledger.record(image_usage("Generate Video Frame"))
        ledger.record(video_usage("Generate Video", 5))

        assert isinstance(ledger, UsageLedger)
        assert ledger.total_cost == pytest.approx(0.09)

        summary = ledger.summary()
        assert summary["Generate Video Frame"]["calls"] == 2
        assert summary["Generate Video Frame"]["images"] == 2
        assert summary["Generate Video"]["video_seconds"] == 5

        ledger.clear()
        assert ledger.records == []
