"""
Tests for Channel
"""

import pytest

from panelmotion.pipeline.channel import Channel


class TestChannel:
    """Tests for the single-producer channel."""

    @pytest.mark.asyncio
    async def test_iteration_ends_after_close(self):
        channel = Channel()
        channel.publish(1)
        channel.publish(2)
        channel.close()

        assert [item async for item in channel] == [1, 2]
        assert [item async for item in channel] == []

    def test_publish_after_close_is_dropped(self):
        channel = Channel()
        channel.close()
        channel.publish(1)

        assert channel.closed
        assert channel.drain() == []

    def test_drain_does_not_wait(self):
        channel = Channel()
        channel.publish("a")
        assert channel.drain() == ["a"]
        assert channel.drain() == []
