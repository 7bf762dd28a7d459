"""
Tests for the Claude agents

The Anthropic client is replaced with an AsyncMock.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from panelmotion.agents import (
    DecomposeInput,
    ModelRecommenderAgent,
    RecommendInput,
    SceneDecomposerAgent,
    extract_json,
)
from panelmotion.exceptions import InvalidResult
from panelmotion.models import Character, Image, VideoModelId
from panelmotion.services.anthropic import MessageResult


def mock_client(text: str) -> MagicMock:
    client = MagicMock()
    client.model = "claude-sonnet-4-20250514"
    client.create_message = AsyncMock(return_value=MessageResult(
        text=text, input_tokens=1000, output_tokens=200, stop_reason="end_turn"
    ))
    return client


class TestExtractJson:
    """Tests for JSON extraction from model responses."""

    def test_code_block(self):
        assert extract_json('Here:\n```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_code_block(self):
        assert extract_json("```\n[1, 2]\n```") == "[1, 2]"

    def test_raw_array_before_object(self):
        assert extract_json('Scenes: [{"a": 1}, {"b": 2}] done') == '[{"a": 1}, {"b": 2}]'

    def test_raw_object(self):
        assert extract_json('The answer is {"model": "veo"}.') == '{"model": "veo"}'


class TestSceneDecomposerAgent:
    """Tests for the decomposition agent."""

    @pytest.mark.asyncio
    async def test_parses_camel_case_scenes(self):
        client = mock_client("""```json
[
  {"sceneDescription": "A rooftop at night", "narrative": "Mina turns",
   "duration": 4.5, "charactersInScene": ["Mina"], "sourcePageIndex": 0}
]
```""")
        agent = SceneDecomposerAgent(client=client)
        pages = [Image(data=b"page")]
        scenes, usage = await agent.run(DecomposeInput(
            pages=pages, characters=[Character(name="Mina", description="raincoat")]
        ))

        assert scenes[0].description == "A rooftop at night"
        assert scenes[0].duration == 4.5
        assert scenes[0].characters_in_scene == ["Mina"]
        assert usage.task == "Storyboard Generation"
        assert usage.tokens == 1200

        kwargs = client.create_message.call_args.kwargs
        assert kwargs["images"] == pages
        assert "Mina: raincoat" in kwargs["prompt"]
        assert kwargs["system"] == agent.system_prompt

    @pytest.mark.asyncio
    async def test_accepts_wrapped_snake_case(self):
        client = mock_client(
            '{"scenes": [{"description": "d", "narrative": "n", "duration": 3, '
            '"source_page_index": 1}]}'
        )
        scenes, _ = await SceneDecomposerAgent(client=client).run(
            DecomposeInput(pages=[Image(data=b"a"), Image(data=b"b")])
        )
        assert scenes[0].source_page_index == 1
        assert scenes[0].characters_in_scene == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [
        "not json at all",
        '{"scenes": "none"}',
        '[{"narrative": "missing description", "duration": 3, "sourcePageIndex": 0}]',
    ])
    async def test_malformed_responses(self, text):
        with pytest.raises(InvalidResult):
            await SceneDecomposerAgent(client=mock_client(text)).run(
                DecomposeInput(pages=[Image(data=b"a")])
            )


class TestModelRecommenderAgent:
    """Tests for the recommendation agent."""

    @pytest.mark.asyncio
    async def test_parses_recommendation(self):
        client = mock_client('{"model": "Kling", "reasoning": "Keeps characters consistent."}')
        recommendation, usage = await ModelRecommenderAgent(client=client).run(RecommendInput(
            description="d", narrative="n", models=list(VideoModelId)
        ))

        assert recommendation.model == VideoModelId.KLING
        assert recommendation.reasoning == "Keeps characters consistent."
        assert usage.task == "Recommend Video Model"

    @pytest.mark.asyncio
    async def test_prompt_lists_only_enabled_models(self):
        client = mock_client('{"model": "veo", "reasoning": "r"}')
        await ModelRecommenderAgent(client=client).run(RecommendInput(
            description="d", narrative="n", models=[VideoModelId.VEO]
        ))
        prompt = client.create_message.call_args.kwargs["prompt"]
        assert "veo (Veo 3)" in prompt
        assert "kling" not in prompt

    @pytest.mark.asyncio
    async def test_unknown_model_is_invalid(self):
        client = mock_client('{"model": "sora", "reasoning": "r"}')
        with pytest.raises(InvalidResult):
            await ModelRecommenderAgent(client=client).run(RecommendInput(
                description="d", narrative="n", models=list(VideoModelId)
            ))
