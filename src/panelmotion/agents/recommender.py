"""Consultant agent that picks the best video backend for a scene."""

from dataclasses import dataclass
from typing import List, Tuple

from ..exceptions import InvalidResult
from ..models import Recommendation, UsageEvent, VideoModelId
from ..usage import text_usage
from .base import BaseAgent

MODEL_SPECIALTIES = {
    VideoModelId.SEEDANCE: "Multi-shot narrative sequences, high character/style consistency.",
    VideoModelId.HAILUO: "Complex physics, dynamic motion, action (sports, water, cloth).",
    VideoModelId.VEO: "Synchronized video and audio (dialogue, SFX, music). Up to 4K.",
    VideoModelId.KLING: "Consistency with multiple reference images. Good for bulk generation.",
}


@dataclass
class RecommendInput:
    """Input data for the recommender agent."""

    description: str
    narrative: str
    models: List[VideoModelId]


class ModelRecommenderAgent(BaseAgent[RecommendInput, Tuple[Recommendation, UsageEvent]]):
    """Agent that chooses one video model for a scene and explains why."""

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "ModelRecommenderAgent"

    @property
    def system_prompt(self) -> str:
        return (
            "You are an AI video generation consultant. Recommend the best model for a "
            "scene based on the models' strengths.\n\n"
            "Output valid JSON only: an object with a \"model\" key (one of the given "
            "model ids) and a \"reasoning\" key (one or two sentences)."
        )

    async def run(self, input_data: RecommendInput) -> Tuple[Recommendation, UsageEvent]:
        """Recommend a model.

        Raises:
            InvalidResult: If the answer is not JSON or names an unknown model.
        """
        result = await self._create_message(
            prompt=self._build_prompt(input_data),
            max_tokens=512,
            temperature=0.2,
        )
        usage = text_usage(
            "Recommend Video Model", result.input_tokens, result.output_tokens, self.model
        )
        return self._parse_response(result.text, input_data.models), usage

    def _build_prompt(self, input_data: RecommendInput) -> str:
        specialties = "\n".join(
            f"- {m.value} ({m.display_name}): {MODEL_SPECIALTIES[m]}" for m in input_data.models
        )
        ids = ", ".join(f"'{m.value}'" for m in input_data.models)
        return "\n".join([
            "MODELS & SPECIALTIES:",
            specialties,
            "",
            "SCENE TO ANALYZE:",
            f"- Visuals: \"{input_data.description}\"",
            f"- Action: \"{input_data.narrative}\"",
            "",
            f"Choose the single best model from [{ids}] and provide brief reasoning.",
        ])

    def _parse_response(self, response: str, models: List[VideoModelId]) -> Recommendation:
        data = self._parse_json(response)
        if not isinstance(data, dict):
            raise InvalidResult("Recommendation is not a JSON object", "anthropic")

        model_id = str(data.get("model", "")).strip().lower()
        allowed = {m.value: m for m in models}
        if model_id not in allowed:
            raise InvalidResult(f"Unknown model recommended: '{model_id}'", "anthropic")

        reasoning = str(data.get("reasoning") or "").strip()
        return Recommendation(model=allowed[model_id], reasoning=reasoning or "No reasoning given.")
