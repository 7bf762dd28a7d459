"""Storyboard agent that splits comic pages into animated scenes."""

from dataclasses import dataclass, field
from typing import List, Tuple

from pydantic import ValidationError

from ..exceptions import InvalidResult
from ..models import Character, DecomposedScene, Image, UsageEvent
from ..usage import text_usage
from .base import BaseAgent

SYSTEM_PROMPT = """You are a storyboard artist adapting comic and webtoon pages into short animated scenes.
Break the provided pages into individual scenes, one per narrative beat (usually one per panel).

Output valid JSON only, with no additional text or markdown formatting.
The JSON must be an array of scene objects with these keys:
- "sceneDescription": a detailed, cinematic prompt for an image generator describing the first frame
  of the scene in a modern anime style: characters, setting, action, mood, lighting and camera angle.
  Invent a plausible detailed background when the panel's background is simple or missing.
  Ignore all text, speech bubbles and sound effects. The frame is a single 16:9 shot, not a comic panel.
- "narrative": one sentence describing the key action that happens during the scene.
- "duration": scene duration in seconds, an integer between 3 and 10.
- "charactersInScene": names of the characters present, using only names from the provided list.
- "sourcePageIndex": the 0-based index of the page image the scene comes from."""


@dataclass
class DecomposeInput:
    """Input data for the storyboard agent."""

    pages: List[Image]
    characters: List[Character] = field(default_factory=list)


class SceneDecomposerAgent(BaseAgent[DecomposeInput, Tuple[List[DecomposedScene], UsageEvent]]):
    """Agent for turning page images into raw scene descriptors."""

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "SceneDecomposerAgent"

    @property
    def system_prompt(self) -> str:
        """Return the system prompt for scene decomposition."""
        return SYSTEM_PROMPT

    async def run(self, input_data: DecomposeInput) -> Tuple[List[DecomposedScene], UsageEvent]:
        """Decompose the pages into scenes.

        Raises:
            InvalidResult: If the response cannot be parsed as a scene list.
        """
        self._logger.info(
            f"Decomposing {len(input_data.pages)} pages "
            f"({len(input_data.characters)} characters)"
        )

        result = await self._create_message(
            prompt=self._build_prompt(input_data),
            images=input_data.pages,
            max_tokens=8192,
            temperature=0.4,
        )
        usage = text_usage(
            "Storyboard Generation", result.input_tokens, result.output_tokens, self.model
        )

        scenes = self._parse_response(result.text)
        self._logger.info(f"Decomposed into {len(scenes)} scenes")
        return scenes, usage

    def _build_prompt(self, input_data: DecomposeInput) -> str:
        """Build the user prompt for decomposition."""
        if input_data.characters:
            character_list = "\n".join(
                f"- {c.name}: {c.description or 'No description'}" for c in input_data.characters
            )
        else:
            character_list = "- (none provided)"

        return "\n".join([
            f"The {len(input_data.pages)} images above are comic pages, in reading order "
            f"(page 0 to page {len(input_data.pages) - 1}).",
            "",
            "AVAILABLE CHARACTERS:",
            character_list,
            "",
            "Generate the JSON array of scenes.",
        ])

    def _parse_response(self, response: str) -> List[DecomposedScene]:
        data = self._parse_json(response)

        # Handle an object wrapping the array
        scenes_data = data.get("scenes", data) if isinstance(data, dict) else data
        if not isinstance(scenes_data, list):
            raise InvalidResult("Response does not contain a scenes array", "anthropic")

        scenes: List[DecomposedScene] = []
        for i, item in enumerate(scenes_data):
            if not isinstance(item, dict):
                raise InvalidResult(f"Scene {i} is not an object", "anthropic")
            try:
                scenes.append(DecomposedScene(
                    description=item.get("sceneDescription", item.get("description")),
                    narrative=item.get("narrative"),
                    duration=item.get("duration"),
                    characters_in_scene=item.get(
                        "charactersInScene", item.get("characters_in_scene")
                    ) or [],
                    source_page_index=item.get(
                        "sourcePageIndex", item.get("source_page_index")
                    ),
                ))
            except ValidationError as e:
                raise InvalidResult(f"Scene {i} is malformed: {e}", "anthropic") from e

        return scenes
