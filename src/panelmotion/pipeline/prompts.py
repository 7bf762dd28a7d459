"""Model-specific video prompt templates.

Every template is a pure function of the scene fields and the character
roster, so prompts can be recomputed at any time.
"""

from typing import Callable, Dict, Optional, Sequence, Union

from ..models import Character, InitialScene, Scene, VideoModelId

SceneLike = Union[Scene, InitialScene]
Template = Callable[[SceneLike, Sequence[Character], str], str]


def character_anchors(scene: SceneLike, roster: Sequence[Character]) -> str:
    """One anchor line per scene character that exists in the roster."""
    by_name = {c.name: c for c in roster}
    lines = [
        f"- character: {name}, {by_name[name].description or 'No description'}"
        for name in scene.characters_in_scene
        if name in by_name
    ]
    return "\n".join(lines) if lines else "- character: none"


def seedance_prompt(scene: SceneLike, roster: Sequence[Character], aspect: str) -> str:
    return f"""Title: Scene {scene.source_page_index + 1}
Duration: {scene.duration}s  Aspect: {aspect}  Style: cinematic, modern webtoon/anime style
Consistency anchors:
{character_anchors(scene, roster)}
- mood: [auto-detect from scene]

Shot 1 (0-{scene.duration}s):
- action: {scene.description}. {scene.narrative}.
- camera: [auto-detect from scene, cinematic]
- include anchors: all characters in scene

Negative:
- avoid: text artifacts, logos, watermarks, bad anatomy
"""


def hailuo_prompt(scene: SceneLike, roster: Sequence[Character], aspect: str) -> str:
    return f"""Task: Animate a short clip from a webtoon panel: {scene.description}
Length: {scene.duration}s  Aspect: {aspect}
Consistency anchors:
{character_anchors(scene, roster)}
Action physics:
- body mechanics: {scene.narrative}, with realistic weight and momentum.
- speed profile: natural acceleration and deceleration.
- environment forces: subtle ambient motion.

Camera:
- rig: cinematic, dynamic camera that enhances the action.
- lens: 35mm
- move: subtle dolly or pan to follow action.

Look:
- style: vibrant, modern webtoon/anime, high contrast.
- lighting: cinematic lighting, rim lights, detailed shadows.

Negative:
- avoid: limb bending artifacts, background wobble, static comic look
"""


def veo_prompt(scene: SceneLike, roster: Sequence[Character], aspect: str) -> str:
    return f"""Title: Webtoon Scene {scene.source_page_index + 1}
Duration: {scene.duration}s  Aspect: {aspect}  Style: High-quality anime scene, cinematic, detailed background.
Characters:
{character_anchors(scene, roster)}
Visual:
- Shot 1 (0-{scene.duration}s): {scene.description}. Action to perform: {scene.narrative}.

Audio:
- sfx: [appropriate ambient sounds for the scene]
- music: [instrumental music matching the mood]

Negative:
- avoid: text, speech bubbles, panel borders, photorealism.
"""


def kling_prompt(scene: SceneLike, roster: Sequence[Character], aspect: str) -> str:
    known = {c.name for c in roster}
    locked = ", ".join(n for n in scene.characters_in_scene if n in known) or "all characters"
    return f"""Mode: High  Length: {scene.duration}s  Aspect: {aspect}  Style: anime, cinematic
Reference images:
- subject: [The provided webtoon panel is the primary style and character reference]
Lock:
- keep: [{locked} hairstyle, color, outfit, face]
- do not change: character designs from reference.

Shot plan:
- Shot 1 (0-{scene.duration}s): {scene.description}. During the shot, {scene.narrative}.

Camera & Look:
- lens [35mm], movement [subtle, cinematic], lighting [dramatic, source-aware]

Negative:
- avoid: ref drift, extra accessories, background text
"""


TEMPLATES: Dict[VideoModelId, Template] = {
    VideoModelId.SEEDANCE: seedance_prompt,
    VideoModelId.HAILUO: hailuo_prompt,
    VideoModelId.VEO: veo_prompt,
    VideoModelId.KLING: kling_prompt,
}


class PromptComposer:
    """Renders a scene into one prompt per enabled video backend."""

    def __init__(
        self,
        models: Optional[Sequence[VideoModelId]] = None,
        aspect_ratio: str = "16:9",
    ) -> None:
        self._models = list(models) if models else list(TEMPLATES)
        self._aspect_ratio = aspect_ratio

    @property
    def models(self) -> list:
        return list(self._models)

    def compose_for(
        self, model: VideoModelId, scene: SceneLike, roster: Sequence[Character]
    ) -> str:
        return TEMPLATES[VideoModelId(model)](scene, roster, self._aspect_ratio)

    def compose(self, scene: SceneLike, roster: Sequence[Character]) -> Dict[VideoModelId, str]:
        return {model: self.compose_for(model, scene, roster) for model in self._models}
