"""Provider-agnostic service interfaces consumed by the pipeline."""

from typing import List, Protocol, Sequence, Tuple, runtime_checkable

from ..models import (
    Character,
    DecomposedScene,
    Image,
    JobHandle,
    JobStatus,
    Recommendation,
    UsageEvent,
    VideoModelId,
)


@runtime_checkable
class GenerationService(Protocol):
    """Text, multimodal and image generation used to build a storyboard.

    Every method returns its result together with the usage event of the
    call and raises an ``UpstreamError`` subclass on failure.
    """

    async def decompose_scenes(
        self, pages: Sequence[Image], characters: Sequence[Character]
    ) -> Tuple[List[DecomposedScene], UsageEvent]:
        ...

    async def recommend_model(
        self, description: str, narrative: str, models: Sequence[VideoModelId]
    ) -> Tuple[Recommendation, UsageEvent]:
        ...

    async def synthesize_start_frame(
        self, prompt: str, reference_image: Image
    ) -> Tuple[Image, UsageEvent]:
        ...

    async def synthesize_end_frame(
        self, start_frame: Image, narrative: str, duration: int
    ) -> Tuple[Image, UsageEvent]:
        ...

    async def regenerate_frame(
        self, original: Image, edit_instruction: str, context: str
    ) -> Tuple[Image, UsageEvent]:
        ...


@runtime_checkable
class VideoService(Protocol):
    """Long-running video synthesis jobs."""

    async def submit_job(self, prompt: str, start_frame: Image, duration: int) -> JobHandle:
        ...

    async def poll_job(self, handle: JobHandle) -> JobStatus:
        ...

    async def fetch_result(self, artifact_ref: str) -> str:
        """Make the finished artifact available and return its URL."""
        ...

    async def cancel_job(self, handle: JobHandle) -> bool:
        ...
