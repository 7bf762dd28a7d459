"""
Pytest Configuration and Fixtures

Shared fixtures and fake services for all tests.
"""

import asyncio
from typing import List, Optional, Sequence

import pytest

from panelmotion.exceptions import UpstreamRefused, UpstreamUnavailable
from panelmotion.models import (
    Character,
    DecomposedScene,
    Image,
    JobHandle,
    JobStatus,
    Recommendation,
    UsageEvent,
    VideoModelId,
)
from panelmotion.usage import InMemoryUsageLedger


def make_image(label: str) -> Image:
    return Image(data=label.encode("utf-8"), mime_type="image/png")


class FakeGenerationService:
    """In-memory GenerationService with scriptable failures."""

    def __init__(self, scenes: Optional[List[DecomposedScene]] = None) -> None:
        self.scenes = scenes if scenes is not None else [
            DecomposedScene(
                description="Mina stands on a rainy rooftop at night",
                narrative="Mina turns toward the city lights",
                duration=4.4,
                characters_in_scene=["Mina"],
                source_page_index=0,
            ),
            DecomposedScene(
                description="Joon bursts through the rooftop door",
                narrative="Joon runs toward Mina and stops",
                duration=12,
                characters_in_scene=["Joon", "Mina", "Ghost"],
                source_page_index=1,
            ),
        ]
        self.recommendation = Recommendation(
            model=VideoModelId.VEO, reasoning="Veo handles rain and night lighting well."
        )
        self.decompose_error: Optional[Exception] = None
        self.recommend_error: Optional[Exception] = None
        self.regenerate_error: Optional[Exception] = None
        self.fail_start_for: List[str] = []
        self.fail_end_for: List[str] = []
        self.decompose_gate: Optional[asyncio.Event] = None
        self.regenerate_gate: Optional[asyncio.Event] = None
        self.start_gate: Optional[asyncio.Event] = None
        self.recommend_started: Optional[asyncio.Event] = None
        self.calls: List[str] = []

    async def decompose_scenes(self, pages: Sequence[Image], characters: Sequence[Character]):
        self.calls.append("decompose")
        if self.decompose_gate is not None:
            await self.decompose_gate.wait()
        if self.decompose_error is not None:
            raise self.decompose_error
        return list(self.scenes), UsageEvent(task="Storyboard Generation", tokens=1200, cost_usd=0.01)

    async def recommend_model(self, description, narrative, models):
        self.calls.append(f"recommend:{description}")
        if self.recommend_started is not None:
            self.recommend_started.set()
        if self.recommend_error is not None:
            raise self.recommend_error
        return self.recommendation, UsageEvent(task="Recommend Video Model", tokens=300, cost_usd=0.001)

    async def synthesize_start_frame(self, prompt, reference_image):
        self.calls.append(f"start:{prompt}")
        if self.start_gate is not None:
            await self.start_gate.wait()
        if prompt in self.fail_start_for:
            raise UpstreamRefused("Image generation was blocked", provider="fake")
        image = make_image(f"start:{prompt}|ref:{reference_image.data.decode()}")
        return image, UsageEvent(task="Generate Video Frame", images=1, cost_usd=0.02)

    async def synthesize_end_frame(self, start_frame, narrative, duration):
        self.calls.append(f"end:{narrative}")
        if narrative in self.fail_end_for:
            raise UpstreamUnavailable("Image service unavailable", provider="fake")
        image = make_image(f"end:{narrative}:{duration}")
        return image, UsageEvent(task="Generate End Frame", images=1, cost_usd=0.02)

    async def regenerate_frame(self, original, edit_instruction, context):
        self.calls.append(f"regenerate:{edit_instruction}")
        if self.regenerate_gate is not None:
            await self.regenerate_gate.wait()
        if self.regenerate_error is not None:
            raise self.regenerate_error
        image = make_image(f"regen:{original.data.decode()}:{edit_instruction or 'alternative'}")
        return image, UsageEvent(task="Regenerate Frame", images=1, cost_usd=0.02)


class FakeVideoService:
    """VideoService that answers polls from a script.

    The last scripted status repeats once the script is exhausted.
    """

    def __init__(self, script: Optional[List[JobStatus]] = None) -> None:
        self.script = script if script is not None else [
            JobStatus.pending(),
            JobStatus.pending(),
            JobStatus.done("gs://bucket/scene.mp4"),
        ]
        self.submit_error: Optional[Exception] = None
        self.poll_error: Optional[Exception] = None
        self.fetch_error: Optional[Exception] = None
        self.submitted: List[dict] = []
        self.polls = 0
        self.cancelled: List[str] = []

    async def submit_job(self, prompt, start_frame, duration):
        if self.submit_error is not None:
            raise self.submit_error
        job_id = f"operations/job-{len(self.submitted) + 1}"
        self.submitted.append({"prompt": prompt, "duration": duration, "job_id": job_id})
        return JobHandle(job_id=job_id)

    async def poll_job(self, handle):
        if self.poll_error is not None:
            raise self.poll_error
        status = self.script[min(self.polls, len(self.script) - 1)]
        self.polls += 1
        return status

    async def fetch_result(self, artifact_ref):
        if self.fetch_error is not None:
            raise self.fetch_error
        return artifact_ref.replace("gs://", "https://storage.example/")

    async def cancel_job(self, handle):
        self.cancelled.append(handle.job_id)
        return True


@pytest.fixture
def pages() -> List[Image]:
    """Two comic page images."""
    return [make_image("page-0"), make_image("page-1")]


@pytest.fixture
def characters() -> List[Character]:
    """Character roster."""
    return [
        Character(name="Mina", description="Short black hair, yellow raincoat"),
        Character(name="Joon", description="Tall, grey hoodie"),
    ]


@pytest.fixture
def generation_service() -> FakeGenerationService:
    return FakeGenerationService()


@pytest.fixture
def video_service() -> FakeVideoService:
    return FakeVideoService()


@pytest.fixture
def ledger() -> InMemoryUsageLedger:
    return InMemoryUsageLedger()


@pytest.fixture
def orchestrator(generation_service, video_service, ledger):
    """Orchestrator wired to the fakes with all models and no poll delay."""
    from panelmotion.pipeline import StoryboardOrchestrator

    return StoryboardOrchestrator(
        generation_service,
        video_service,
        ledger=ledger,
        models=["seedance", "hailuo", "veo", "kling"],
        aspect_ratio="16:9",
        video_backend="veo",
        poll_interval=0,
    )
