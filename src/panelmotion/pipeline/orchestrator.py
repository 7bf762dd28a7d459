"""Storyboard orchestration.

The orchestrator owns the scene collection of the current storyboard. Scenes
are frozen snapshots; every change goes through :meth:`StoryboardOrchestrator._apply`,
which replaces the snapshot and publishes a :class:`ScenePatch` to all
subscribers. Each build bumps the generation counter and cancels the work of
the previous storyboard, so patches from stale tasks are dropped.
"""

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Set, Tuple

from ..config import config
from ..exceptions import (
    ConfigurationError,
    JobAlreadyRunning,
    SceneNotFound,
    SceneNotReady,
    StoryboardSuperseded,
)
from ..models import (
    Character,
    FrameType,
    Image,
    JobUpdate,
    PatchKind,
    Recommendation,
    Scene,
    ScenePatch,
    Storyboard,
    VideoModelId,
    VideoStatus,
)
from ..services.base import GenerationService, VideoService
from ..usage import InMemoryUsageLedger, UsageLedger
from .channel import Channel
from .decomposer import SceneDecomposer
from .frames import FrameSynthesizer
from .prompts import PromptComposer
from .recommender import ModelRecommender
from .video import VideoJobRunner, reason

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled"


class StoryboardOrchestrator:
    """Builds a storyboard from page images and drives per-scene operations."""

    def __init__(
        self,
        generation_service: GenerationService,
        video_service: Optional[VideoService] = None,
        ledger: Optional[UsageLedger] = None,
        models: Optional[Sequence[str]] = None,
        aspect_ratio: Optional[str] = None,
        video_backend: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_poll_time: Optional[float] = None,
    ) -> None:
        video_models = [VideoModelId(m) for m in (models or config.video_models)]

        self.ledger = ledger if ledger is not None else InMemoryUsageLedger()
        self.decomposer = SceneDecomposer(generation_service, self.ledger)
        self.recommender = ModelRecommender(generation_service, video_models, self.ledger)
        self.frames = FrameSynthesizer(generation_service, self.ledger)
        self.composer = PromptComposer(video_models, aspect_ratio or config.frame_aspect_ratio)
        self.runner: Optional[VideoJobRunner] = None
        if video_service is not None:
            self.runner = VideoJobRunner(
                video_service,
                self.ledger,
                backend=VideoModelId(video_backend or config.video_backend),
                poll_interval=poll_interval,
                max_poll_time=max_poll_time,
            )

        self._generation = 0
        self._sequence = 0
        self._order: List[str] = []
        self._scenes: Dict[str, Scene] = {}
        self._pages: List[Image] = []
        self._characters: List[Character] = []
        self._tasks: Set[asyncio.Task] = set()
        self._jobs: Dict[str, asyncio.Task] = {}
        self._subscribers: List[Channel] = []
        self._events: List[ScenePatch] = []

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def scenes(self) -> List[Scene]:
        """Current scene snapshots in display order."""
        return [self._scenes[scene_id] for scene_id in self._order]

    @property
    def pages(self) -> List[Image]:
        return list(self._pages)

    @property
    def characters(self) -> List[Character]:
        return list(self._characters)

    @property
    def events(self) -> List[ScenePatch]:
        """Patches of the current storyboard, starting with its RESET, in order."""
        return list(self._events)

    def get_scene(self, scene_id: str) -> Scene:
        try:
            return self._scenes[scene_id]
        except KeyError:
            raise SceneNotFound(scene_id) from None

    def subscribe(self) -> Channel:
        """Return a channel receiving every future :class:`ScenePatch`."""
        channel = Channel(name="scene-patches")
        self._subscribers.append(channel)
        return channel

    def unsubscribe(self, channel: Channel) -> None:
        if channel in self._subscribers:
            self._subscribers.remove(channel)
        channel.close()

    # ------------------------------------------------------------------
    # Storyboard build
    # ------------------------------------------------------------------

    async def build_storyboard(
        self, pages: Sequence[Image], characters: Sequence[Character] = ()
    ) -> List[Scene]:
        """Decompose ``pages`` and generate keyframes and prompts per scene.

        Replaces the current storyboard. Decomposition failures abort the
        build and leave the storyboard empty; per-scene failures only mark
        the affected scene (``error`` set, still loading).

        Raises:
            ValueError: If no pages are given.
            UpstreamError: If decomposition fails.
            StoryboardSuperseded: If a newer build started meanwhile.
        """
        if not pages:
            raise ValueError("At least one page image is required")

        self._reset()
        generation = self._generation
        self._pages = list(pages)
        self._characters = list(characters)

        logger.info(
            f"Building storyboard {generation} from {len(self._pages)} pages "
            f"and {len(self._characters)} characters"
        )
        return await self._run_tracked(
            self._build(generation, self._pages, self._characters), generation
        )

    async def _build(
        self, generation: int, pages: List[Image], characters: List[Character]
    ) -> List[Scene]:
        initial_scenes = await self.decomposer.decompose(pages, characters)

        placeholders = [Scene.placeholder(initial) for initial in initial_scenes]
        for scene in placeholders:
            self._order.append(scene.id)
            self._scenes[scene.id] = scene
            self._publish(PatchKind.CREATED, scene.id, {}, scene)

        # One scene at a time to bound concurrent calls and cost
        for index, scene in enumerate(placeholders, 1):
            logger.info(f"Preparing scene {index}/{len(placeholders)} ({scene.id})")
            await self._prepare_scene(generation, scene.id, pages, characters)

        failed = sum(1 for s in self.scenes if s.failed)
        logger.info(
            f"Storyboard {generation} complete: {len(placeholders) - failed} ready, {failed} failed"
        )
        return self.scenes

    async def _prepare_scene(
        self,
        generation: int,
        scene_id: str,
        pages: List[Image],
        characters: List[Character],
    ) -> Optional[Scene]:
        """Run the frame/prompt stage of one scene and publish the result."""
        scene = self._scenes[scene_id]
        changes: Dict[str, Any] = {}

        try:
            start_result, described = await asyncio.gather(
                self.frames.start_frame(scene.description, pages[scene.source_page_index]),
                self._describe(scene, characters),
                return_exceptions=True,
            )
            for result in (start_result, described):
                if isinstance(result, asyncio.CancelledError):
                    raise result

            # Keep whichever half succeeded before reporting the other's failure
            if not isinstance(described, Exception):
                recommendation, prompts = described
                changes.update(
                    prompts=prompts,
                    recommended_model=recommendation.model,
                    reasoning=recommendation.reasoning,
                    recommendation_fallback=recommendation.fallback,
                )
            if not isinstance(start_result, Exception):
                changes["start_frame"] = start_result

            for result in (described, start_result):
                if isinstance(result, Exception):
                    raise result

            changes["end_frame"] = await self.frames.end_frame(
                start_result, scene.narrative, scene.duration
            )

        except Exception as e:
            message = f"Scene generation failed: {reason(e)}"
            logger.error(f"{scene_id}: {message}")
            return self._apply(generation, scene_id, error=message, **changes)

        return self._apply(generation, scene_id, is_loading=False, error=None, **changes)

    async def _describe(
        self, scene: Scene, characters: List[Character]
    ) -> Tuple[Recommendation, Dict[VideoModelId, str]]:
        recommendation = await self.recommender.recommend(scene.description, scene.narrative)
        return recommendation, self.composer.compose(scene, characters)

    # ------------------------------------------------------------------
    # Per-scene operations
    # ------------------------------------------------------------------

    async def regenerate_frame(
        self, scene_id: str, frame_type: FrameType, edit_instruction: str = ""
    ) -> Scene:
        """Replace one keyframe; the other frame and all other fields are kept.

        On failure the error is raised and the previous frame stays in place.
        """
        frame_type = FrameType(frame_type)
        scene = self.get_scene(scene_id)
        original = scene.frame(frame_type)
        if original is None:
            raise SceneNotReady(scene_id, f"the {frame_type.value} frame has not been generated")

        generation = self._generation
        image = await self._run_tracked(
            self.frames.regenerate(original, edit_instruction, scene.description), generation
        )
        return self._apply_or_raise(generation, scene_id, **{frame_type.field_name: image})

    async def refresh_recommendation(self, scene_id: str) -> Scene:
        """Ask for a new model recommendation; only recommendation fields change."""
        scene = self.get_scene(scene_id)
        generation = self._generation
        recommendation = await self._run_tracked(
            self.recommender.recommend(scene.description, scene.narrative), generation
        )
        return self._apply_or_raise(
            generation,
            scene_id,
            recommended_model=recommendation.model,
            reasoning=recommendation.reasoning,
            recommendation_fallback=recommendation.fallback,
        )

    async def retry_scene(self, scene_id: str) -> Scene:
        """Re-run the frame/prompt stage of a scene whose build failed."""
        scene = self.get_scene(scene_id)
        if not scene.failed:
            raise SceneNotReady(scene_id, "only failed scenes can be retried")

        generation = self._generation
        self._apply(generation, scene_id, error=None)
        await self._run_tracked(
            self._prepare_scene(generation, scene_id, self._pages, self._characters), generation
        )
        return self.get_scene(scene_id)

    async def run_video_job(self, scene_id: str) -> Scene:
        """Render the scene's video and return the settled scene.

        Job failures leave the scene in ``error`` with the message in
        ``video_generation_progress``; they are not raised.

        Raises:
            JobAlreadyRunning: The scene already has an active job.
            ConfigurationError: No video service was given.
            SceneNotReady: The scene has no start frame or prompt, or is done.
            StoryboardSuperseded: A newer build discarded the scene meanwhile.
        """
        if self.runner is None:
            raise ConfigurationError("No video service configured")
        scene = self.get_scene(scene_id)
        if scene_id in self._jobs:
            raise JobAlreadyRunning(scene_id)
        self.runner.check_runnable(scene)

        generation = self._generation
        channel = Channel(name=f"job:{scene_id}")
        task = self._spawn(self.runner.run(scene, channel))
        # A task cancelled before it starts never reaches the runner's cleanup
        task.add_done_callback(lambda _: channel.close())
        self._jobs[scene_id] = task

        try:
            async for update in channel:
                self._apply_job_update(generation, scene_id, update)
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            self._apply_job_update(generation, scene_id, self._cancelled_update())
            raise
        finally:
            if self._jobs.get(scene_id) is task:
                del self._jobs[scene_id]

        if task.cancelled():
            if generation != self._generation:
                raise StoryboardSuperseded(generation)
            self._apply_job_update(generation, scene_id, self._cancelled_update())
        else:
            task.result()

        return self.get_scene(scene_id)

    def cancel_video_job(self, scene_id: str) -> bool:
        """Request cancellation of a running job.

        The pending :meth:`run_video_job` call then returns the scene in
        ``idle`` with progress "Cancelled".
        """
        task = self._jobs.get(scene_id)
        if task is None or task.done():
            return False
        logger.info(f"Cancelling video job for {scene_id}")
        task.cancel()
        return True

    def _apply_job_update(self, generation: int, scene_id: str, update: JobUpdate) -> None:
        self._apply(generation, scene_id, **update.as_scene_changes())

    @staticmethod
    def _cancelled_update() -> JobUpdate:
        return JobUpdate(status=VideoStatus.IDLE, progress=CANCELLED_MESSAGE)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def restore(self, storyboard: Storyboard, pages: Optional[Sequence[Image]] = None) -> None:
        """Adopt a saved storyboard as the current one.

        Page images are read from the storyboard's paths unless given.
        Jobs that were pending when saved cannot be resumed and become idle.
        """
        pages = list(pages) if pages is not None else storyboard.load_pages()
        self._reset()
        self._pages = pages
        self._characters = list(storyboard.characters)
        for scene in storyboard.scenes:
            if scene.video_generation_status == VideoStatus.PENDING:
                scene = scene.model_copy(update={
                    "video_generation_status": VideoStatus.IDLE,
                    "video_generation_progress": None,
                })
            self._order.append(scene.id)
            self._scenes[scene.id] = scene
            self._publish(PatchKind.CREATED, scene.id, {}, scene)
        logger.info(f"Restored storyboard {self._generation} with {len(self._order)} scenes")

    async def close(self) -> None:
        """Cancel all in-flight work and close subscriber channels."""
        tasks = list(self._tasks)
        self._reset()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for channel in self._subscribers:
            channel.close()
        self._subscribers.clear()

    def _reset(self) -> None:
        """Discard the current storyboard and cancel its in-flight work."""
        in_flight = [t for t in self._tasks if not t.done()]
        for task in in_flight:
            task.cancel()
        if in_flight:
            logger.info(f"Cancelled {len(in_flight)} in-flight tasks of storyboard {self._generation}")

        self._generation += 1
        self._order = []
        self._scenes = {}
        self._jobs = {}
        self._events = []
        self._publish(PatchKind.RESET, None, {}, None)

    # ------------------------------------------------------------------
    # Task tracking and the single update path
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_tracked(self, coro: Awaitable, generation: int) -> Any:
        """Run ``coro`` as a tracked task so a rebuild can cancel it."""
        task = self._spawn(coro)
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task.cancelled():
            raise StoryboardSuperseded(generation)
        return task.result()

    def _apply(self, generation: int, scene_id: str, **changes: Any) -> Optional[Scene]:
        """Replace a scene snapshot and publish the change.

        Returns None (and publishes nothing) for stale generations or
        unknown scenes.
        """
        if generation != self._generation or scene_id not in self._scenes:
            logger.debug(f"Dropping stale patch for {scene_id} (generation {generation})")
            return None

        scene = self._scenes[scene_id].model_copy(update=changes)
        self._scenes[scene_id] = scene
        self._publish(PatchKind.UPDATED, scene_id, changes, scene)
        return scene

    def _apply_or_raise(self, generation: int, scene_id: str, **changes: Any) -> Scene:
        scene = self._apply(generation, scene_id, **changes)
        if scene is None:
            raise StoryboardSuperseded(generation)
        return scene

    def _publish(
        self,
        kind: PatchKind,
        scene_id: Optional[str],
        changes: Dict[str, Any],
        scene: Optional[Scene],
    ) -> None:
        self._sequence += 1
        patch = ScenePatch(
            sequence=self._sequence,
            generation=self._generation,
            kind=kind,
            scene_id=scene_id,
            changes=changes,
            scene=scene,
        )
        self._events.append(patch)
        for channel in self._subscribers:
            channel.publish(patch)
