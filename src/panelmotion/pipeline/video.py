"""Video job state machine: submit, poll, settle."""

import asyncio
import logging
from typing import Optional, Set

from ..config import config
from ..exceptions import JobAlreadyRunning, JobFailed, SceneNotReady
from ..models import JobHandle, JobState, JobUpdate, Scene, VideoModelId, VideoStatus
from ..services.base import VideoService
from ..usage import UsageLedger, video_usage
from .channel import Channel

logger = logging.getLogger(__name__)

STARTING_MESSAGE = "Starting video generation..."

PROGRESS_MESSAGES = [
    "Casting characters...",
    "Setting up the scene...",
    "Director is shouting 'Action!'...",
    "Rendering photons...",
    "Compositing layers...",
    "Adding final touches...",
]

CANCEL_TIMEOUT = 5.0


def reason(error: Exception) -> str:
    """User-facing text of an error, without the details mapping."""
    return str(getattr(error, "message", None) or error)


class VideoJobRunner:
    """Drives one video job per scene from ``idle`` to ``done`` or ``error``.

    Progress is published to a per-job :class:`Channel`; the runner is its
    only producer and closes it when the job settles or is cancelled.
    """

    def __init__(
        self,
        service: VideoService,
        ledger: Optional[UsageLedger] = None,
        backend: VideoModelId = VideoModelId.VEO,
        poll_interval: Optional[float] = None,
        max_poll_time: Optional[float] = None,
    ) -> None:
        self._service = service
        self._ledger = ledger
        self._backend = VideoModelId(backend)
        self._poll_interval = config.video_poll_interval if poll_interval is None else poll_interval
        self._max_poll_time = config.video_max_poll_time if max_poll_time is None else max_poll_time
        self._active: Set[str] = set()

    @property
    def backend(self) -> VideoModelId:
        return self._backend

    def is_active(self, scene_id: str) -> bool:
        return scene_id in self._active

    def check_runnable(self, scene: Scene) -> str:
        """Return the prompt to render, or raise if the scene cannot run now."""
        if scene.video_generation_status == VideoStatus.PENDING or scene.id in self._active:
            raise JobAlreadyRunning(scene.id)
        if scene.video_generation_status == VideoStatus.DONE:
            raise SceneNotReady(scene.id, "a video has already been generated")
        if scene.start_frame is None:
            raise SceneNotReady(scene.id, "the start frame has not been generated")
        prompt = scene.prompts.get(self._backend)
        if not prompt:
            raise SceneNotReady(scene.id, f"no {self._backend.value} prompt")
        return prompt

    async def run(self, scene: Scene, channel: Optional[Channel] = None) -> JobUpdate:
        """Run a video job for ``scene`` and return its settled update.

        Service failures settle the job in ``error``; they are never raised.
        Cancelling the calling task stops polling, asks the service to cancel
        the remote job and re-raises ``CancelledError``.

        Raises:
            JobAlreadyRunning: The scene already has an active job.
            SceneNotReady: The scene has no start frame or prompt, or is done.
        """
        prompt = self.check_runnable(scene)
        self._active.add(scene.id)
        handle: Optional[JobHandle] = None

        def emit(update: JobUpdate) -> JobUpdate:
            if channel is not None:
                channel.publish(update)
            return update

        try:
            emit(JobUpdate(status=VideoStatus.PENDING, progress=STARTING_MESSAGE))
            logger.info(f"Video job for {scene.id}: submitting ({scene.duration}s)")

            try:
                handle = await self._service.submit_job(prompt, scene.start_frame, scene.duration)
            except Exception as e:
                return emit(self._failed(scene, f"Video generation failed: {reason(e)}"))

            try:
                return emit(await self._poll(scene, handle, emit))
            except JobFailed as e:
                return emit(self._failed(scene, e.message))
            except Exception as e:
                logger.exception(f"Video job for {scene.id}: unexpected failure")
                return emit(self._failed(scene, f"Video generation failed: {reason(e)}"))

        except asyncio.CancelledError:
            logger.info(f"Video job for {scene.id} cancelled")
            if handle is not None:
                await self._cancel_remote(handle)
            raise

        finally:
            self._active.discard(scene.id)
            if channel is not None:
                channel.close()

    async def _poll(self, scene: Scene, handle: JobHandle, emit) -> JobUpdate:
        """Poll until the job is done and return the settled update.

        Raises:
            JobFailed: The job failed, timed out or its result is unavailable.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        tick = 0

        while True:
            try:
                status = await self._service.poll_job(handle)
            except Exception as e:
                raise JobFailed(f"Video generation failed: {reason(e)}", handle.job_id) from e

            if status.state == JobState.ERROR:
                raise JobFailed(f"Video generation failed: {status.message}", handle.job_id)
            if status.state == JobState.DONE:
                break

            if loop.time() - started >= self._max_poll_time:
                await self._cancel_remote(handle)
                raise JobFailed(
                    f"Video generation timed out after {self._max_poll_time:.0f}s", handle.job_id
                )

            tick += 1
            emit(JobUpdate(
                status=VideoStatus.PENDING,
                progress=PROGRESS_MESSAGES[(tick - 1) % len(PROGRESS_MESSAGES)],
                poll=tick,
            ))
            logger.debug(f"Video job for {scene.id}: poll {tick} pending")
            await asyncio.sleep(self._poll_interval)

        if not status.artifact_ref:
            raise JobFailed(
                "Video generation completed, but no download link was provided.", handle.job_id
            )

        try:
            video_url = await self._service.fetch_result(status.artifact_ref)
        except Exception as e:
            raise JobFailed(f"Failed to download video: {reason(e)}", handle.job_id) from e

        self._record_usage(scene)

        logger.info(f"Video job for {scene.id} done after {tick} polls")
        return JobUpdate(status=VideoStatus.DONE, progress="Video ready.", video_url=video_url)

    def _record_usage(self, scene: Scene) -> None:
        # Usage recording never fails a finished job
        if self._ledger is None:
            return
        try:
            self._ledger.record(video_usage("Generate Video", scene.duration))
        except Exception as e:
            logger.error(f"Could not record video usage for {scene.id}: {e}")

    def _failed(self, scene: Scene, message: str) -> JobUpdate:
        logger.error(f"Video job for {scene.id}: {message}")
        return JobUpdate(status=VideoStatus.ERROR, progress=message)

    async def _cancel_remote(self, handle: JobHandle) -> None:
        try:
            await asyncio.wait_for(self._service.cancel_job(handle), CANCEL_TIMEOUT)
        except Exception as e:
            logger.warning(f"Could not cancel job {handle.job_id}: {e}")
