"""Google Veo API client wrapper via Vertex AI."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import storage

from ..config import config
from ..exceptions import ConfigurationError, MissingConfigError, UpstreamError, UpstreamUnavailable
from ..models import Image, JobHandle, JobStatus
from .vertex import VertexSession

logger = logging.getLogger(__name__)

PROVIDER = "veo"


class VeoClient:
    """Client wrapper for Google Veo image-to-video generation via Vertex AI.

    This client handles:
    - Submitting long-running generation requests (predictLongRunning)
    - Reporting operation state for a single poll (fetchPredictOperation)
    - Downloading generated videos from GCS
    - Best-effort cancellation of running operations

    Polling cadence and timeouts are owned by the caller.
    """

    DEFAULT_LOCATION = "us-central1"
    DEFAULT_MODEL = "veo-2.0-generate-001"
    MIN_DURATION = 5
    MAX_DURATION = 8
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_DELAY = 2.0

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        output_bucket: Optional[str] = None,
        model: Optional[str] = None,
        download_dir: Optional[Path] = None,
        aspect_ratio: str = "16:9",
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        session: Optional[VertexSession] = None,
    ) -> None:
        """Initialize the Veo client.

        Args:
            project_id: Google Cloud project ID. Defaults to GOOGLE_CLOUD_PROJECT env var.
            location: GCP region for Vertex AI.
            output_bucket: GCS bucket for output videos. Defaults to VEO_OUTPUT_BUCKET env var.
            model: Veo model name.
            download_dir: Where finished videos are downloaded.
            aspect_ratio: Video aspect ratio ('16:9' or '9:16').
            max_retries: Maximum retry attempts for transient errors.
            retry_delay: Base delay between retries (exponential backoff).
            session: Pre-built Vertex session (mainly for tests).
        """
        self._project_id = project_id or config.google_cloud_project
        self._location = location or config.google_cloud_location or self.DEFAULT_LOCATION
        self._output_bucket = output_bucket or config.veo_output_bucket
        self._model = model or config.veo_model or self.DEFAULT_MODEL
        self._download_dir = Path(download_dir or config.workspace / "videos")
        self._aspect_ratio = aspect_ratio
        self._max_retries = max_retries
        self._retry_delay = retry_delay

        # Validate required configuration
        self._validate_config()

        self._session = session or VertexSession(
            self._project_id, self._location, PROVIDER, max_retries, retry_delay
        )
        self._storage_client: Optional[storage.Client] = None

    def _validate_config(self) -> None:
        """Validate that required configuration is set."""
        missing = []
        if not self._project_id:
            missing.append("GOOGLE_CLOUD_PROJECT")
        if not self._output_bucket:
            missing.append("VEO_OUTPUT_BUCKET")

        if missing:
            raise MissingConfigError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Set the corresponding environment variables.",
                {"missing": missing},
            )

        # Validate bucket format
        if not self._output_bucket.startswith("gs://"):
            raise ConfigurationError(
                f"VEO_OUTPUT_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self._output_bucket}"
            )

        if self._aspect_ratio not in ("16:9", "9:16"):
            raise ConfigurationError(
                f"Invalid aspect_ratio: {self._aspect_ratio}. Must be '16:9' or '9:16'"
            )

    @property
    def project_id(self) -> str:
        """Return the Google Cloud project ID."""
        return self._project_id

    @property
    def output_bucket(self) -> str:
        """Return the output GCS bucket."""
        return self._output_bucket

    async def submit_job(self, prompt: str, start_frame: Image, duration: int) -> JobHandle:
        """Submit an image-to-video generation request.

        Args:
            prompt: Text description of the video to generate.
            start_frame: First frame of the clip.
            duration: Desired duration in seconds (clamped to Veo's 5-8s range).

        Returns:
            Handle of the long-running operation.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        # Clamp duration to Veo's supported range
        duration = max(self.MIN_DURATION, min(self.MAX_DURATION, int(duration)))
        storage_uri = f"{self._output_bucket.rstrip('/')}/panelmotion/{int(time.time())}/"

        body = {
            "instances": [
                {
                    "prompt": prompt,
                    "image": {
                        "bytesBase64Encoded": start_frame.b64,
                        "mimeType": start_frame.mime_type,
                    },
                }
            ],
            "parameters": {
                "aspectRatio": self._aspect_ratio,
                "durationSeconds": duration,
                "sampleCount": 1,
                "storageUri": storage_uri,
            },
        }

        logger.info(f"Starting Veo generation ({duration}s)")
        logger.debug(f"Prompt: {prompt[:100]}...")

        url = self._session.model_url(self._model, "predictLongRunning")
        data = await asyncio.to_thread(self._session.post, url, body)

        operation_name = data.get("name")
        if not operation_name:
            raise UpstreamUnavailable("Veo did not return an operation name", PROVIDER)

        logger.info(f"Veo operation started: {operation_name}")
        return JobHandle(
            job_id=operation_name,
            metadata={"duration": duration, "storage_uri": storage_uri},
        )

    async def poll_job(self, handle: JobHandle) -> JobStatus:
        """Check an operation once.

        Returns:
            pending, done with the video URI, or error with the reported message.
        """
        url = self._session.model_url(self._model, "fetchPredictOperation")
        data = await asyncio.to_thread(
            self._session.post, url, {"operationName": handle.job_id}
        )
        return self._parse_operation(data)

    def _parse_operation(self, data: Dict[str, Any]) -> JobStatus:
        if not data.get("done"):
            return JobStatus.pending()

        error = data.get("error")
        if error:
            return JobStatus.error(error.get("message") or f"Operation failed ({error.get('code')})")

        response = data.get("response") or {}
        videos = response.get("videos") or response.get("generatedSamples") or []
        if not videos:
            reasons = response.get("raiMediaFilteredReasons") or []
            if reasons:
                return JobStatus.error(f"Video was filtered: {'; '.join(reasons)}")
            return JobStatus.done(None)

        video = videos[0]
        uri = video.get("gcsUri") or (video.get("video") or {}).get("uri")
        return JobStatus.done(uri)

    async def fetch_result(self, artifact_ref: str) -> str:
        """Download a ``gs://`` artifact and return its local file URI.

        Non-GCS references are returned unchanged.
        """
        if not artifact_ref.startswith("gs://"):
            return artifact_ref

        local_path = self._download_dir / Path(artifact_ref).name
        await asyncio.to_thread(self._download_from_gcs, artifact_ref, local_path)
        return local_path.resolve().as_uri()

    async def cancel_job(self, handle: JobHandle) -> bool:
        """Cancel an in-progress operation.

        Returns:
            True if cancellation was accepted.
        """
        url = f"https://{self._location}-aiplatform.googleapis.com/v1/{handle.job_id}:cancel"
        try:
            logger.info(f"Cancelling operation: {handle.job_id}")
            await asyncio.to_thread(self._session.post, url, {})
            return True
        except UpstreamError as e:
            logger.error(f"Failed to cancel operation: {e}")
            return False

    def _download_from_gcs(self, gcs_uri: str, local_path: Path) -> None:
        """Download a file from GCS to local path.

        Args:
            gcs_uri: GCS URI (gs://bucket/path/to/file).
            local_path: Local path to save the file.
        """
        uri_parts = gcs_uri[5:].split("/", 1)
        if len(uri_parts) != 2:
            raise ValueError(f"Invalid GCS URI format: {gcs_uri}")

        bucket_name, blob_name = uri_parts

        # Ensure local directory exists
        local_path.parent.mkdir(parents=True, exist_ok=True)

        if self._storage_client is None:
            self._storage_client = storage.Client(project=self._project_id)

        # Download with retry
        for attempt in range(self._max_retries):
            try:
                bucket = self._storage_client.bucket(bucket_name)
                blob = bucket.blob(blob_name)
                blob.download_to_filename(str(local_path))
                logger.debug(f"Downloaded {gcs_uri} to {local_path}")
                return

            except google_exceptions.NotFound as e:
                logger.error(f"File not found in GCS: {gcs_uri}")
                raise UpstreamUnavailable(f"Video not found in GCS: {gcs_uri}", PROVIDER) from e

            except google_exceptions.GoogleAPICallError as e:
                if attempt == self._max_retries - 1:
                    raise UpstreamUnavailable(f"Failed to download {gcs_uri}: {e}", PROVIDER) from e
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Download failed (attempt {attempt + 1}): {e}. Retrying in {delay}s...")
                time.sleep(delay)
