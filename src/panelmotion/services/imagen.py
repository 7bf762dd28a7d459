"""Google Imagen API client wrapper via Vertex AI."""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..config import config
from ..exceptions import MissingConfigError, UpstreamRefused
from ..models import Image
from .vertex import VertexSession

logger = logging.getLogger(__name__)

PROVIDER = "imagen"


class ImagenClient:
    """Client wrapper for Google Imagen keyframe generation via Vertex AI.

    Uses the Imagen capability model so that generation can be conditioned on
    a style reference (the source page) and frames can be edited in place
    (end frames, regeneration).
    """

    DEFAULT_LOCATION = "us-central1"
    DEFAULT_MODEL = "imagen-3.0-capability-001"

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        model: Optional[str] = None,
        session: Optional[VertexSession] = None,
    ) -> None:
        """Initialize the Imagen client.

        Args:
            project_id: Google Cloud project ID.
            location: GCP region for Vertex AI.
            model: Imagen model name.
            session: Pre-built Vertex session (mainly for tests).
        """
        self._project_id = project_id or config.google_cloud_project
        self._location = location or config.google_cloud_location or self.DEFAULT_LOCATION
        self._model = model or config.imagen_model or self.DEFAULT_MODEL

        if not self._project_id:
            raise MissingConfigError("GOOGLE_CLOUD_PROJECT not set")

        self._session = session or VertexSession(self._project_id, self._location, PROVIDER)

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def model(self) -> str:
        return self._model

    async def generate_with_style(
        self,
        prompt: str,
        style_reference: Image,
        aspect_ratio: str = "16:9",
        style_description: str = "hand-drawn comic page",
        negative_prompt: Optional[str] = None,
    ) -> Image:
        """Generate an image that follows ``style_reference``.

        The prompt refers to the reference as ``[1]``.
        """
        instance = {
            "prompt": prompt,
            "referenceImages": [
                {
                    "referenceType": "REFERENCE_TYPE_STYLE",
                    "referenceId": 1,
                    "referenceImage": {"bytesBase64Encoded": style_reference.b64},
                    "styleImageConfig": {"styleDescription": style_description},
                }
            ],
        }
        parameters: Dict[str, Any] = {"sampleCount": 1, "aspectRatio": aspect_ratio}
        if negative_prompt:
            parameters["negativePrompt"] = negative_prompt

        logger.info(f"Generating styled frame with Imagen: {prompt[:50]}...")
        return await self._predict(instance, parameters)

    async def edit(
        self,
        prompt: str,
        base_image: Image,
        aspect_ratio: str = "16:9",
        negative_prompt: Optional[str] = None,
    ) -> Image:
        """Produce a new image from ``base_image`` following ``prompt``.

        The base image is never modified; a new image is returned.
        """
        instance = {
            "prompt": prompt,
            "referenceImages": [
                {
                    "referenceType": "REFERENCE_TYPE_RAW",
                    "referenceId": 1,
                    "referenceImage": {"bytesBase64Encoded": base_image.b64},
                }
            ],
        }
        parameters: Dict[str, Any] = {
            "sampleCount": 1,
            "aspectRatio": aspect_ratio,
            "editMode": "EDIT_MODE_DEFAULT",
        }
        if negative_prompt:
            parameters["negativePrompt"] = negative_prompt

        logger.info(f"Editing frame with Imagen: {prompt[:50]}...")
        return await self._predict(instance, parameters)

    async def _predict(self, instance: Dict[str, Any], parameters: Dict[str, Any]) -> Image:
        url = self._session.model_url(self._model, "predict")
        body = {"instances": [instance], "parameters": parameters}
        data = await asyncio.to_thread(self._session.post, url, body)
        return self._extract_image(data)

    def _extract_image(self, data: Dict[str, Any]) -> Image:
        """Pull the first image out of a predict response."""
        predictions = data.get("predictions") or []
        if not predictions:
            raise UpstreamRefused("Imagen returned no predictions", PROVIDER)

        prediction = predictions[0]
        image_data = prediction.get("bytesBase64Encoded")
        if not image_data:
            reason = prediction.get("raiFilteredReason") or "no image data in response"
            raise UpstreamRefused(f"Imagen did not return an image: {reason}", PROVIDER)

        return Image.from_b64(image_data, prediction.get("mimeType") or "image/png")
