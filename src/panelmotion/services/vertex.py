"""Shared Vertex AI REST plumbing for the Imagen and Veo clients."""

import logging
import time
from typing import Any, Dict, Optional

import google.auth
import google.auth.transport.requests
import requests
from google.auth import exceptions as auth_exceptions

from ..exceptions import UpstreamRefused, UpstreamUnavailable

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class VertexSession:
    """Authorized JSON requests against a Vertex AI publisher model."""

    def __init__(
        self,
        project_id: str,
        location: str,
        provider: str,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: float = 120.0,
    ) -> None:
        self._project_id = project_id
        self._location = location
        self._provider = provider
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._credentials = None

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def location(self) -> str:
        return self._location

    def model_url(self, model: str, method: str) -> str:
        return (
            f"https://{self._location}-aiplatform.googleapis.com/v1/"
            f"projects/{self._project_id}/locations/{self._location}/"
            f"publishers/google/models/{model}:{method}"
        )

    def _headers(self) -> Dict[str, str]:
        try:
            if self._credentials is None:
                self._credentials, _ = google.auth.default(scopes=SCOPES)
            if not self._credentials.valid:
                self._credentials.refresh(google.auth.transport.requests.Request())
        except auth_exceptions.GoogleAuthError as e:
            raise UpstreamUnavailable(
                f"Google Cloud credentials unavailable: {e}", self._provider
            ) from e

        return {
            "Authorization": f"Bearer {self._credentials.token}",
            "Content-Type": "application/json",
        }

    def post(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body and return the decoded response.

        Retries connection errors and retryable status codes with exponential
        backoff. This call blocks; run it in a worker thread from async code.

        Raises:
            UpstreamUnavailable: Unreachable service or retries exhausted.
            UpstreamRefused: The request was rejected (4xx).
        """
        last_error: Optional[str] = None

        for attempt in range(self._max_retries):
            try:
                response = requests.post(
                    url, json=body, headers=self._headers(), timeout=self._timeout
                )
            except requests.RequestException as e:
                last_error = str(e)
                logger.warning(f"Request to {self._provider} failed: {e}")
            else:
                if response.status_code == 200:
                    return response.json()

                last_error = f"{response.status_code}: {response.text[:500]}"
                if response.status_code not in RETRYABLE_STATUS:
                    logger.error(f"{self._provider} API error: {last_error}")
                    if response.status_code in (401, 403, 404):
                        raise UpstreamUnavailable(
                            f"{self._provider} API error {last_error}", self._provider
                        )
                    raise UpstreamRefused(
                        f"{self._provider} rejected the request: {last_error}", self._provider
                    )
                logger.warning(f"{self._provider} API error: {last_error}")

            if attempt < self._max_retries - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Retrying in {delay:.1f}s...")
                time.sleep(delay)

        raise UpstreamUnavailable(
            f"{self._provider} unavailable after {self._max_retries} attempts: {last_error}",
            self._provider,
        )
