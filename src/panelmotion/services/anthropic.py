"""Anthropic Claude API client wrapper."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from anthropic import (
    AsyncAnthropic,
    APIConnectionError,
    APIError,
    APIStatusError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    RateLimitError,
)

from ..config import config
from ..exceptions import MissingConfigError, UpstreamRefused, UpstreamUnavailable
from ..models import Image

logger = logging.getLogger(__name__)

PROVIDER = "anthropic"


@dataclass
class MessageResult:
    """Text and token usage of a Claude response."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0
    stop_reason: Optional[str] = None


class AnthropicClient:
    """Async client wrapper for Anthropic Claude API with retry logic."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        """Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY env var.
            model: Model to use. Defaults to config.default_model.
            max_retries: Maximum number of retry attempts for failed requests.
            retry_delay: Base delay between retries in seconds (exponential backoff).
        """
        self._api_key = api_key or config.anthropic_api_key
        if not self._api_key:
            raise MissingConfigError(
                "Anthropic API key not provided. Set ANTHROPIC_API_KEY env var."
            )

        self._client = AsyncAnthropic(api_key=self._api_key)
        self._model = model or config.default_model
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    async def create_message(
        self,
        prompt: str,
        images: Sequence[Image] = (),
        max_tokens: int = 4096,
        system: Optional[str] = None,
        temperature: float = 0.7,
    ) -> MessageResult:
        """Create a message using Claude.

        Args:
            prompt: The user prompt to send.
            images: Images sent ahead of the prompt, in order.
            max_tokens: Maximum tokens in the response.
            system: Optional system prompt.
            temperature: Sampling temperature (0.0-1.0).

        Returns:
            The text content and token usage of Claude's response.

        Raises:
            UpstreamUnavailable: If the API cannot be reached after all retries
                or rejects the credentials.
            UpstreamRefused: If the request is rejected or the response is empty.
        """
        content = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": image.mime_type, "data": image.b64},
            }
            for image in images
        ]
        content.append({"type": "text", "text": prompt})
        messages = [{"role": "user", "content": content}]

        for attempt in range(self._max_retries):
            try:
                logger.debug(
                    f"Sending request to Claude (attempt {attempt + 1}/{self._max_retries}, "
                    f"{len(images)} images)"
                )

                kwargs = {
                    "model": self._model,
                    "max_tokens": max_tokens,
                    "messages": messages,
                    "temperature": temperature,
                }
                if system:
                    kwargs["system"] = system

                response = await self._client.messages.create(**kwargs)
                return self._to_result(response)

            except (RateLimitError, APIConnectionError, InternalServerError) as e:
                if attempt == self._max_retries - 1:
                    raise UpstreamUnavailable(
                        f"Claude unavailable after {self._max_retries} attempts: {e}",
                        PROVIDER,
                    ) from e
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"{type(e).__name__}: {e}. Retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)

            except AuthenticationError as e:
                logger.error(f"Authentication failed: {e}")
                raise UpstreamUnavailable(f"Claude rejected the API key: {e}", PROVIDER) from e

            except BadRequestError as e:
                logger.error(f"Request rejected: {e}")
                raise UpstreamRefused(f"Claude rejected the request: {e}", PROVIDER) from e

            except (APIStatusError, APIError) as e:
                logger.error(f"API error: {e}")
                raise UpstreamUnavailable(f"Claude API error: {e}", PROVIDER) from e

        raise UpstreamUnavailable("Max retries exceeded", PROVIDER)

    def _to_result(self, response) -> MessageResult:
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if response.stop_reason == "refusal":
            raise UpstreamRefused("Claude refused to answer", PROVIDER)
        if not text.strip():
            raise UpstreamRefused("Claude returned an empty response", PROVIDER)

        usage = getattr(response, "usage", None)
        return MessageResult(
            text=text,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            stop_reason=response.stop_reason,
        )
