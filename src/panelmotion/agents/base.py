"""Base agent abstraction."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Sequence, TypeVar

from ..config import config
from ..exceptions import InvalidResult
from ..models import Image
from ..services.anthropic import AnthropicClient, MessageResult

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for AI agents.

    Provides shared functionality for agents that use Claude for generation.
    Subclasses must implement the `run` method and define their prompts.
    """

    def __init__(
        self,
        client: Optional[AnthropicClient] = None,
        model: Optional[str] = None,
    ) -> None:
        """Initialize the agent.

        Args:
            client: AnthropicClient instance. Created if not provided.
            model: Model to use. Defaults to config.default_model.
        """
        self._client = client or AnthropicClient(model=model or config.default_model)
        self._model = model or self._client.model
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the agent's name."""
        ...

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """Return the system prompt for this agent."""
        ...

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    @abstractmethod
    async def run(self, input_data: InputT) -> OutputT:
        """Execute the agent's main task.

        Args:
            input_data: Input data for the agent.

        Returns:
            Structured output from the agent.
        """
        ...

    async def _create_message(
        self,
        prompt: str,
        images: Sequence[Image] = (),
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> MessageResult:
        """Create a message using the agent's client and system prompt.

        Args:
            prompt: The user prompt to send.
            images: Images sent ahead of the prompt.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.

        Returns:
            Claude's response text and token usage.
        """
        self._logger.debug(f"Creating message with prompt length: {len(prompt)}")

        try:
            result = await self._client.create_message(
                prompt=prompt,
                images=images,
                max_tokens=max_tokens,
                system=self.system_prompt,
                temperature=temperature,
            )
        except Exception as e:
            self._logger.error(f"Error creating message: {e}")
            raise

        self._logger.debug(f"Received response of length: {len(result.text)}")
        return result

    def _parse_json(self, response: str) -> Any:
        """Parse the JSON payload of a response.

        Raises:
            InvalidResult: If no valid JSON can be extracted.
        """
        json_str = extract_json(response)
        try:
            return json.loads(json_str)
        except json.JSONDecodeError as e:
            self._logger.error(f"Failed to parse JSON: {e}")
            self._logger.debug(f"Raw response: {response}")
            raise InvalidResult(f"Invalid JSON in response: {e}", "anthropic") from e


def extract_json(response: str) -> str:
    """Extract JSON from a response that may contain markdown or other text."""
    # Try to find JSON in code blocks
    if "```json" in response:
        start = response.find("```json") + 7
        end = response.find("```", start)
        if end > start:
            return response[start:end].strip()

    if "```" in response:
        start = response.find("```") + 3
        end = response.find("```", start)
        if end > start:
            return response[start:end].strip()

    # Try to find the first raw JSON object or array
    candidates = [
        (response.find(start_char), start_char, end_char)
        for start_char, end_char in (("{", "}"), ("[", "]"))
    ]
    for start, start_char, end_char in sorted(c for c in candidates if c[0] != -1):
        depth = 0
        for i, char in enumerate(response[start:], start):
            if char == start_char:
                depth += 1
            elif char == end_char:
                depth -= 1
                if depth == 0:
                    return response[start:i + 1]

    # Return as-is if no JSON structure found
    return response.strip()
