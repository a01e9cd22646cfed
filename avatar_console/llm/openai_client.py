"""OpenAI Completion Client - single-shot chat completions.

Used by the Summarizer's primary path. One request in, one text out;
no streaming, since the summary is only useful once complete.
"""

from __future__ import annotations

from dataclasses import dataclass

from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI

from avatar_console.config.constants import CONTINUITY
from avatar_console.exceptions import SummarizationError
from avatar_console.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OpenAIConfig:
    """Configuration for the OpenAI completion client."""

    api_key: str
    model: str = "gpt-3.5-turbo"
    max_tokens: int = CONTINUITY.SUMMARY_MAX_TOKENS
    temperature: float = CONTINUITY.SUMMARY_TEMPERATURE
    timeout_s: float = CONTINUITY.SUMMARY_TIMEOUT_S
    base_url: str | None = None


class OpenAICompletionClient:
    """OpenAI chat-completion client.

    Usage:
        client = OpenAICompletionClient(OpenAIConfig(api_key="sk-..."))
        await client.start()
        text = await client.complete(messages)
        await client.stop()
    """

    name = "openai"

    def __init__(self, config: OpenAIConfig) -> None:
        self._config = config
        self._client: AsyncOpenAI | None = None

    async def start(self) -> None:
        """Initialize the OpenAI client."""
        self._client = AsyncOpenAI(
            api_key=self._config.api_key,
            base_url=self._config.base_url,
            timeout=self._config.timeout_s,
            max_retries=0,  # Caller falls back instead of retrying
        )

    async def stop(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.close()
            self._client = None

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Request one chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            max_tokens: Override of the configured token budget
            temperature: Override of the configured temperature

        Returns:
            Completion text (may be empty)

        Raises:
            SummarizationError: If the client is not started or the request fails
        """
        if self._client is None:
            raise SummarizationError(self.name, "client not started")

        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=messages,
                max_tokens=max_tokens or self._config.max_tokens,
                temperature=(
                    self._config.temperature if temperature is None else temperature
                ),
            )
        except APITimeoutError as e:
            raise SummarizationError(self.name, f"timed out: {e}")
        except APIConnectionError as e:
            raise SummarizationError(self.name, f"connection failed: {e}")
        except APIError as e:
            raise SummarizationError(self.name, f"API error: {e}")

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    @property
    def model_name(self) -> str:
        return self._config.model
