"""Anthropic Claude Completion Client - alternative summary backend.

System instructions are passed separately in the Anthropic API, so
system-role messages are lifted out of the message list.
"""

from __future__ import annotations

from dataclasses import dataclass

from anthropic import APIConnectionError, APIError, AsyncAnthropic

from avatar_console.config.constants import CONTINUITY
from avatar_console.exceptions import SummarizationError
from avatar_console.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic Claude client."""

    api_key: str
    model: str = "claude-3-5-haiku-latest"
    max_tokens: int = CONTINUITY.SUMMARY_MAX_TOKENS
    temperature: float = CONTINUITY.SUMMARY_TEMPERATURE
    timeout_s: float = CONTINUITY.SUMMARY_TIMEOUT_S


class AnthropicCompletionClient:
    """Anthropic Claude client for single-shot completions."""

    name = "anthropic"

    def __init__(self, config: AnthropicConfig) -> None:
        self._config = config
        self._client: AsyncAnthropic | None = None

    async def start(self) -> None:
        """Initialize the Anthropic client."""
        self._client = AsyncAnthropic(
            api_key=self._config.api_key,
            timeout=self._config.timeout_s,
            max_retries=0,
        )
        logger.info(
            "anthropic_client_started",
            model=self._config.model,
            max_tokens=self._config.max_tokens,
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
        """Request one completion from Claude.

        Raises:
            SummarizationError: If the client is not started or the request fails
        """
        if self._client is None:
            raise SummarizationError(self.name, "client not started")

        system_prompt = ""
        anthropic_messages = []
        for msg in messages:
            if msg["role"] == "system":
                system_prompt = msg["content"]
                continue
            anthropic_messages.append({"role": msg["role"], "content": msg["content"]})

        try:
            response = await self._client.messages.create(
                model=self._config.model,
                max_tokens=max_tokens or self._config.max_tokens,
                temperature=(
                    self._config.temperature if temperature is None else temperature
                ),
                system=system_prompt,
                messages=anthropic_messages,
            )
        except APIConnectionError as e:
            raise SummarizationError(self.name, f"connection failed: {e}")
        except APIError as e:
            raise SummarizationError(self.name, f"API error: {e}")

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    @property
    def model_name(self) -> str:
        return self._config.model
