"""LLM module - completion clients for conversation summaries.

Supports multiple backends:
- openai: OpenAI chat completions (default)
- anthropic: Anthropic Claude API
- mock: Testing backend with canned responses
"""

from __future__ import annotations

from typing import Protocol

from avatar_console.config.settings import Settings
from avatar_console.llm.anthropic_client import AnthropicCompletionClient, AnthropicConfig
from avatar_console.llm.mock_client import MockCompletionClient, MockCompletionConfig
from avatar_console.llm.openai_client import OpenAICompletionClient, OpenAIConfig
from avatar_console.observability.logging import get_logger

logger = get_logger(__name__)


class CompletionClient(Protocol):
    """What the Summarizer needs from a completion backend."""

    name: str

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str: ...


async def create_completion_client(settings: Settings) -> CompletionClient | None:
    """Factory function to create a started completion client.

    Returns:
        Started client, or None when the selected engine has no credential
        (summaries then use the deterministic fallback)
    """
    engine = settings.summary_engine

    if engine == "mock":
        client = MockCompletionClient()
        await client.start()
        return client

    if not settings.summary_api_key:
        logger.warning(
            "completion_client_disabled",
            engine=engine,
            reason="credential not set, fallback summaries only",
        )
        return None

    if engine == "openai":
        client = OpenAICompletionClient(
            OpenAIConfig(
                api_key=settings.summary_api_key,
                model=settings.openai_model,
                max_tokens=settings.summary_max_tokens,
                temperature=settings.summary_temperature,
                timeout_s=settings.summary_timeout_s,
            )
        )
    elif engine == "anthropic":
        client = AnthropicCompletionClient(
            AnthropicConfig(
                api_key=settings.summary_api_key,
                model=settings.anthropic_model,
                max_tokens=settings.summary_max_tokens,
                temperature=settings.summary_temperature,
                timeout_s=settings.summary_timeout_s,
            )
        )
    else:
        raise ValueError(
            f"Unknown summary engine: {engine}. "
            f"Available: openai, anthropic, mock"
        )

    await client.start()
    return client


__all__ = [
    "CompletionClient",
    # Clients
    "OpenAICompletionClient",
    "AnthropicCompletionClient",
    "MockCompletionClient",
    # Configuration
    "OpenAIConfig",
    "AnthropicConfig",
    "MockCompletionConfig",
    # Factory
    "create_completion_client",
]
