"""Mock Completion Client - For testing without an external LLM service.

Returns a canned summary built from the request, or fails on demand so
the Summarizer's fallback path can be exercised.

Usage:
    Set SUMMARY_ENGINE=mock in .env to use this client.
"""

import asyncio
from dataclasses import dataclass

from avatar_console.config.constants import CONTINUITY
from avatar_console.exceptions import SummarizationError


@dataclass
class MockCompletionConfig:
    """Configuration for mock completion client."""

    response: str | None = None  # None -> canned summary
    delay_s: float = 0.0  # Simulated latency
    fail: bool = False


@dataclass
class MockCompletionCall:
    messages: list[dict[str, str]]
    max_tokens: int | None
    temperature: float | None


class MockCompletionClient:
    """Mock completion client with the same interface as the real ones."""

    name = "mock"

    def __init__(self, config: MockCompletionConfig | None = None) -> None:
        self._config = config or MockCompletionConfig()
        self.calls: list[MockCompletionCall] = []
        self._running = False

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        self.calls.append(MockCompletionCall(messages, max_tokens, temperature))

        if self._config.delay_s:
            await asyncio.sleep(self._config.delay_s)
        if self._config.fail:
            raise SummarizationError(self.name, "forced failure")
        if self._config.response is not None:
            return self._config.response

        user_turns = sum(
            1 for line in messages[-1]["content"].splitlines() if line.startswith("User:")
        )
        return (
            f"{CONTINUITY.CONTEXT_BLOCK_START}\n"
            f"The user spoke {user_turns} times. Pick up where the conversation left off.\n"
            f"{CONTINUITY.CONTEXT_BLOCK_END}"
        )

    @property
    def is_running(self) -> bool:
        return self._running
