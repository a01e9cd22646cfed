"""Summarizer - message log -> bounded continuation summary.

Two strategies:
- Primary: ask the completion service for a summary that preserves
  topics, decisions and stated preferences, framed as continuation context.
- Fallback: deterministic summary from counters, frequency-ranked topic
  words and the last few messages. Needs nothing external.

Both produce a block delimited by
    === CONVERSATION CONTEXT === ... === END CONTEXT ===

summarize() never raises: any primary-path failure (no client configured,
API error, timeout, empty completion) selects the fallback.
"""

from __future__ import annotations

import re
import time
from collections import Counter
from typing import Sequence

from avatar_console.config.constants import CONTINUITY, TOPIC_STOPWORDS
from avatar_console.exceptions import SummarizationError
from avatar_console.llm import CompletionClient
from avatar_console.observability.logging import SummaryLogger
from avatar_console.observability.metrics import record_summary
from avatar_console.orchestrator.context import wrap_context_block
from avatar_console.storage.models import Message
from avatar_console.utils.async_timeout import AsyncTimeoutError, with_timeout

CONTINUE_INSTRUCTION = (
    "Continue this conversation naturally, referring to the above context when relevant."
)

SYSTEM_INSTRUCTION = (
    "You are a helpful assistant that creates concise conversation summaries.\n"
    "Your task is to analyze the conversation and create a summary that will help "
    "continue the conversation naturally.\n"
    "Focus on: key topics discussed, decisions made, user preferences, and important context.\n"
    f"Keep the summary under {CONTINUITY.SUMMARY_MAX_WORDS} words and format it clearly."
)

_WORD_SPLIT = re.compile(r"\W+")


def speaker_label(role: str) -> str:
    return "User" if role == "user" else "Assistant"


def render_transcript(messages: Sequence[Message]) -> str:
    """Render messages as 'User: ...' / 'Assistant: ...' paragraphs."""
    return "\n\n".join(f"{speaker_label(m.role)}: {m.content}" for m in messages)


def duration_minutes(messages: Sequence[Message]) -> int:
    """Whole minutes between the first and last message (half rounds up)."""
    if not messages:
        return 0
    seconds = (messages[-1].timestamp - messages[0].timestamp).total_seconds()
    return int(max(0.0, seconds) / 60 + 0.5)


def extract_key_topics(
    content: str,
    limit: int = CONTINUITY.TOPIC_COUNT,
    min_length: int = CONTINUITY.TOPIC_MIN_WORD_LENGTH,
) -> list[str]:
    """Most frequent content words, ties in first-seen order."""
    counts: Counter[str] = Counter()
    for word in _WORD_SPLIT.split(content.lower()):
        if len(word) >= min_length and word not in TOPIC_STOPWORDS:
            counts[word] += 1

    topics = [word for word, _ in counts.most_common(limit)]
    return topics or ["General conversation"]


def recent_context(
    messages: Sequence[Message],
    count: int = CONTINUITY.RECENT_MESSAGE_COUNT,
    max_chars: int = CONTINUITY.RECENT_MESSAGE_MAX_CHARS,
) -> str:
    """Last messages, each truncated to max_chars."""
    lines = []
    for m in messages[-count:]:
        text = m.content[:max_chars]
        if len(m.content) > max_chars:
            text += "..."
        lines.append(f"{speaker_label(m.role)}: {text}")
    return "\n".join(lines)


def build_fallback_summary(messages: Sequence[Message]) -> str:
    """Deterministic, dependency-free summary. Empty log -> ""."""
    if not messages:
        return ""

    user_count = sum(1 for m in messages if m.role == "user")
    assistant_count = sum(1 for m in messages if m.role == "assistant")
    topics = extract_key_topics(" ".join(m.content for m in messages))

    body = "\n".join([
        f"Date: {messages[0].timestamp.date().isoformat()}",
        f"Duration: {duration_minutes(messages)} minutes",
        f"Messages exchanged: {len(messages)} "
        f"({user_count} from user, {assistant_count} from assistant)",
        "",
        "Key Topics Discussed:",
        *(f"- {topic}" for topic in topics),
        "",
        "Recent Context:",
        recent_context(messages),
        "",
        CONTINUE_INSTRUCTION,
    ])
    return wrap_context_block(body)


def build_summary_request(messages: Sequence[Message]) -> list[dict[str, str]]:
    """Chat messages asking the completion service for a continuation summary."""
    prompt = (
        "Please create a summary of this conversation that can be used to continue it later:\n\n"
        f"{render_transcript(messages)}\n\n"
        "Format the summary as:\n"
        f"{CONTINUITY.CONTEXT_BLOCK_START}\n"
        f"Date: {messages[0].timestamp.date().isoformat()}\n"
        f"Duration: {duration_minutes(messages)} minutes\n"
        f"Messages: {len(messages)}\n\n"
        "[Your intelligent summary here - include key topics, decisions, preferences, "
        "and important context]\n\n"
        f"{CONTINUE_INSTRUCTION}\n"
        f"{CONTINUITY.CONTEXT_BLOCK_END}"
    )
    return [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": prompt},
    ]


class Summarizer:
    """Produces continuation summaries for a conversation's message log.

    Usage:
        summarizer = Summarizer(client=openai_client, timeout_s=15.0)
        summary = await summarizer.summarize(messages)
    """

    def __init__(
        self,
        client: CompletionClient | None = None,
        timeout_s: float = CONTINUITY.SUMMARY_TIMEOUT_S,
        max_tokens: int = CONTINUITY.SUMMARY_MAX_TOKENS,
        temperature: float = CONTINUITY.SUMMARY_TEMPERATURE,
    ) -> None:
        self._client = client
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def has_primary(self) -> bool:
        """Whether a completion service is configured."""
        return self._client is not None

    async def summarize(
        self,
        messages: Sequence[Message],
        conversation_id: str | None = None,
    ) -> str:
        """Summarize an ordered message log.

        Args:
            messages: Messages, timestamp ascending (possibly empty)
            conversation_id: For log correlation

        Returns:
            "" for an empty log, otherwise a delimited summary block
        """
        log = SummaryLogger(conversation_id)
        started = time.perf_counter()

        if not messages:
            record_summary("empty", 0.0)
            return ""

        summary = ""
        path = "fallback"

        if self._client is None:
            log.primary_unavailable("no completion client configured")
        else:
            try:
                summary = await self._primary(messages)
                path = "llm"
            except AsyncTimeoutError as e:
                log.primary_failed(str(e), _elapsed_ms(started))
            except SummarizationError as e:
                log.primary_failed(str(e), _elapsed_ms(started))
            except Exception as e:
                log.primary_failed(f"unexpected error: {e}", _elapsed_ms(started))

        if not summary:
            summary = build_fallback_summary(messages)
            path = "fallback"

        elapsed_ms = _elapsed_ms(started)
        record_summary(path, elapsed_ms / 1000.0)
        log.summary_generated(
            path=path,
            message_count=len(messages),
            summary_chars=len(summary),
            elapsed_ms=elapsed_ms,
        )
        return summary

    async def _primary(self, messages: Sequence[Message]) -> str:
        """Completion-service summary, wrapped; "" if the service returned nothing."""
        completion = await with_timeout(
            self._client.complete(
                build_summary_request(messages),
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            ),
            timeout_s=self._timeout_s,
            operation="summary completion",
        )
        if not completion or not completion.strip():
            return ""
        return wrap_context_block(completion)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0
