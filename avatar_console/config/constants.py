"""Continuity Constants - Fixed thresholds of the continuity pipeline.

These values shape the summaries and session teardown. Anything an
operator may want to tune lives in settings.py instead.
"""

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class ContinuityConstants:
    """Immutable continuity-pipeline thresholds.

    All timing values in seconds unless otherwise noted.
    """

    # Context block delimiters (detectable/strippable downstream)
    CONTEXT_BLOCK_START: Final[str] = "=== CONVERSATION CONTEXT ==="
    CONTEXT_BLOCK_END: Final[str] = "=== END CONTEXT ==="
    CONTEXT_SEPARATOR: Final[str] = "\n\n"

    # Primary (LLM) summary
    SUMMARY_MAX_WORDS: Final[int] = 300  # Instructed upper bound
    SUMMARY_MAX_TOKENS: Final[int] = 500  # Completion budget
    SUMMARY_TEMPERATURE: Final[float] = 0.7
    SUMMARY_TIMEOUT_S: Final[float] = 15.0

    # Fallback (deterministic) summary
    TOPIC_MIN_WORD_LENGTH: Final[int] = 4
    TOPIC_COUNT: Final[int] = 5
    RECENT_MESSAGE_COUNT: Final[int] = 4
    RECENT_MESSAGE_MAX_CHARS: Final[int] = 150

    # Live session
    SESSION_STOP_TIMEOUT_S: Final[float] = 5.0  # Bounded wait on remote close
    SESSION_DRAIN_TIMEOUT_S: Final[float] = 2.0  # Bounded wait on event drain
    SESSION_EVENT_QUEUE_SIZE: Final[int] = 1000
    MAX_CONCURRENT_SESSIONS: Final[int] = 50
    MAX_HISTORY: Final[int] = 100  # State transitions kept per session


# Singleton instance for import convenience
CONTINUITY = ContinuityConstants()


# Words that never count as topics in the fallback summary.
TOPIC_STOPWORDS: Final[frozenset[str]] = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "are", "were", "been", "be",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "can", "i", "you", "he", "she", "it",
    "we", "they", "this", "that", "what", "which", "who", "when", "where",
    "why", "how", "all", "each", "every", "both", "few", "more", "most",
    "other", "some", "such", "no", "not", "only", "own", "same", "so", "than",
    "too", "very", "just", "about", "hello", "hi", "thanks", "thank",
    "please", "yes", "ok", "okay",
})
