"""Structured Logging - JSON logs with correlation.

Provides structured logging for:
- Live session events (start, stop, state changes, disconnects)
- Transcript aggregation (messages emitted, dropped/malformed events)
- Summarization (primary path, fallback, latency)

Session logs carry session_id and conversation_id for correlation.
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON; else human-readable
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, _normalize_level(level))
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Also route standard logging (uvicorn, httpx) through stdout
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, _normalize_level(level)),
    )


def _normalize_level(level: str) -> str:
    level = level.upper()
    return "WARNING" if level == "WARN" else level


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)


def bind_conversation(conversation_id: str) -> None:
    """Bind conversation_id to all logs in current context."""
    structlog.contextvars.bind_contextvars(conversation_id=conversation_id)


def unbind_conversation() -> None:
    """Remove conversation_id from log context."""
    structlog.contextvars.unbind_contextvars("conversation_id")


# -----------------------------------------------------------------------------
# Event-specific logging functions
# -----------------------------------------------------------------------------


class SessionLogger:
    """Logger for live session lifecycle events."""

    def __init__(self, session_id: str, conversation_id: str | None = None) -> None:
        self._session_id = session_id
        log = get_logger("session").bind(session_id=session_id)
        if conversation_id:
            log = log.bind(conversation_id=conversation_id)
        self._log = log

    def session_started(self, metadata: dict[str, Any] | None = None) -> None:
        """Log session start."""
        self._log.info(
            "session_started",
            event_type="session.started",
            **(metadata or {}),
        )

    def session_start_failed(self, error: str) -> None:
        """Log a failed start (state reverted to INACTIVE)."""
        self._log.error(
            "session_start_failed",
            event_type="session.start_failed",
            error=error,
        )

    def session_ended(self, reason: str, duration_s: float, flushed: int) -> None:
        """Log session end."""
        self._log.info(
            "session_ended",
            event_type="session.ended",
            reason=reason,
            duration_s=duration_s,
            flushed_messages=flushed,
        )

    def state_change(
        self,
        old_state: str,
        new_state: str,
        reason: str,
        t_ms: int,
    ) -> None:
        """Log state transition."""
        self._log.info(
            "state_change",
            event_type="session.state_change",
            old_state=old_state,
            new_state=new_state,
            reason=reason,
            t_ms=t_ms,
        )

    def disconnected(self, state: str) -> None:
        """Log an unsolicited disconnect from the streaming service."""
        self._log.warning(
            "stream_disconnected",
            event_type="session.disconnected",
            state=state,
        )

    def close_timeout(self, timeout_s: float) -> None:
        """Log remote close that never acknowledged."""
        self._log.warning(
            "session_close_timeout",
            event_type="session.close_timeout",
            timeout_s=timeout_s,
        )

    def close_failed(self, error: str) -> None:
        """Log a remote close rejected by the streaming service."""
        self._log.warning(
            "session_close_failed",
            event_type="session.close_failed",
            error=error,
        )

    def drain_timeout(self, timeout_s: float) -> None:
        self._log.warning(
            "session_drain_timeout",
            event_type="session.drain_timeout",
            timeout_s=timeout_s,
        )

    def disconnect_callback_failed(self, error: str) -> None:
        self._log.error(
            "disconnect_callback_failed",
            event_type="session.disconnect_callback_failed",
            error=error,
        )


class TranscriptLogger:
    """Logger for transcript aggregation events."""

    def __init__(self, session_id: str) -> None:
        self._session_id = session_id
        self._log = get_logger("transcript").bind(session_id=session_id)

    def message_emitted(self, role: str, message_id: str, length: int) -> None:
        """Log a finalized utterance."""
        self._log.debug(
            "message_emitted",
            event_type="transcript.message_emitted",
            role=role,
            message_id=message_id,
            length=length,
        )

    def event_dropped(self, event_type: str, reason: str) -> None:
        """Log an event dropped because the session is not live."""
        self._log.debug(
            "event_dropped",
            event_type="transcript.event_dropped",
            stream_event=event_type,
            reason=reason,
        )

    def malformed_event(self, reason: str, stream_event: str | None) -> None:
        """Log an event that could not be parsed."""
        self._log.warning(
            "malformed_event",
            event_type="transcript.malformed_event",
            reason=reason,
            stream_event=stream_event,
        )

    def persist_failed(self, message_id: str, error: str) -> None:
        """Log a message that could not be persisted."""
        self._log.error(
            "message_persist_failed",
            event_type="transcript.persist_failed",
            message_id=message_id,
            error=error,
        )


class SummaryLogger:
    """Logger for summarization events."""

    def __init__(self, conversation_id: str | None = None) -> None:
        self._log = get_logger("summary")
        if conversation_id:
            self._log = self._log.bind(conversation_id=conversation_id)

    def summary_generated(
        self,
        path: str,
        message_count: int,
        summary_chars: int,
        elapsed_ms: float,
    ) -> None:
        """Log a produced summary."""
        self._log.info(
            "summary_generated",
            event_type="summary.generated",
            path=path,
            message_count=message_count,
            summary_chars=summary_chars,
            elapsed_ms=elapsed_ms,
        )

    def primary_unavailable(self, reason: str) -> None:
        """Log that the completion service is not configured."""
        self._log.warning(
            "summary_primary_unavailable",
            event_type="summary.primary_unavailable",
            reason=reason,
        )

    def primary_failed(self, error: str, elapsed_ms: float) -> None:
        """Log a completion failure that triggered the fallback."""
        self._log.error(
            "summary_primary_failed",
            event_type="summary.primary_failed",
            error=error,
            elapsed_ms=elapsed_ms,
        )


# Initialize default logging configuration
def init_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Initialize logging with defaults.

    Call this once at application startup.
    """
    configure_logging(level=level, json_format=json_format)
