"""Prometheus Metrics - continuity pipeline observability.

Exports:
- Live session counts and lifecycle outcomes
- Transcript messages emitted and malformed events
- Summary path (llm / fallback / empty) and latency
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# -----------------------------------------------------------------------------
# Counters
# -----------------------------------------------------------------------------

# Session lifecycle
SESSION_STARTED = Counter(
    "avatar_console_sessions_started_total",
    "Total live sessions started",
)

SESSION_ENDED = Counter(
    "avatar_console_sessions_ended_total",
    "Total live sessions ended",
    ["reason"],  # stop, disconnect, shutdown
)

SESSION_START_FAILED = Counter(
    "avatar_console_session_start_failures_total",
    "Live session starts that failed and reverted to INACTIVE",
)

SESSION_DISCONNECTS = Counter(
    "avatar_console_session_disconnects_total",
    "Unsolicited disconnects reported by the streaming service",
)

# Transcript
MESSAGES_EMITTED = Counter(
    "avatar_console_messages_emitted_total",
    "Finalized utterances emitted by the transcript aggregator",
    ["role"],  # user, assistant
)

MALFORMED_EVENTS = Counter(
    "avatar_console_malformed_events_total",
    "Streaming events dropped because they were malformed",
    ["event_type"],  # stream event type, or "unknown" when unparseable
)

# Summaries
SUMMARIES = Counter(
    "avatar_console_summaries_total",
    "Summaries produced by path",
    ["path"],  # llm, fallback, empty
)

# -----------------------------------------------------------------------------
# Histograms
# -----------------------------------------------------------------------------

SUMMARY_LATENCY = Histogram(
    "avatar_console_summary_seconds",
    "Time to produce a conversation summary",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0],
)

# -----------------------------------------------------------------------------
# Gauges
# -----------------------------------------------------------------------------

ACTIVE_SESSIONS = Gauge(
    "avatar_console_active_sessions",
    "Currently connected live sessions",
)

# -----------------------------------------------------------------------------
# Info
# -----------------------------------------------------------------------------

BUILD_INFO = Info(
    "avatar_console_build",
    "Build information",
)


# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def record_session_start() -> None:
    """Record session start."""
    SESSION_STARTED.inc()
    ACTIVE_SESSIONS.inc()


def record_session_end(reason: str = "stop") -> None:
    """Record end of a session that had reached CONNECTED."""
    SESSION_ENDED.labels(reason=reason).inc()
    ACTIVE_SESSIONS.dec()


def record_session_start_failed() -> None:
    """Record a failed session start."""
    SESSION_START_FAILED.inc()


def record_disconnect() -> None:
    """Record an unsolicited disconnect."""
    SESSION_DISCONNECTS.inc()


def record_message_emitted(role: str) -> None:
    """Record a finalized utterance."""
    MESSAGES_EMITTED.labels(role=role).inc()


def record_malformed_event(event_type: str | None = None) -> None:
    """Record a dropped malformed event."""
    MALFORMED_EVENTS.labels(event_type=event_type or "unknown").inc()


def record_summary(path: str, latency_s: float) -> None:
    """Record a produced summary and its latency."""
    SUMMARIES.labels(path=path).inc()
    SUMMARY_LATENCY.observe(latency_s)


def set_build_info(version: str) -> None:
    """Set build information."""
    BUILD_INFO.info({"version": version})
