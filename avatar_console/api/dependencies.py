"""Service wiring for the API layer.

Process-wide singletons built from Settings on first use. Routes get them
through the getters below, which tests replace via dependency_overrides.
"""

from avatar_console.config.settings import get_settings
from avatar_console.exceptions import ConfigurationError
from avatar_console.llm import CompletionClient, create_completion_client
from avatar_console.observability.logging import get_logger
from avatar_console.orchestrator.conversation import ConversationOrchestrator
from avatar_console.orchestrator.session import SessionManager
from avatar_console.orchestrator.summarizer import Summarizer
from avatar_console.storage.base import ConversationStore
from avatar_console.storage.memory import InMemoryConversationStore
from avatar_console.streaming import StreamingClient, create_streaming_client

logger = get_logger(__name__)

_store: ConversationStore | None = None
_completion_client: CompletionClient | None = None
_orchestrator: ConversationOrchestrator | None = None
_session_manager: SessionManager | None = None
_streaming_client: StreamingClient | None = None


def get_store() -> ConversationStore:
    """Get global conversation store."""
    global _store
    if _store is None:
        _store = InMemoryConversationStore()
    return _store


def get_orchestrator() -> ConversationOrchestrator:
    """Get global conversation orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        summarizer = Summarizer(
            client=_completion_client,
            timeout_s=settings.summary_timeout_s,
            max_tokens=settings.summary_max_tokens,
            temperature=settings.summary_temperature,
        )
        _orchestrator = ConversationOrchestrator(
            get_store(),
            summarizer,
            default_language=settings.default_language,
        )
    return _orchestrator


def get_session_manager() -> SessionManager:
    """Get global live session manager."""
    global _session_manager
    if _session_manager is None:
        settings = get_settings()
        _session_manager = SessionManager(
            max_sessions=settings.max_concurrent_sessions,
            stop_timeout_s=settings.session_stop_timeout_s,
        )
    return _session_manager


def get_streaming_client() -> StreamingClient:
    """Get global streaming client.

    Raises:
        MissingConfigError: If the http engine has no API key
    """
    global _streaming_client
    if _streaming_client is None:
        _streaming_client = create_streaming_client(get_settings())
    return _streaming_client


async def init_services() -> dict[str, bool]:
    """Build the completion and streaming clients. Returns component health."""
    global _completion_client, _orchestrator
    settings = get_settings()

    _completion_client = await create_completion_client(settings)
    _orchestrator = None  # Rebuilt with the completion client on next use
    get_orchestrator()

    streaming_ok = True
    try:
        get_streaming_client()
    except ConfigurationError as e:
        streaming_ok = False
        logger.error("streaming_client_unavailable", error=str(e))

    return {
        "store": True,
        "streaming": streaming_ok,
        "summarizer": _completion_client is not None,
    }


async def shutdown_services() -> int:
    """End live sessions and close clients. Returns sessions ended."""
    global _completion_client, _streaming_client

    ended = 0
    if _session_manager is not None:
        ended = await _session_manager.end_all_sessions(reason="shutdown")

    if _streaming_client is not None:
        await _streaming_client.aclose()
        _streaming_client = None

    stop = getattr(_completion_client, "stop", None)
    if stop is not None:
        await stop()
    _completion_client = None
    return ended


def reset_services() -> None:
    """Drop all singletons (tests)."""
    global _store, _completion_client, _orchestrator, _session_manager, _streaming_client
    _store = None
    _completion_client = None
    _orchestrator = None
    _session_manager = None
    _streaming_client = None
