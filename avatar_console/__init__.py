"""Avatar Console - avatar chat sessions with conversation continuity."""

__version__ = "1.0.0"

# Export exception hierarchy for easy importing
from avatar_console.exceptions import (
    AvatarConsoleError,
    NotFoundError,
    ConversationNotFoundError,
    KnowledgeBaseNotFoundError,
    SessionNotFoundError,
    SessionError,
    SessionLimitError,
    SessionStateError,
    ConfigurationError,
    MissingConfigError,
    InvalidConfigError,
    UpstreamError,
    SummarizationError,
    StreamingServiceError,
    StreamingConnectionError,
    MalformedEventError,
    InvalidMessageError,
)

__all__ = [
    "__version__",
    # Base
    "AvatarConsoleError",
    # Not found
    "NotFoundError",
    "ConversationNotFoundError",
    "KnowledgeBaseNotFoundError",
    "SessionNotFoundError",
    # Session
    "SessionError",
    "SessionLimitError",
    "SessionStateError",
    # Configuration
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    # Upstream services
    "UpstreamError",
    "SummarizationError",
    "StreamingServiceError",
    "StreamingConnectionError",
    # Input
    "MalformedEventError",
    "InvalidMessageError",
]
