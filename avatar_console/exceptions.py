"""Avatar Console Exception Hierarchy.

Provides structured exception classes so the API layer can translate
failures into user-visible responses without string matching.

Hierarchy:
    AvatarConsoleError (base)
    ├── NotFoundError
    │   ├── ConversationNotFoundError
    │   ├── KnowledgeBaseNotFoundError
    │   └── SessionNotFoundError
    ├── SessionError
    │   ├── SessionLimitError
    │   └── SessionStateError
    ├── ConfigurationError
    │   ├── MissingConfigError
    │   └── InvalidConfigError
    ├── UpstreamError
    │   ├── SummarizationError
    │   └── StreamingServiceError
    │       └── StreamingConnectionError
    ├── MalformedEventError
    └── InvalidMessageError
"""

from typing import Any


class AvatarConsoleError(Exception):
    """Base exception for all Avatar Console errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the caller can retry the operation
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(AvatarConsoleError):
    """Base exception for missing (or not owned) records."""

    pass


class ConversationNotFoundError(NotFoundError):
    """Raised when a conversation is missing or not owned by the caller."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(
            message=f"Conversation not found: {conversation_id}",
            details={"conversation_id": conversation_id},
            recoverable=False,
        )
        self.conversation_id = conversation_id


class KnowledgeBaseNotFoundError(NotFoundError):
    """Raised when a conversation references a missing knowledge base."""

    def __init__(self, knowledge_base_id: str) -> None:
        super().__init__(
            message=f"Knowledge base not found: {knowledge_base_id}",
            details={"knowledge_base_id": knowledge_base_id},
            recoverable=False,
        )
        self.knowledge_base_id = knowledge_base_id


class SessionNotFoundError(NotFoundError):
    """Raised when a live session cannot be found."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            message=f"Session not found: {session_id}",
            details={"session_id": session_id},
            recoverable=False,
        )
        self.session_id = session_id


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(AvatarConsoleError):
    """Base exception for live-session errors."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = False,
    ) -> None:
        details = details or {}
        if session_id:
            details["session_id"] = session_id
        super().__init__(message, details, recoverable)
        self.session_id = session_id


class SessionLimitError(SessionError):
    """Raised when the live session limit is reached."""

    def __init__(self, max_sessions: int, current_sessions: int) -> None:
        super().__init__(
            message=f"Session limit reached: {current_sessions}/{max_sessions}",
            details={
                "max_sessions": max_sessions,
                "current_sessions": current_sessions,
            },
            recoverable=True,  # Can retry when a session ends
        )


class SessionStateError(SessionError):
    """Raised when an operation is attempted in the wrong lifecycle state."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        current_state: str | None = None,
        target_state: str | None = None,
    ) -> None:
        details = {}
        if current_state:
            details["current_state"] = current_state
        if target_state:
            details["target_state"] = target_state
        super().__init__(message, session_id, details, recoverable=False)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(AvatarConsoleError):
    """Base exception for configuration-related errors."""

    pass


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration is missing."""

    def __init__(self, config_key: str, description: str | None = None) -> None:
        message = f"Missing required configuration: {config_key}"
        if description:
            message += f" - {description}"
        super().__init__(
            message=message,
            details={"config_key": config_key},
            recoverable=False,
        )


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(
        self,
        config_key: str,
        value: Any,
        reason: str,
    ) -> None:
        super().__init__(
            message=f"Invalid configuration for {config_key}: {reason}",
            details={
                "config_key": config_key,
                "value": str(value),
                "reason": reason,
            },
            recoverable=False,
        )


# =============================================================================
# Upstream Errors
# =============================================================================


class UpstreamError(AvatarConsoleError):
    """Base exception for failures of external services."""

    pass


class SummarizationError(UpstreamError):
    """Raised when the completion service fails to produce a summary.

    Never escapes the Summarizer; it selects the fallback path instead.
    """

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(
            message=f"Summarization via {backend} failed: {reason}",
            details={"backend": backend, "reason": reason},
            recoverable=True,
        )
        self.backend = backend
        self.reason = reason


class StreamingServiceError(UpstreamError):
    """Raised when the avatar streaming service rejects a request."""

    def __init__(
        self,
        reason: str,
        operation: str | None = None,
        status_code: int | None = None,
    ) -> None:
        details: dict[str, Any] = {"reason": reason}
        if operation:
            details["operation"] = operation
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(
            message=f"Streaming service error: {reason}",
            details=details,
            recoverable=True,  # User may start a new session
        )
        self.operation = operation
        self.status_code = status_code


class StreamingConnectionError(StreamingServiceError):
    """Raised when the streaming service cannot be reached."""

    def __init__(self, reason: str, operation: str | None = None) -> None:
        super().__init__(reason=f"connection failed: {reason}", operation=operation)


# =============================================================================
# Event / Input Errors
# =============================================================================


class MalformedEventError(AvatarConsoleError):
    """Raised when a streaming event is missing expected fields."""

    def __init__(self, reason: str, event_type: str | None = None) -> None:
        details: dict[str, Any] = {"reason": reason}
        if event_type:
            details["event_type"] = event_type
        super().__init__(
            message=f"Malformed streaming event: {reason}",
            details=details,
            recoverable=False,
        )
        self.reason = reason
        self.event_type = event_type


class InvalidMessageError(AvatarConsoleError):
    """Raised when a message to append has an invalid role or content."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Invalid message: {reason}",
            details={"reason": reason},
            recoverable=False,
        )
