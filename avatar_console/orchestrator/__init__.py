"""Orchestrator module - conversation continuity pipeline.

Provides:
- TranscriptAggregator: Fragments -> messages
- LiveSession / SessionManager: Streaming session lifecycle
- SessionStateMachine: INACTIVE / CONNECTING / CONNECTED FSM
- Summarizer: Message log -> continuation summary
- compose_session_context: Base prompt + summary
- ConversationOrchestrator: Continue / end / append
"""

from avatar_console.orchestrator.context import (
    compose_session_context,
    has_context_block,
    strip_context_block,
    wrap_context_block,
)
from avatar_console.orchestrator.conversation import (
    ContinuationResult,
    ConversationOrchestrator,
)
from avatar_console.orchestrator.session import LiveSession, SessionManager
from avatar_console.orchestrator.state_machine import (
    SessionState,
    SessionStateMachine,
    StateTransition,
)
from avatar_console.orchestrator.summarizer import Summarizer, build_fallback_summary
from avatar_console.orchestrator.transcript import TranscriptAggregator

__all__ = [
    # Transcript
    "TranscriptAggregator",
    # Session management
    "LiveSession",
    "SessionManager",
    # State machine
    "SessionState",
    "SessionStateMachine",
    "StateTransition",
    # Summaries and context
    "Summarizer",
    "build_fallback_summary",
    "compose_session_context",
    "has_context_block",
    "strip_context_block",
    "wrap_context_block",
    # Conversations
    "ContinuationResult",
    "ConversationOrchestrator",
]
