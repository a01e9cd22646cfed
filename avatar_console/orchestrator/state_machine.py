"""Session State Machine - lifecycle FSM for one streaming session.

States:
- INACTIVE: No remote session; fragments are dropped
- CONNECTING: Token requested / session opening
- CONNECTED: Stream ready; events feed the transcript

Transitions:
    INACTIVE -> CONNECTING            start()
    CONNECTING -> CONNECTED           session opened or stream_ready
    CONNECTING -> INACTIVE            start failed or disconnect
    CONNECTED -> INACTIVE             stop() or disconnect
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from avatar_console.config.constants import CONTINUITY
from avatar_console.exceptions import SessionStateError
from avatar_console.observability.logging import get_logger

logger = get_logger(__name__)


class SessionState(Enum):
    """Lifecycle state of a live session."""

    INACTIVE = "inactive"
    CONNECTING = "connecting"
    CONNECTED = "connected"


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.INACTIVE: {SessionState.CONNECTING},
    SessionState.CONNECTING: {SessionState.CONNECTED, SessionState.INACTIVE},
    SessionState.CONNECTED: {SessionState.INACTIVE},
}


@dataclass
class StateTransition:
    """Record of a state transition."""

    old_state: SessionState
    new_state: SessionState
    t_ms: int
    reason: str
    metadata: dict[str, Any] = field(default_factory=dict)


StateChangeCallback = Callable[[StateTransition], Any]


def _now_ms() -> int:
    return int(time.monotonic() * 1000)


class SessionStateMachine:
    """Three-state FSM gating live session operations.

    Usage:
        fsm = SessionStateMachine(session_id="session-123")
        fsm.on_state_change(handle_state_change)
        fsm.on_enter(SessionState.INACTIVE, release_resources)

        await fsm.transition_to(SessionState.CONNECTING, "start")
    """

    def __init__(self, session_id: str) -> None:
        self._session_id = session_id
        self._state = SessionState.INACTIVE
        self._entered_ms = _now_ms()

        self._on_change_callbacks: list[StateChangeCallback] = []
        self._on_enter_callbacks: dict[SessionState, list[StateChangeCallback]] = {
            s: [] for s in SessionState
        }
        self._on_exit_callbacks: dict[SessionState, list[StateChangeCallback]] = {
            s: [] for s in SessionState
        }

        self._history: list[StateTransition] = []
        self._max_history = CONTINUITY.MAX_HISTORY

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def is_live(self) -> bool:
        """Whether a remote session exists or is being opened."""
        return self._state is not SessionState.INACTIVE

    def on_state_change(self, callback: StateChangeCallback) -> None:
        """Register callback for any state change."""
        self._on_change_callbacks.append(callback)

    def on_enter(self, state: SessionState, callback: StateChangeCallback) -> None:
        """Register callback for entering a specific state."""
        self._on_enter_callbacks[state].append(callback)

    def on_exit(self, state: SessionState, callback: StateChangeCallback) -> None:
        """Register callback for exiting a specific state."""
        self._on_exit_callbacks[state].append(callback)

    def can_transition(self, new_state: SessionState) -> bool:
        return new_state in VALID_TRANSITIONS[self._state]

    async def transition_to(
        self,
        new_state: SessionState,
        reason: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> StateTransition:
        """Transition to a new state.

        Raises:
            SessionStateError: If the transition is not allowed
        """
        old_state = self._state
        if not self.can_transition(new_state):
            raise SessionStateError(
                f"Invalid transition: {old_state.value} -> {new_state.value}",
                session_id=self._session_id,
                current_state=old_state.value,
                target_state=new_state.value,
            )

        transition = StateTransition(
            old_state=old_state,
            new_state=new_state,
            t_ms=_now_ms(),
            reason=reason,
            metadata=metadata or {},
        )

        await self._call_callbacks(self._on_exit_callbacks[old_state], transition)
        self._state = new_state
        self._entered_ms = transition.t_ms
        await self._call_callbacks(self._on_enter_callbacks[new_state], transition)
        await self._call_callbacks(self._on_change_callbacks, transition)

        self._history.append(transition)
        if len(self._history) > self._max_history:
            self._history.pop(0)

        return transition

    async def reset(self, reason: str = "session_reset") -> StateTransition | None:
        """Return to INACTIVE from any state. No-op if already INACTIVE."""
        if self._state is SessionState.INACTIVE:
            return None
        return await self.transition_to(SessionState.INACTIVE, reason)

    async def _call_callbacks(
        self,
        callbacks: list[StateChangeCallback],
        transition: StateTransition,
    ) -> None:
        """Call callbacks; a failing callback never blocks the transition."""
        for callback in callbacks:
            try:
                if inspect.iscoroutinefunction(callback):
                    await callback(transition)
                else:
                    result = callback(transition)
                    if inspect.isawaitable(result):
                        await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "state_callback_failed",
                    session_id=self._session_id,
                    new_state=transition.new_state.value,
                    error=str(e),
                )

    @property
    def history(self) -> list[StateTransition]:
        """Transition history (most recent last)."""
        return self._history.copy()

    def get_state_duration_ms(self) -> int:
        """Time spent in the current state (ms)."""
        return _now_ms() - self._entered_ms
