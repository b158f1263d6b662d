"""
State Machine
-------------
Tracks the lifecycle of the one session this process owns.
All state transitions are logged and auditable.

DISCONNECTED -> AUTHENTICATING -> AUTHENTICATED -> CLOSED
Any state may fall through to CLOSED; CLOSED is terminal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Set
import logging


class SessionState(Enum):
    """Valid states for the agent session."""
    DISCONNECTED = auto()    # No connection yet
    AUTHENTICATING = auto()  # Login / handshake in flight
    AUTHENTICATED = auto()   # Dispatch loop running
    CLOSED = auto()          # Session over, see close_reason


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: SessionState
    to_state: SessionState
    timestamp: datetime
    reason: str
    metadata: Dict = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"StateTransition({self.from_state.name} → {self.to_state.name}, "
            f"reason='{self.reason}')"
        )


VALID_TRANSITIONS: Dict[SessionState, Set[SessionState]] = {
    SessionState.DISCONNECTED: {SessionState.AUTHENTICATING, SessionState.CLOSED},
    SessionState.AUTHENTICATING: {SessionState.AUTHENTICATED, SessionState.CLOSED},
    SessionState.AUTHENTICATED: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
}


class StateMachine:
    """
    Session state machine.

    Responsibilities:
    - Track current state
    - Validate state transitions
    - Log all transitions
    - Notify listeners of state changes
    """

    def __init__(self, initial_state: SessionState = SessionState.DISCONNECTED):
        self._state = initial_state
        self._history: List[StateTransition] = []
        self._listeners: List[Callable[[StateTransition], None]] = []
        self._logger = logging.getLogger("macron.state")

        self._logger.debug(f"State machine initialized in state: {self._state.name}")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> List[StateTransition]:
        return self._history.copy()

    @property
    def close_reason(self) -> Optional[str]:
        """Reason recorded when the session entered CLOSED."""
        if self._state is not SessionState.CLOSED or not self._history:
            return None
        return self._history[-1].reason

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    def can_transition(self, to_state: SessionState) -> bool:
        return to_state in VALID_TRANSITIONS.get(self._state, set())

    def transition(
        self,
        to_state: SessionState,
        reason: str,
        metadata: Optional[Dict] = None
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises:
            ValueError: If transition is not valid
        """
        if not self.can_transition(to_state):
            valid_names = [s.name for s in VALID_TRANSITIONS.get(self._state, set())]
            raise ValueError(
                f"Invalid transition: {self._state.name} → {to_state.name}. "
                f"Valid targets: {valid_names}"
            )

        transition = StateTransition(
            from_state=self._state,
            to_state=to_state,
            timestamp=datetime.now(),
            reason=reason,
            metadata=metadata or {}
        )

        old_state = self._state
        self._state = to_state
        self._history.append(transition)

        self._logger.info(
            f"Session state: {old_state.name} → {to_state.name} (reason: {reason})"
        )

        for listener in self._listeners:
            try:
                listener(transition)
            except Exception as e:
                self._logger.warning(f"Listener error: {e}")

        return transition

    def close(self, reason: str) -> Optional[StateTransition]:
        """Move to CLOSED unless already there."""
        if self._state is SessionState.CLOSED:
            return None
        return self.transition(SessionState.CLOSED, reason)

    def add_listener(self, callback: Callable[[StateTransition], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[StateTransition], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def get_history_summary(self) -> str:
        """Get a human-readable summary of recent transitions."""
        if not self._history:
            return "No transitions recorded."

        lines = ["Session State History:", "-" * 40]
        for t in self._history[-10:]:
            lines.append(
                f"  {t.timestamp.strftime('%H:%M:%S')} | "
                f"{t.from_state.name:14} → {t.to_state.name:14} | "
                f"{t.reason}"
            )
        return "\n".join(lines)
