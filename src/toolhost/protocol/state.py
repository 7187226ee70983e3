"""Session lifecycle state machine."""

import logging
from enum import Enum, auto
from typing import Callable

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """
    Server-side session lifecycle states.

    State transitions:
        CONNECTED -> INITIALIZING -> READY -> CLOSING -> CLOSED
             \\             \\                   /
              ------------------> CLOSING <-----

    INITIALIZING is entered once the initialize request has been answered;
    READY once the client sends notifications/initialized. Any live state
    can move to CLOSING when the connection drops.
    """

    CONNECTED = auto()
    INITIALIZING = auto()
    READY = auto()
    CLOSING = auto()
    CLOSED = auto()

    def __str__(self) -> str:
        return self.name


class InvalidStateTransition(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: SessionState, to_state: SessionState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid state transition: {from_state.name} -> {to_state.name}"
        )


StateTransitionCallback = Callable[[SessionState, SessionState], None]


class SessionStateMachine:
    """
    Tracks where a client session is in the MCP lifecycle.

    Enforces valid state transitions and notifies listeners
    when transitions occur.
    """

    VALID_TRANSITIONS: dict[SessionState, list[SessionState]] = {
        SessionState.CONNECTED: [SessionState.INITIALIZING, SessionState.CLOSING],
        SessionState.INITIALIZING: [SessionState.READY, SessionState.CLOSING],
        SessionState.READY: [SessionState.CLOSING],
        SessionState.CLOSING: [SessionState.CLOSED],
        SessionState.CLOSED: [],
    }

    def __init__(self, initial_state: SessionState = SessionState.CONNECTED):
        self._state = initial_state
        self._listeners: list[StateTransitionCallback] = []

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def is_initialized(self) -> bool:
        """Whether the initialize request has been answered."""
        return self._state in (SessionState.INITIALIZING, SessionState.READY)

    @property
    def is_ready(self) -> bool:
        """Check if the client confirmed initialization."""
        return self._state == SessionState.READY

    @property
    def is_closed(self) -> bool:
        """Check if the session is shutting down or gone."""
        return self._state in (SessionState.CLOSING, SessionState.CLOSED)

    def can_transition_to(self, new_state: SessionState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in self.VALID_TRANSITIONS.get(self._state, [])

    def transition(self, new_state: SessionState) -> None:
        """
        Transition to a new state.

        Raises:
            InvalidStateTransition: If the transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidStateTransition(self._state, new_state)

        old_state = self._state
        self._state = new_state

        for listener in self._listeners:
            try:
                listener(old_state, new_state)
            except Exception:
                logger.exception("State listener failed")

    def on_transition(self, callback: StateTransitionCallback) -> None:
        """Register a callback called with (old_state, new_state)."""
        self._listeners.append(callback)

    def __repr__(self) -> str:
        return f"SessionStateMachine(state={self._state!r})"
