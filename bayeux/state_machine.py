"""The client connection state machine."""

from __future__ import annotations

import enum
import json
import threading
from typing import Any

from bayeux.errors import BayeuxError

__all__ = [
    "State",
    "Event",
    "BadStateError",
    "BadHandshakeError",
    "BadConnectionError",
    "UnknownEventTypeError",
    "ConnectionStateMachine",
    "state_name",
]


class State(enum.IntEnum):
    """Connection states; the name doubles as the state's representation."""

    UNCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2

    def __str__(self) -> str:
        return self.name


class Event(str, enum.Enum):
    """Events that move the state machine between states."""

    HANDSHAKE_SENT = "handshake request sent"
    TIMEOUT = "Timeout"
    SUCCESSFULLY_CONNECTED = "Successful connect response"
    DISCONNECT_SENT = "Disconnect request sent"


def state_name(state: int) -> str:
    """Return the name of a state, or ``"unknown"`` for an unknown value."""
    try:
        return State(state).name
    except ValueError:
        return "unknown"


class BadStateError(BayeuxError):
    """A state transition was requested from the wrong state."""

    def __init__(self, current_state: int, from_state: int, to_state: int, message: str) -> None:
        self.current_state = current_state
        self.from_state = from_state
        self.to_state = to_state
        self.message = message
        super().__init__(
            f"{message}, (current: {state_name(current_state)}, "
            f"from: {state_name(from_state)}, to: {state_name(to_state)})"
        )


class BadHandshakeError(BadStateError):
    """A handshake was attempted while not unconnected."""

    def __init__(self, current_state: int, from_state: int, to_state: int) -> None:
        super().__init__(
            current_state,
            from_state,
            to_state,
            "attempting to handshake but not in unconnected state",
        )


class BadConnectionError(BadStateError):
    """A successful connect arrived while not connecting."""

    def __init__(self, current_state: int, from_state: int, to_state: int) -> None:
        super().__init__(
            current_state,
            from_state,
            to_state,
            "invalid state for successful connect response event",
        )


class UnknownEventTypeError(BayeuxError, ValueError):
    """The event is not one the state machine knows."""

    def __init__(self, event: Any) -> None:
        self.event = event
        text = str(getattr(event, "value", event))
        super().__init__(f"unknown event type ({json.dumps(text, ensure_ascii=False)})")


class ConnectionStateMachine:
    """Thread-safe tracker of a client's connection state."""

    def __init__(self, state: State = State.UNCONNECTED) -> None:
        self._state = State(state)
        self._lock = threading.Lock()

    def is_connected(self) -> bool:
        """Whether the connection is established."""
        with self._lock:
            return self._state is State.CONNECTED

    def current_state(self) -> State:
        """Return the current state."""
        with self._lock:
            return self._state

    def process_event(self, event: Event | str) -> None:
        """Apply an event, raising if the transition is not allowed."""
        try:
            known = Event(event)
        except ValueError:
            raise UnknownEventTypeError(event) from None

        with self._lock:
            if known is Event.HANDSHAKE_SENT:
                if self._state is not State.UNCONNECTED:
                    raise BadHandshakeError(self._state, State.UNCONNECTED, State.CONNECTING)
                self._state = State.CONNECTING
            elif known is Event.TIMEOUT:
                self._state = State.UNCONNECTED
            elif known is Event.SUCCESSFULLY_CONNECTED:
                if self._state is not State.CONNECTING:
                    raise BadConnectionError(self._state, State.CONNECTING, State.CONNECTED)
                self._state = State.CONNECTED
            elif self._state in (State.CONNECTED, State.CONNECTING):
                self._state = State.UNCONNECTED