from enum import Enum
from typing import Optional, Callable
from dataclasses import dataclass


class SessionState(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


class TransitionError(Exception):
    def __init__(self, from_state: str, to_state: str, reason: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from {from_state} to {to_state}"
        super().__init__(self.reason)


@dataclass
class Transition:
    from_state: SessionState
    to_state: SessionState
    action: str
    guard: Optional[Callable] = None


def last_player_standing_guard(context: dict) -> bool:
    """A session may only finish once at most one player is left."""
    return context.get("remaining", 0) <= 1


class SessionStateMachine:
    TRANSITIONS = [
        Transition(SessionState.ACTIVE, SessionState.ACTIVE, "eliminate"),
        Transition(SessionState.ACTIVE, SessionState.FINISHED, "finish", guard=last_player_standing_guard),
    ]

    def __init__(self, initial_state: SessionState = SessionState.ACTIVE):
        self._state = initial_state

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state == SessionState.FINISHED

    def can_transition(self, action: str) -> bool:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                return True
        return False

    def transition(self, action: str, guard_context: dict = None) -> SessionState:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                if t.guard and not t.guard(guard_context or {}):
                    raise TransitionError(
                        self._state.value,
                        t.to_state.value,
                        f"Guard condition failed for action '{action}'"
                    )

                self._state = t.to_state
                return self._state

        raise TransitionError(
            self._state.value,
            "unknown",
            f"No valid transition for action '{action}' from state '{self._state.value}'"
        )
