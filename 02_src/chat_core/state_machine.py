"""Table-driven state machine shared by message delivery and calls."""

from enum import Enum
from typing import Generic, Mapping, TypeVar

from .errors import InvalidTransition

S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """Validates transitions against a closed table of legal moves."""

    def __init__(self, name: str, transitions: Mapping[S, frozenset[S]]):
        if not transitions:
            raise ValueError("transition table is empty")

        state_type = type(next(iter(transitions)))
        missing = set(state_type) - set(transitions)
        if missing:
            names = ", ".join(sorted(s.value for s in missing))
            raise ValueError(f"{name}: transition table missing states: {names}")

        self._name = name
        self._transitions = dict(transitions)

    def can_transition(self, current: S, new: S) -> bool:
        return new in self._transitions[current]

    def is_terminal(self, state: S) -> bool:
        return not self._transitions[state]

    def transition(self, current: S, new: S) -> S:
        """Return ``new`` if reachable from ``current``, else raise InvalidTransition."""
        if not self.can_transition(current, new):
            raise InvalidTransition(self._name, current, new)
        return new
