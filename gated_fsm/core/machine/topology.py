"""
Gated State Machine Topology

Reachability strategies. A machine answers "may ``target`` be entered
from ``current``" through exactly one of these.
"""

from typing import Iterable, List, Optional, Protocol

from .models import INVALID_STATE, INVALID_STATE_NAME, Condition, State, Transition, transition_factory


class Topology(Protocol):
    """Answers whether a target state may be entered from the current one."""

    def is_reachable(self, current: State, target_name: str, target: State) -> bool:
        ...


class AllowListTopology:
    """
    Per-state allow-lists.

    A target is reachable when its ``allowed_sources`` is empty or
    contains the current state's name. Leaving InvalidState requires the
    target to list it explicitly.
    """

    def is_reachable(self, current: State, target_name: str, target: State) -> bool:
        if current is INVALID_STATE:
            return INVALID_STATE_NAME in target.allowed_sources
        return target.allows_entry_from(current.name)


class TransitionListTopology:
    """
    Explicit transition list.

    A target is reachable when a transition from the current state to the
    target name is declared and its condition holds for the current state.
    The first matching transition wins.
    """

    def __init__(self, transitions: Optional[Iterable[Transition]] = None):
        self._transitions: List[Transition] = list(transitions or [])

    @property
    def transitions(self) -> tuple[Transition, ...]:
        return tuple(self._transitions)

    def add_transition(
        self,
        from_state: str,
        to_state: str,
        condition: Optional[Condition] = None,
    ) -> Transition:
        """Append a transition and return it."""
        transition = transition_factory(from_state, to_state, condition)
        self._transitions.append(transition)
        return transition

    def find(self, current_name: str, target_name: str) -> Optional[Transition]:
        for transition in self._transitions:
            if transition.matches(current_name, target_name):
                return transition
        return None

    def is_reachable(self, current: State, target_name: str, target: State) -> bool:
        transition = self.find(current.name, target_name)
        return transition is not None and bool(transition.condition(current))
