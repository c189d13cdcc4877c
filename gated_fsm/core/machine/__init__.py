"""
Gated State Machine Module

Finite state machine whose transitions are confirmed by async guards
before the current state changes.
"""

from .machine import Machine, TransitionCallback
from .models import (
    INVALID_STATE,
    INVALID_STATE_NAME,
    DuplicateStateError,
    GuardRejectedError,
    HookError,
    InvalidStateError,
    InvalidTransitionError,
    State,
    StateChange,
    Transition,
    TransitionError,
    TransitionResult,
    state_factory,
    transition_factory,
)
from .topology import AllowListTopology, Topology, TransitionListTopology

__all__ = [
    # Machine
    "Machine",
    "TransitionCallback",
    # Topology
    "Topology",
    "AllowListTopology",
    "TransitionListTopology",
    # Models
    "State",
    "Transition",
    "StateChange",
    "TransitionResult",
    "INVALID_STATE",
    "INVALID_STATE_NAME",
    "state_factory",
    "transition_factory",
    # Errors
    "TransitionError",
    "InvalidTransitionError",
    "GuardRejectedError",
    "HookError",
    "InvalidStateError",
    "DuplicateStateError",
]
