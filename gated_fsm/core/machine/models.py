"""
Gated State Machine Models

Defines states, transitions, transition records and errors for the
guarded finite state machine.
"""

import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Optional, Union


# Type aliases
Guard = Callable[[str], Union[Awaitable[Any], Any]]
Hook = Callable[[], None]
Condition = Callable[["State"], bool]

INVALID_STATE_NAME = "InvalidState"


@dataclass(frozen=True)
class State:
    """A named node in the machine topology with optional entry/exit behaviour."""

    name: str
    allowed_sources: FrozenSet[str] = field(default_factory=frozenset)

    # Guard run before the state becomes current - usually an external confirmation
    on_before_enter: Optional[Guard] = field(default=None, compare=False, repr=False)
    on_enter: Optional[Hook] = field(default=None, compare=False, repr=False)
    on_exit: Optional[Hook] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("State name must be a non-empty string")
        if not isinstance(self.allowed_sources, frozenset):
            object.__setattr__(self, "allowed_sources", frozenset(self.allowed_sources))

    @property
    def has_guard(self) -> bool:
        return self.on_before_enter is not None

    def allows_entry_from(self, source_name: str) -> bool:
        """Check the allow-list; an empty list admits every source."""
        return not self.allowed_sources or source_name in self.allowed_sources

    async def check_guard(self, previous_state_name: str) -> None:
        """
        Run the entry guard for this state.

        The guard fails by raising or by returning ``False``. Any other
        settled value permits the transition. Synchronous guards are
        accepted and their return value is used directly.

        Raises:
            GuardRejectedError: If the guard fails
        """
        if self.on_before_enter is None:
            return

        try:
            outcome = self.on_before_enter(previous_state_name)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            raise GuardRejectedError(
                from_state=previous_state_name,
                to_state=self.name,
                cause=e,
            ) from e

        if outcome is False:
            raise GuardRejectedError(from_state=previous_state_name, to_state=self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "allowedSources": sorted(self.allowed_sources),
            "hasGuard": self.has_guard,
        }


@dataclass(frozen=True)
class Transition:
    """A declared permission to move from one named state to another."""

    from_state: str
    to_state: str
    # Checked against local data before the async guard is run
    condition: Condition = field(default=lambda current: True, compare=False, repr=False)

    def matches(self, current_name: str, target_name: str) -> bool:
        return self.from_state == current_name and self.to_state == target_name

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_state, "to": self.to_state}


@dataclass
class StateChange:
    """Record of a committed state change."""

    from_state: str
    to_state: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromState": self.from_state,
            "toState": self.to_state,
            "timestamp": self.timestamp.isoformat(),
        }


class InvalidStateError(Exception):
    """Raised by the InvalidState sentinel's guard, which never lets anything in."""

    def __init__(self, previous_state_name: str):
        self.previous_state_name = previous_state_name
        super().__init__(f"Cannot enter {INVALID_STATE_NAME} from {previous_state_name}")


class DuplicateStateError(ValueError):
    """Raised when a strict machine is given a state name it already holds."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"State '{name}' is already registered")


class TransitionError(Exception):
    """Base class for every failed transition attempt."""

    def __init__(
        self,
        from_state: str,
        to_state: str,
        message: Optional[str] = None,
    ):
        self.from_state = from_state
        self.to_state = to_state
        self.message = message or f"Transition {from_state} -> {to_state} failed"
        super().__init__(self.message)


class InvalidTransitionError(TransitionError):
    """Raised when the target is unreachable from the current state."""

    def __init__(
        self,
        from_state: str,
        to_state: str,
        message: Optional[str] = None,
    ):
        super().__init__(
            from_state,
            to_state,
            message or f"Invalid transition from {from_state} to {to_state}",
        )


class GuardRejectedError(TransitionError):
    """Raised when the target state's entry guard fails."""

    def __init__(
        self,
        from_state: str,
        to_state: str,
        cause: Optional[BaseException] = None,
    ):
        self.cause = cause
        message = f"Guard for {to_state} rejected transition from {from_state}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(from_state, to_state, message)


class HookError(TransitionError):
    """Raised when an on_exit or on_enter hook raises."""

    def __init__(
        self,
        from_state: str,
        to_state: str,
        hook: str,
        cause: BaseException,
        committed: bool,
    ):
        self.hook = hook
        self.cause = cause
        # on_enter runs after the swap, so the new state is already current
        self.committed = committed
        super().__init__(
            from_state,
            to_state,
            f"{hook} hook failed during {from_state} -> {to_state}: {cause}",
        )


@dataclass
class TransitionResult:
    """Tagged outcome of a transition attempt."""

    ok: bool
    state: State
    change: Optional[StateChange] = None
    error: Optional[TransitionError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "state": self.state.name,
            "change": self.change.to_dict() if self.change else None,
            "error": self.error.message if self.error else None,
        }


def _reject_entry(previous_state_name: str) -> Any:
    raise InvalidStateError(previous_state_name)


# Sentinel: current state before start(), and what unknown names resolve to
INVALID_STATE = State(name=INVALID_STATE_NAME, on_before_enter=_reject_entry)


def state_factory(
    name: str,
    on_before_enter: Optional[Guard] = None,
    *,
    allowed_sources: Iterable[str] = (),
    on_enter: Optional[Hook] = None,
    on_exit: Optional[Hook] = None,
) -> State:
    """
    Build a State.

    Args:
        name: Unique name of the state
        on_before_enter: Guard receiving the outgoing state's name
        allowed_sources: State names allowed to enter this state (empty = any)
        on_enter: Called right after the state becomes current
        on_exit: Called right before the state is replaced

    Returns:
        New State instance
    """
    return State(
        name=name,
        allowed_sources=frozenset(allowed_sources),
        on_before_enter=on_before_enter,
        on_enter=on_enter,
        on_exit=on_exit,
    )


def transition_factory(
    from_state: str,
    to_state: str,
    condition: Optional[Condition] = None,
) -> Transition:
    """Build a Transition; the condition defaults to always allowing it."""
    if condition is None:
        return Transition(from_state=from_state, to_state=to_state)
    return Transition(from_state=from_state, to_state=to_state, condition=condition)
