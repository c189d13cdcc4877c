"""
Gated State Machine

Holds the state topology, tracks the current state and runs the guarded
transition protocol: validate reachability, await the target's entry
guard, then exit / swap / enter.
"""

from typing import Any, Callable, Coroutine, Dict, Iterable, List, Optional, Tuple

from gated_fsm.config import settings
from gated_fsm.logging_config import get_logger

from .models import (
    INVALID_STATE,
    INVALID_STATE_NAME,
    Condition,
    DuplicateStateError,
    Guard,
    Hook,
    HookError,
    InvalidTransitionError,
    State,
    StateChange,
    Transition,
    TransitionError,
    TransitionResult,
    state_factory,
)
from .topology import AllowListTopology, Topology, TransitionListTopology


# Type alias for transition callbacks
TransitionCallback = Callable[[StateChange, "Machine"], Coroutine[Any, Any, None]]


class Machine:
    """
    Finite state machine whose transitions are gated by async guards.

    Features:
    - Reachability via per-state allow-lists or an explicit transition list
    - Async ``on_before_enter`` guard per state, the only suspension point
    - ``on_exit`` / ``on_enter`` hooks around the state swap
    - Current state is untouched unless the guard succeeded

    Concurrent ``transition`` calls on one machine are not serialized: each
    call reads the current state when it is invoked. Awaiting one
    transition before issuing the next is the caller's responsibility.
    """

    def __init__(
        self,
        name: str = "",
        states: Optional[Iterable[State]] = None,
        transitions: Optional[Iterable[Transition]] = None,
        topology: Optional[Topology] = None,
        strict: Optional[bool] = None,
        logger: Optional[Any] = None,
    ):
        """
        Initialize the machine.

        Args:
            name: Machine name used in logs
            states: States to pre-register, in order
            transitions: Explicit transitions; selects transition-list mode
            topology: Reachability strategy overriding the mode selection
            strict: Reject duplicate state names (default: from settings)
            logger: Optional structlog logger
        """
        self.name = name or settings.default_machine_name
        self.strict = settings.strict_state_names if strict is None else strict
        self.logger = (logger or get_logger(__name__)).bind(machine=self.name)

        if topology is not None:
            self.topology = topology
        elif transitions is not None:
            self.topology = TransitionListTopology(transitions)
        else:
            self.topology = AllowListTopology()

        self._states: List[State] = []
        self._current_state: State = INVALID_STATE
        self._transition_callbacks: List[TransitionCallback] = []

        for state in states or []:
            self._register(state)

    @property
    def state(self) -> State:
        """Get current state."""
        return self._current_state

    @property
    def states(self) -> Tuple[State, ...]:
        return tuple(self._states)

    @property
    def is_started(self) -> bool:
        return self._current_state is not INVALID_STATE

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def add_state(
        self,
        name: str,
        allowed_sources: Iterable[str] = (),
        *,
        on_before_enter: Optional[Guard] = None,
        on_enter: Optional[Hook] = None,
        on_exit: Optional[Hook] = None,
    ) -> State:
        """
        Register a new state.

        Args:
            name: State name
            allowed_sources: Names allowed to enter this state (empty = any)
            on_before_enter: Async guard receiving the outgoing state's name
            on_enter: Hook run right after the state becomes current
            on_exit: Hook run right before the state is replaced

        Returns:
            The registered State

        Raises:
            DuplicateStateError: If strict and the name is already taken
            ValueError: If the name is the reserved InvalidState name
            TypeError: If allowed_sources is given in transition-list mode
        """
        state = state_factory(
            name,
            on_before_enter,
            allowed_sources=allowed_sources,
            on_enter=on_enter,
            on_exit=on_exit,
        )
        self._register(state)
        return state

    def add_transition(
        self,
        from_state: str,
        to_state: str,
        condition: Optional[Condition] = None,
    ) -> Transition:
        """Declare a transition. Only valid in transition-list mode."""
        if not isinstance(self.topology, TransitionListTopology):
            raise TypeError(
                f"Machine {self.name} uses {type(self.topology).__name__}; "
                "transitions can only be added in transition-list mode"
            )
        return self.topology.add_transition(from_state, to_state, condition)

    def get_state(self, name: str) -> State:
        """Look up a state by name; unknown names resolve to INVALID_STATE."""
        for state in self._states:
            if state.name == name:
                return state
        return INVALID_STATE

    def _register(self, state: State) -> None:
        if state.name == INVALID_STATE_NAME:
            raise ValueError(f"State name '{INVALID_STATE_NAME}' is reserved")
        if state.allowed_sources and isinstance(self.topology, TransitionListTopology):
            raise TypeError(
                f"Machine {self.name} uses TransitionListTopology; "
                f"declare transitions instead of allowed_sources for '{state.name}'"
            )
        if self.strict and self.get_state(state.name) is not INVALID_STATE:
            raise DuplicateStateError(state.name)
        self._states.append(state)
        self.logger.debug(
            "state_registered",
            state=state.name,
            allowed_sources=sorted(state.allowed_sources),
        )

    # -------------------------------------------------------------------------
    # Reachability
    # -------------------------------------------------------------------------

    def can_transition_to(self, name: str) -> bool:
        """Check if ``name`` is a registered state reachable from the current state."""
        target = self.get_state(name)
        if target is INVALID_STATE:
            return False
        return self.topology.is_reachable(self._current_state, name, target)

    def get_allowed_transitions(self) -> List[str]:
        """Get registered state names reachable from the current state."""
        allowed: List[str] = []
        seen = set()
        for state in self._states:
            # Later duplicates are shadowed by the first registration
            if state.name in seen:
                continue
            seen.add(state.name)
            if self.topology.is_reachable(self._current_state, state.name, state):
                allowed.append(state.name)
        return allowed

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, forced_name: Optional[str] = None) -> State:
        """
        Select the initial state without running any guard.

        Args:
            forced_name: Starting state name; defaults to the first registered state

        Returns:
            The new current state, or INVALID_STATE if none matched
        """
        if forced_name:
            new_state = self.get_state(forced_name)
        else:
            new_state = self._states[0] if self._states else INVALID_STATE

        self._current_state = new_state
        self.logger.info("machine_started", state=new_state.name)

        if new_state.on_enter is not None:
            new_state.on_enter()
        return self._current_state

    async def transition(self, name: str) -> State:
        """
        Transition to a new state.

        Args:
            name: Target state name

        Returns:
            The new current state

        Raises:
            InvalidTransitionError: If the target is unreachable
            GuardRejectedError: If the target's guard fails
            HookError: If on_exit or on_enter raises
        """
        change = await self._run_transition(name)
        await self._notify(change)
        return self._current_state

    async def transition_to(self, name: str) -> State:
        """Alias for transition()."""
        return await self.transition(name)

    async def try_transition(self, name: str) -> TransitionResult:
        """Run a transition and report the outcome instead of raising."""
        try:
            change = await self._run_transition(name)
        except TransitionError as e:
            return TransitionResult(ok=False, state=self._current_state, error=e)
        await self._notify(change)
        return TransitionResult(ok=True, state=self._current_state, change=change)

    async def _run_transition(self, name: str) -> StateChange:
        current = self._current_state
        target = self.get_state(name)

        if not self.topology.is_reachable(current, name, target):
            raise InvalidTransitionError(from_state=current.name, to_state=name)

        # Single suspension point; nothing below runs if the guard fails
        await target.check_guard(current.name)

        if current.on_exit is not None:
            try:
                current.on_exit()
            except Exception as e:
                raise HookError(current.name, target.name, "on_exit", e, committed=False) from e

        self._current_state = target
        self.logger.info("state_changed", from_state=current.name, to_state=target.name)

        # No rollback past this point
        if target.on_enter is not None:
            try:
                target.on_enter()
            except Exception as e:
                raise HookError(current.name, target.name, "on_enter", e, committed=True) from e

        return StateChange(from_state=current.name, to_state=target.name)

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def register_transition_callback(self, callback: TransitionCallback) -> None:
        """Register a callback to be called after every committed transition."""
        self._transition_callbacks.append(callback)

    async def _notify(self, change: StateChange) -> None:
        for callback in self._transition_callbacks:
            try:
                await callback(change, self)
            except Exception as e:
                self.logger.error("transition_callback_failed", error=str(e))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "currentState": self._current_state.name,
            "isStarted": self.is_started,
            "states": [s.to_dict() for s in self._states],
        }
