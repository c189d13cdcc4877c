"""
Tests for the Gated State Machine Models

Tests for State, Transition, factories and the invalid-state sentinel.
"""

import pytest

from gated_fsm.core.machine import (
    INVALID_STATE,
    INVALID_STATE_NAME,
    GuardRejectedError,
    InvalidStateError,
    State,
    StateChange,
    Transition,
    state_factory,
    transition_factory,
)


class TestState:
    """Tests for State construction and guards."""

    def test_empty_name_rejected(self):
        """Test that a state needs a name."""
        with pytest.raises(ValueError):
            State(name="")

    def test_allowed_sources_frozen(self):
        """Test allow-lists are normalized to frozensets."""
        state = State(name="on", allowed_sources=["off", "off"])

        assert state.allowed_sources == frozenset({"off"})

    def test_empty_allow_list_admits_everyone(self):
        """Test an empty allow-list admits any source."""
        state = state_factory("red")

        assert state.allows_entry_from("green") is True
        assert state.allows_entry_from("anything") is True

    def test_allow_list_restricts(self):
        """Test a populated allow-list admits only listed sources."""
        state = state_factory("running", allowed_sources=["on"])

        assert state.allows_entry_from("on") is True
        assert state.allows_entry_from("off") is False

    def test_states_are_immutable(self):
        """Test hooks cannot be swapped after construction."""
        state = state_factory("on")

        with pytest.raises(AttributeError):
            state.on_enter = lambda: None

    def test_to_dict(self):
        """Test state snapshot."""
        async def guard(prev):
            return True

        data = state_factory("running", guard, allowed_sources=["on"]).to_dict()

        assert data == {"name": "running", "allowedSources": ["on"], "hasGuard": True}

    @pytest.mark.asyncio
    async def test_check_guard_without_guard(self):
        """Test a state without a guard always admits."""
        await state_factory("on").check_guard("off")

    @pytest.mark.asyncio
    async def test_check_guard_wraps_exception(self):
        """Test guard exceptions become GuardRejectedError."""
        async def guard(prev):
            raise ConnectionError("timeout talking to server")

        with pytest.raises(GuardRejectedError) as exc_info:
            await state_factory("on", guard).check_guard("off")

        assert exc_info.value.from_state == "off"
        assert exc_info.value.to_state == "on"
        assert isinstance(exc_info.value.cause, ConnectionError)


class TestInvalidState:
    """Tests for the invalid-state sentinel."""

    def test_sentinel_name(self):
        assert INVALID_STATE.name == INVALID_STATE_NAME == "InvalidState"

    @pytest.mark.asyncio
    async def test_sentinel_guard_always_fails(self):
        """Test the sentinel can never be entered."""
        for previous in ("off", "on", INVALID_STATE_NAME):
            with pytest.raises(GuardRejectedError) as exc_info:
                await INVALID_STATE.check_guard(previous)
            assert isinstance(exc_info.value.cause, InvalidStateError)
            assert exc_info.value.cause.previous_state_name == previous


class TestTransition:
    """Tests for Transition and its factory."""

    def test_default_condition_allows(self):
        """Test the default condition always passes."""
        transition = transition_factory("off", "on")

        assert transition.condition(state_factory("off")) is True

    def test_custom_condition(self):
        """Test a supplied condition is kept."""
        transition = transition_factory("on", "running", lambda current: current.name == "on")

        assert transition.condition(state_factory("on")) is True
        assert transition.condition(state_factory("off")) is False

    def test_matches(self):
        transition = Transition(from_state="off", to_state="on")

        assert transition.matches("off", "on") is True
        assert transition.matches("on", "off") is False

    def test_to_dict(self):
        assert transition_factory("off", "on").to_dict() == {"from": "off", "to": "on"}


class TestStateChange:
    """Tests for StateChange records."""

    def test_to_dict(self):
        change = StateChange(from_state="off", to_state="on")
        data = change.to_dict()

        assert data["fromState"] == "off"
        assert data["toState"] == "on"
        assert data["timestamp"] == change.timestamp.isoformat()
