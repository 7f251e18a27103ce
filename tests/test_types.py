"""Tests for simplyfsm.types."""

from types import SimpleNamespace

import pytest

from simplyfsm.errors import InvalidDefinitionError
from simplyfsm.predicates import ANY
from simplyfsm.types import (
    CallableFailHandler,
    Event,
    FailHandler,
    MethodFailHandler,
    State,
    Transition,
    fail_handler,
    normalize_source,
)


# ── State ──────────────────────────────────────────────────────────────────────

class TestState:
    def test_defaults(self):
        s = State("sleeping")
        assert s.name == "sleeping"
        assert s.initial is False

    def test_initial_flag(self):
        assert State("sleeping", initial=True).initial is True

    def test_invalid_name_raises(self):
        with pytest.raises(InvalidDefinitionError, match="identifier"):
            State("not a name")

    def test_non_string_name_raises(self):
        with pytest.raises(InvalidDefinitionError):
            State(None)

    def test_is_immutable(self):
        s = State("sleeping")
        with pytest.raises(AttributeError):
            s.name = "running"


# ── normalize_source ───────────────────────────────────────────────────────────

class TestNormalizeSource:
    def test_any_kept(self):
        assert normalize_source(ANY) is ANY

    def test_name_kept(self):
        assert normalize_source("running") == "running"

    def test_list_becomes_frozenset(self):
        assert normalize_source(["running", "cleaning"]) == frozenset({"running", "cleaning"})

    def test_single_element_collapses(self):
        assert normalize_source(["running"]) == "running"

    def test_empty_raises(self):
        with pytest.raises(InvalidDefinitionError, match="empty"):
            normalize_source([])

    def test_non_iterable_raises(self):
        with pytest.raises(InvalidDefinitionError):
            normalize_source(42)

    def test_non_string_member_raises(self):
        with pytest.raises(InvalidDefinitionError):
            normalize_source(["running", 3])


# ── Transition ─────────────────────────────────────────────────────────────────

class TestTransition:
    def test_defaults_to_any_source(self):
        t = Transition("running")
        assert t.from_state is ANY
        assert t.condition is None
        assert t.source_states == ()

    def test_source_states_sorted(self):
        t = Transition("sleeping", from_state=["running", "cleaning"])
        assert t.source_states == ("cleaning", "running")

    def test_invalid_target_raises(self):
        with pytest.raises(InvalidDefinitionError, match="to_state"):
            Transition(None)

    def test_matches_source_without_condition(self):
        t = Transition("running", from_state="sleeping")
        assert t.can_transition(object(), "sleeping") is True
        assert t.can_transition(object(), "cleaning") is False

    def test_condition_receives_host(self):
        host = SimpleNamespace(ok=True)
        t = Transition("running", condition=lambda h: h.ok)
        assert t.can_transition(host, "sleeping") is True
        host.ok = False
        assert t.can_transition(host, "sleeping") is False

    def test_condition_skipped_when_source_does_not_match(self):
        calls = []

        def condition(host):
            calls.append(1)
            return True

        t = Transition("running", from_state="sleeping", condition=condition)
        assert t.can_transition(object(), "cleaning") is False
        assert calls == []

    def test_raising_condition_propagates(self):
        def bad(host):
            raise RuntimeError("boom")

        t = Transition("running", condition=bad)
        with pytest.raises(RuntimeError, match="boom"):
            t.can_transition(object(), "sleeping")

    def test_condition_called_each_time(self):
        calls = []

        def condition(host):
            calls.append(1)
            return True

        t = Transition("running", condition=condition)
        t.can_transition(object(), None)
        t.can_transition(object(), None)
        assert len(calls) == 2


class TestTransitionFromConfig:
    def test_full_config(self):
        cond = lambda h: True  # noqa: E731
        t = Transition.from_config({"from": "running", "to": "sleeping", "when": cond})
        assert t.from_state == "running"
        assert t.to_state == "sleeping"
        assert t.condition is cond

    def test_from_defaults_to_any(self):
        assert Transition.from_config({"to": "sleeping"}).from_state is ANY

    def test_missing_to_raises(self):
        with pytest.raises(InvalidDefinitionError, match="'to'"):
            Transition.from_config({"from": "running"})

    def test_unknown_key_raises(self):
        with pytest.raises(InvalidDefinitionError, match="Unknown"):
            Transition.from_config({"to": "sleeping", "if": lambda h: True})


# ── Fail handlers ──────────────────────────────────────────────────────────────

class TestFailHandler:
    def test_none_stays_none(self):
        assert fail_handler(None) is None

    def test_string_becomes_method_handler(self):
        assert fail_handler("on_fail") == MethodFailHandler("on_fail")

    def test_callable_becomes_callable_handler(self):
        func = lambda host, event: None  # noqa: E731
        handler = fail_handler(func)
        assert isinstance(handler, CallableFailHandler)
        assert handler.func is func

    def test_existing_handler_kept(self):
        handler = MethodFailHandler("on_fail")
        assert fail_handler(handler) is handler

    def test_invalid_spec_raises(self):
        with pytest.raises(InvalidDefinitionError):
            fail_handler(42)

    def test_method_handler_calls_host_method(self):
        received = []
        host = SimpleNamespace(on_fail=received.append)
        MethodFailHandler("on_fail")(host, "run")
        assert received == ["run"]

    def test_method_handler_missing_method_raises(self):
        with pytest.raises(AttributeError):
            MethodFailHandler("on_fail")(SimpleNamespace(), "run")

    def test_callable_handler_gets_host_and_event(self):
        received = []
        host = object()
        CallableFailHandler(lambda h, e: received.append((h, e)))(host, "run")
        assert received == [(host, "run")]

    def test_base_handler_is_abstract(self):
        with pytest.raises(TypeError):
            FailHandler()

    def test_subclass_must_implement_call(self):
        class Incomplete(FailHandler):
            pass

        with pytest.raises(TypeError):
            Incomplete()


# ── Event ──────────────────────────────────────────────────────────────────────

class TestEvent:
    def test_single_transition(self):
        e = Event("run", (Transition("running", from_state="sleeping"),))
        assert e.multi is False
        assert e.target_states == ("running",)

    def test_target_states_deduplicated_in_order(self):
        e = Event(
            "sleep",
            (Transition("sleeping", "running"), Transition("idle"), Transition("sleeping")),
            multi=True,
        )
        assert e.target_states == ("sleeping", "idle")

    def test_no_transitions_raises(self):
        with pytest.raises(InvalidDefinitionError, match="no transitions"):
            Event("run", (), multi=True)

    def test_single_form_needs_one_transition(self):
        with pytest.raises(InvalidDefinitionError, match="exactly one"):
            Event("run", (Transition("a"), Transition("b")))

    def test_on_success_rejected_for_multi(self):
        with pytest.raises(InvalidDefinitionError, match="on_success"):
            Event("run", (Transition("a"),), multi=True, on_success=lambda h: None)

    def test_invalid_name_raises(self):
        with pytest.raises(InvalidDefinitionError):
            Event("run away", (Transition("a"),))
