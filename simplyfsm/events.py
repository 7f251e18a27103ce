"""
Compilation of Event declarations into runnable checks and firings.

Every event compiles into two host-level operations:
- ``may_fire(host)``: a side-effect free check of whether firing would succeed
- ``fire(host)``: the check, then the state write and success callback, or
  the fail handler when nothing matches
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from simplyfsm.predicates import Predicate, all_of, in_state
from simplyfsm.types import Event, FailHandler, Transition

logger = logging.getLogger(__name__)

StateReader = Callable[[Any], Optional[str]]
StateWriter = Callable[[Any, str], None]


@dataclass(frozen=True)
class CompiledEvent:
    """An Event together with its compiled ``may_fire`` and ``fire`` operations."""

    event: Event
    may_fire: Predicate
    fire: Callable[[Any], bool]

    @property
    def name(self) -> str:
        return self.event.name


def compile_event(
    event: Event,
    read_state: StateReader,
    write_state: StateWriter,
    default_fail: Optional[FailHandler] = None,
    label: object = "",
) -> CompiledEvent:
    """
    Compile an event against a machine's state accessors.

    Args:
        event: The declared event.
        read_state: Returns the host's current state.
        write_state: Stores a new current state on the host.
        default_fail: Machine-wide fail handler, used when the event has none.
        label: Prefix for log messages, formatted with str() when logging;
               usually the machine itself.
    """
    fail = event.fail if event.fail is not None else default_fail
    if event.multi:
        return _compile_multi(event, read_state, write_state, fail, label)
    return _compile_single(event, read_state, write_state, fail, label)


def _reject(host: Any, event: Event, fail: Optional[FailHandler], label: object, current) -> bool:
    logger.debug(f"{label}: {event.name} rejected in state {current}")
    if fail is not None:
        fail(host, event.name)
    return False


def _compile_single(
    event: Event,
    read_state: StateReader,
    write_state: StateWriter,
    fail: Optional[FailHandler],
    label: object,
) -> CompiledEvent:
    transition = event.transitions[0]
    to_state = transition.to_state
    on_success = event.on_success

    # guard, then source state, then condition
    may_fire = all_of(
        event.guard,
        in_state(transition.from_state, read_state),
        transition.condition,
    )

    def fire(host: Any) -> bool:
        if may_fire(host):
            previous = read_state(host)
            write_state(host, to_state)
            logger.debug(f"{label}: {previous} → {to_state} ({event.name})")
            if on_success is not None:
                on_success(host)
            return True
        return _reject(host, event, fail, label, read_state(host))

    return CompiledEvent(event=event, may_fire=may_fire, fire=fire)


def _compile_multi(
    event: Event,
    read_state: StateReader,
    write_state: StateWriter,
    fail: Optional[FailHandler],
    label: object,
) -> CompiledEvent:
    guard = event.guard
    transitions = event.transitions

    def first_match(host: Any) -> Optional[Transition]:
        if guard is not None and not guard(host):
            return None
        current = read_state(host)
        for transition in transitions:
            if transition.can_transition(host, current):
                return transition
        return None

    def may_fire(host: Any) -> bool:
        return first_match(host) is not None

    def fire(host: Any) -> bool:
        transition = first_match(host)
        if transition is None:
            return _reject(host, event, fail, label, read_state(host))
        previous = read_state(host)
        write_state(host, transition.to_state)
        logger.debug(f"{label}: {previous} → {transition.to_state} ({event.name})")
        return True

    return CompiledEvent(event=event, may_fire=may_fire, fire=fire)
