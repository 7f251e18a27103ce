"""
Helper utilities for declaring state machines.

Provides convenience functions that reduce boilerplate when declaring
states from an Enum, building transitions from compact configs, and
turning rejected events into exceptions or log records.
"""

import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Type

from simplyfsm.errors import InvalidDefinitionError
from simplyfsm.machine import StateMachine
from simplyfsm.types import CallableFailHandler, FailHandler, State, Transition

logger = logging.getLogger(__name__)


def state_name(member: Enum) -> str:
    """Return the state name for an Enum member: its value if a str, else its lowercased name."""
    if isinstance(member.value, str):
        return member.value
    return member.name.lower()


def states_from_enum(
    machine: StateMachine,
    states_enum: Type[Enum],
    initial: Optional[Enum] = None,
) -> List[State]:
    """
    Declare one state per member of an Enum, in definition order.

    Args:
        machine: The machine to declare the states on.
        states_enum: The Enum class listing the states.
        initial: Member to mark as the initial state (default: none).

    Returns:
        The declared State objects.

    Raises:
        InvalidDefinitionError: If ``initial`` is not a member of ``states_enum``.

    Example:
        class Steps(Enum):
            IDLE = "idle"
            WORK = "work"

        class Worker:
            steps = StateMachine()
            states_from_enum(steps, Steps, initial=Steps.IDLE)
    """
    if initial is not None and not isinstance(initial, states_enum):
        raise InvalidDefinitionError(f"Initial state {initial} not found in {states_enum.__name__}")
    return [
        machine.state(state_name(member), initial=member is initial)
        for member in states_enum
    ]


def build_transitions(configs: Iterable[Mapping[str, Any]]) -> List[Transition]:
    """
    Build a list of Transitions from compact configs.

    Each transition maps to a plain dict instead of a verbose Transition()
    call. Supported keys:
        - ``to`` (str, required): Target state.
        - ``from`` (str or collection of str, optional): Source state(s);
          omitted means any state.
        - ``when`` (callable, optional): Condition called with the host.

    Raises:
        InvalidDefinitionError: If any config is missing the required ``to`` key.

    Example:
        activity.event("sleep", build_transitions([
            {"from": "running", "to": "sleeping"},
            {"when": lambda robot: robot.is_cleaning(), "to": "sleeping"},
        ]))
    """
    return [Transition.from_config(config) for config in configs]


def raise_on_fail(
    exc_type: Type[BaseException] = RuntimeError,
    message: str = "Cannot {event}",
) -> FailHandler:
    """
    Build a fail handler that raises ``exc_type`` when an event is rejected.

    ``message`` is formatted with ``event`` (the event name) and ``host``.

    Example:
        activity.event("run", {"from": "sleeping", "to": "running"},
                       fail=raise_on_fail(RunError, "Cannot {event}"))
    """

    def handler(host: Any, event_name: str) -> None:
        raise exc_type(message.format(event=event_name, host=host))

    return CallableFailHandler(handler)


def log_fail(level: int = logging.WARNING) -> FailHandler:
    """
    Build a fail handler that logs each rejected event instead of staying silent.

    Note:
        The event still returns False; logging does not escalate the rejection.
    """

    def handler(host: Any, event_name: str) -> None:
        logger.log(level, f"{type(host).__name__}: event {event_name} rejected")

    return CallableFailHandler(handler)
