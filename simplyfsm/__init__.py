"""
simplyfsm
~~~~~~~~~

A declarative, flat finite state machine engine for Python classes.

Quick start:
    from simplyfsm import StateMachine, Transition, ANY
    from simplyfsm import raise_on_fail, states_from_enum
"""

from simplyfsm.errors import (
    InvalidDefinitionError,
    StateMachineError,
    UnknownEventError,
    UnknownStateError,
)
from simplyfsm.machine import StateMachine
from simplyfsm.predicates import ANY, all_of, any_of, state_match
from simplyfsm.runtime import MachineRuntime
from simplyfsm.types import (
    CallableFailHandler,
    Event,
    FailHandler,
    MethodFailHandler,
    State,
    Transition,
)
from simplyfsm.helpers import (
    build_transitions,
    log_fail,
    raise_on_fail,
    states_from_enum,
)

__version__ = "0.1.0"

__all__ = [
    "ANY",
    "StateMachine",
    "MachineRuntime",
    "State",
    "Transition",
    "Event",
    "FailHandler",
    "MethodFailHandler",
    "CallableFailHandler",
    "StateMachineError",
    "InvalidDefinitionError",
    "UnknownStateError",
    "UnknownEventError",
    "all_of",
    "any_of",
    "state_match",
    "build_transitions",
    "log_fail",
    "raise_on_fail",
    "states_from_enum",
]
