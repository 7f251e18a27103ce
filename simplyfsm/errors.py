"""
Exceptions raised by simplyfsm.

Ordinary transition rejection is never an exception: events return False.
These types cover definition mistakes caught at registration time and
lookups of names that were never declared.
"""


class StateMachineError(Exception):
    """Base class for all simplyfsm errors."""


class InvalidDefinitionError(StateMachineError, ValueError):
    """A state, event or transition declaration is invalid."""


class UnknownStateError(StateMachineError, AttributeError):
    """A state name was looked up that the machine never declared."""


class UnknownEventError(StateMachineError, AttributeError):
    """An event name was looked up that the machine never declared."""
