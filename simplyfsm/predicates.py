"""
Predicate combinators used to compile events.

A predicate is any callable taking the host instance and returning a bool.
Combinators skip ``None`` terms, so an absent guard or condition simply
drops out of the composed check instead of needing its own branch.
"""

from typing import Any, Callable, FrozenSet, Optional, Union

Predicate = Callable[[Any], bool]


class _AnyState:
    """Sentinel source set that matches every state."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY"

    def __reduce__(self):
        return (_AnyState, ())


ANY = _AnyState()

SourceSet = Union[_AnyState, str, FrozenSet[str]]


def state_match(source: SourceSet, current: Optional[str]) -> bool:
    """
    Check whether ``current`` belongs to ``source``.

    Args:
        source: ``ANY``, a single state name, or a frozenset of state names.
        current: The current state, possibly None when no state is set.

    Returns:
        True for ``ANY``; membership for a set; equality for a single state.
    """
    if source is ANY:
        return True
    if isinstance(source, frozenset):
        return current in source
    return source == current


def all_of(*predicates: Optional[Predicate]) -> Predicate:
    """
    Combine predicates with short-circuit AND, evaluated left to right.

    ``None`` terms are ignored. With no remaining terms the result always
    returns True.
    """
    terms = tuple(p for p in predicates if p is not None)

    if not terms:
        return always

    def check(host: Any) -> bool:
        for term in terms:
            if not term(host):
                return False
        return True

    return check


def any_of(*predicates: Optional[Predicate]) -> Predicate:
    """
    Combine predicates with short-circuit OR, evaluated left to right.

    ``None`` terms are ignored. With no remaining terms the result always
    returns False.
    """
    terms = tuple(p for p in predicates if p is not None)

    if not terms:
        return never

    def check(host: Any) -> bool:
        for term in terms:
            if term(host):
                return True
        return False

    return check


def in_state(
    source: SourceSet, read_current: Callable[[Any], Optional[str]]
) -> Optional[Predicate]:
    """
    Build a predicate that tests the host's current state against ``source``.

    The current state is read when the predicate runs, not when it is built,
    so a guard evaluated earlier in the same check sees its own effects.

    Returns None for ``ANY``: an unrestricted source adds no term.
    """
    if source is ANY:
        return None

    def check(host: Any) -> bool:
        return state_match(source, read_current(host))

    return check


def always(host: Any) -> bool:
    return True


def never(host: Any) -> bool:
    return False
