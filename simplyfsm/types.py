"""
State machine data types and structures.

Defines the declaration-time types used by the engine:
- State: A named state, optionally the initial one
- Transition: One rule moving the machine from a source set to a target
- FailHandler: What to call when an event cannot fire
- Event: A named event with one or more transitions
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from simplyfsm.errors import InvalidDefinitionError
from simplyfsm.predicates import ANY, Predicate, SourceSet, state_match

_CONFIG_KEYS = frozenset({"from", "to", "when"})


@dataclass(frozen=True)
class State:
    """
    A declared state.

    Args:
        name: Identifier of the state, unique within one machine. Must be a
              valid Python identifier since accessors are named after it.
        initial: True if the machine starts in this state.

    Raises:
        InvalidDefinitionError: If name is not a valid identifier.
    """

    name: str
    initial: bool = False

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.isidentifier():
            raise InvalidDefinitionError(
                f"State name must be a valid identifier, got {self.name!r}"
            )


def normalize_source(source: Any) -> SourceSet:
    """
    Turn a user-supplied source into a SourceSet.

    Accepts ``ANY``, a single state name, or any iterable of state names.
    A single-element collection collapses to the bare name.

    Raises:
        InvalidDefinitionError: If the collection is empty or holds non-strings.
    """
    if source is ANY or isinstance(source, str):
        return source
    try:
        names = frozenset(source)
    except TypeError:
        raise InvalidDefinitionError(
            f"Transition source must be ANY, a state name or a collection "
            f"of state names, got {source!r}"
        ) from None
    if not names:
        raise InvalidDefinitionError("Transition source set must not be empty")
    for name in names:
        if not isinstance(name, str):
            raise InvalidDefinitionError(f"Source state {name!r} is not a state name")
    if len(names) == 1:
        return next(iter(names))
    return names


@dataclass(frozen=True)
class Transition:
    """
    A single transition rule.

    Args:
        to_state: The state this transition leads to.
        from_state: Where the transition may start: ``ANY`` (default), one
                    state name, or a collection of state names.
        condition: Optional predicate called with the host instance. If
                   provided, must return True for the transition to match.
                   Exceptions raised by the condition propagate.
    """

    to_state: str
    from_state: SourceSet = ANY
    condition: Optional[Predicate] = None

    def __post_init__(self):
        if not isinstance(self.to_state, str):
            raise InvalidDefinitionError(f"to_state must be a state name, got {self.to_state!r}")
        object.__setattr__(self, "from_state", normalize_source(self.from_state))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Transition":
        """
        Build a Transition from a compact mapping.

        Supported keys: ``to`` (required), ``from`` (default ``ANY``) and
        ``when`` (optional condition).

        Raises:
            InvalidDefinitionError: If ``to`` is missing or an unknown key is given.
        """
        unknown = set(config) - _CONFIG_KEYS
        if unknown:
            raise InvalidDefinitionError(
                f"Unknown transition keys {sorted(unknown)}; expected 'from', 'to', 'when'"
            )
        if "to" not in config:
            raise InvalidDefinitionError(f"Transition config missing required 'to' field: {config!r}")
        return cls(
            to_state=config["to"],
            from_state=config.get("from", ANY),
            condition=config.get("when"),
        )

    @property
    def source_states(self) -> Tuple[str, ...]:
        """Named source states, sorted. Empty for ``ANY``."""
        if self.from_state is ANY:
            return ()
        if isinstance(self.from_state, frozenset):
            return tuple(sorted(self.from_state))
        return (self.from_state,)

    def can_transition(self, host: Any, current: Optional[str]) -> bool:
        """
        Check whether this rule matches right now.

        The condition only runs when the current state is in the source set.

        Returns:
            True if the source set matches and the condition is absent or true.
        """
        if not state_match(self.from_state, current):
            return False
        if self.condition is None:
            return True
        return bool(self.condition(host))


class FailHandler(ABC):
    """Called with the host instance and the event name when an event is rejected."""

    @abstractmethod
    def __call__(self, host: Any, event_name: str) -> None:
        """Handle the rejection of ``event_name`` on ``host``."""


@dataclass(frozen=True)
class MethodFailHandler(FailHandler):
    """Calls a named method of the host, passing the event name."""

    method_name: str

    def __call__(self, host: Any, event_name: str) -> None:
        getattr(host, self.method_name)(event_name)


@dataclass(frozen=True)
class CallableFailHandler(FailHandler):
    """Calls ``func(host, event_name)``."""

    func: Callable[[Any, str], Any]

    def __call__(self, host: Any, event_name: str) -> None:
        self.func(host, event_name)


FailSpec = Union[None, str, Callable[[Any, str], Any], FailHandler]


def fail_handler(spec: FailSpec) -> Optional[FailHandler]:
    """
    Normalise a fail handler specification.

    Args:
        spec: None, the name of a host method, a callable taking
              ``(host, event_name)``, or a FailHandler.

    Raises:
        InvalidDefinitionError: If spec is none of the above.
    """
    if spec is None or isinstance(spec, FailHandler):
        return spec
    if isinstance(spec, str):
        return MethodFailHandler(spec)
    if callable(spec):
        return CallableFailHandler(spec)
    raise InvalidDefinitionError(f"Invalid fail handler: {spec!r}")


@dataclass(frozen=True)
class Event:
    """
    A declared event.

    Args:
        name: Identifier of the event, unique within one machine.
        transitions: The transition rules, in declaration order.
        multi: True if declared with a list of transitions. Multi-transition
               events scan their rules in order and take the first match.
        guard: Optional predicate checked once before any rule.
        fail: Event-level fail handler; overrides the machine default.
        on_success: Optional callable run with the host after a successful
                    single-transition firing.
    """

    name: str
    transitions: Tuple[Transition, ...]
    multi: bool = False
    guard: Optional[Predicate] = None
    fail: Optional[FailHandler] = None
    on_success: Optional[Callable[[Any], Any]] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.isidentifier():
            raise InvalidDefinitionError(
                f"Event name must be a valid identifier, got {self.name!r}"
            )
        if not self.transitions:
            raise InvalidDefinitionError(f"Event {self.name!r} has no transitions")
        if not self.multi and len(self.transitions) != 1:
            raise InvalidDefinitionError(
                f"Single-transition event {self.name!r} needs exactly one transition"
            )
        if self.multi and self.on_success is not None:
            raise InvalidDefinitionError(
                f"Event {self.name!r}: on_success is only supported with a single transition"
            )

    @property
    def target_states(self) -> Tuple[str, ...]:
        """Target states in declaration order, without repeats."""
        return tuple(dict.fromkeys(t.to_state for t in self.transitions))
