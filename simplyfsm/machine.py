"""
StateMachine — a declarative, flat finite state machine bound to host objects.

Features:
- States and events declared in the host class body
- Single-transition events with guard, condition and success callback
- Multi-transition events resolved by first match in declaration order
- Fail handlers per event or machine-wide, by method name or callable
- Accessors installed on the host class: ``is_<state>()``, ``may_<event>()``,
  ``<event>()``, ``<machine>_states()`` and ``<machine>_events()``

Usage:
    from simplyfsm import StateMachine

    class Robot:
        activity = StateMachine(fail="on_fail")
        activity.state("sleeping", initial=True)
        activity.state("running")
        activity.state("cleaning")

        activity.event("run", {"from": "sleeping", "to": "running"})
        activity.event("clean", {"from": "running", "to": "cleaning"})
        activity.event("sleep", [
            {"from": "running", "to": "sleeping"},
            {"when": lambda robot: robot.is_cleaning(), "to": "sleeping"},
        ])

        def on_fail(self, event_name): ...

    robot = Robot()
    robot.activity          # "sleeping"
    robot.run()             # True
    robot.may_clean()       # True
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from simplyfsm.errors import InvalidDefinitionError, UnknownEventError, UnknownStateError
from simplyfsm.events import CompiledEvent, compile_event
from simplyfsm.predicates import Predicate
from simplyfsm.runtime import MachineRuntime
from simplyfsm.types import Event, FailSpec, State, Transition, fail_handler

logger = logging.getLogger(__name__)

# Host attribute holding ``{machine name: current state}``
STATE_ATTR = "_fsm_states"

TransitionSpec = Union[Transition, Mapping]


class StateMachine:
    """
    Registry of the states and events of one machine.

    A machine is declared once, normally as a class attribute of its host
    class, and shared by every instance of that class. The current state is
    stored per instance. Reading the attribute on an instance returns the
    current state; reading it on the class returns the machine.

    Args:
        name: Machine name. Defaults to the attribute name it is assigned to.
        fail: Default fail handler for events that do not set their own.
    """

    def __init__(self, name: Optional[str] = None, fail: FailSpec = None):
        if name is not None and not (isinstance(name, str) and name.isidentifier()):
            raise InvalidDefinitionError(f"Machine name must be a valid identifier, got {name!r}")
        self._name: Optional[str] = name
        self._fail = fail_handler(fail)
        self._owner: Optional[type] = None
        self._states: Dict[str, State] = {}
        self._initial_state: Optional[str] = None
        self._events: Dict[str, CompiledEvent] = {}

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def full_name(self) -> str:
        """The owning class name combined with the machine name."""
        owner = self._owner.__name__ if self._owner is not None else "?"
        return f"{owner}/{self._name or '?'}"

    @property
    def owner(self) -> Optional[type]:
        return self._owner

    @property
    def initial_state(self) -> Optional[str]:
        return self._initial_state

    @property
    def states(self) -> Tuple[str, ...]:
        """State names in declaration order."""
        return tuple(self._states)

    @property
    def events(self) -> Tuple[str, ...]:
        """Event names in declaration order."""
        return tuple(self._events)

    def get_state(self, name: str) -> State:
        try:
            return self._states[name]
        except KeyError:
            raise UnknownStateError(f"{self.full_name} has no state {name!r}") from None

    def get_event(self, name: str) -> Event:
        return self._compiled(name).event

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def state(self, name: str, initial: bool = False) -> State:
        """
        Declare a state, optionally as the initial one.

        Declaring a name that already exists is a no-op and returns the
        original declaration.

        Raises:
            InvalidDefinitionError: On an invalid name, a second initial
                                    state, or a sealed machine.
        """
        self._check_open()
        if name in self._states:
            logger.debug(f"{self.full_name}: state {name} already declared — ignored")
            return self._states[name]

        state = State(name, initial=initial)
        if initial and self._initial_state is not None:
            raise InvalidDefinitionError(
                f"{self.full_name}: initial state already set to {self._initial_state}, "
                f"cannot also make {name} initial"
            )
        self._check_accessor_names(f"state {name}", f"is_{name}")

        self._states[name] = state
        if initial:
            self._initial_state = name
        logger.debug(f"{self.full_name}: declared state {name}{' (initial)' if initial else ''}")
        return state

    def event(
        self,
        name: str,
        transitions: Union[TransitionSpec, Sequence[TransitionSpec]],
        guard: Optional[Predicate] = None,
        fail: FailSpec = None,
        on_success: Optional[Callable[[Any], Any]] = None,
    ) -> Event:
        """
        Declare an event.

        Args:
            name: Event name, also the name of the firing method on the host.
            transitions: A single Transition (or ``{"from", "to", "when"}``
                         mapping), or a list of them. A list makes this a
                         multi-transition event: rules are tried in order and
                         the first match wins.
            guard: Predicate that must hold before any transition is tried.
            fail: Fail handler for this event; overrides the machine default.
            on_success: Called with the host after a successful transition.
                        Single-transition events only.

        Returns:
            The declared Event, or the existing one if ``name`` was already
            declared (re-declaration is a no-op).

        Raises:
            InvalidDefinitionError: If a transition references an undeclared
                                    state or the declaration is malformed.
        """
        self._check_open()
        if name in self._events:
            logger.debug(f"{self.full_name}: event {name} already declared — ignored")
            return self._events[name].event

        self._check_accessor_names(f"event {name}", f"may_{name}", name)

        rules, multi = _coerce_transitions(transitions)
        for rule in rules:
            self._validate_transition(name, rule)

        event = Event(
            name=name,
            transitions=rules,
            multi=multi,
            guard=guard,
            fail=fail_handler(fail),
            on_success=on_success,
        )
        self._events[name] = compile_event(
            event,
            self.current_state,
            self._write_state,
            default_fail=self._fail,
            label=self,
        )
        logger.debug(
            f"{self.full_name}: declared event {name} with {len(rules)} transition(s)"
        )
        return event

    def _check_open(self) -> None:
        if self._owner is not None:
            raise InvalidDefinitionError(
                f"{self.full_name} is already attached; declare states and events "
                f"before the owning class is created"
            )

    def _claimed_accessors(self) -> Dict[str, str]:
        """Map each accessor name already in use to the declaration that claims it."""
        claimed: Dict[str, str] = {}
        if self._name is not None:
            claimed[self._name] = f"machine {self._name}"
            claimed[f"{self._name}_states"] = f"machine {self._name}"
            claimed[f"{self._name}_events"] = f"machine {self._name}"
        for state in self._states:
            claimed[f"is_{state}"] = f"state {state}"
        for event in self._events:
            claimed[f"may_{event}"] = f"event {event}"
            claimed[event] = f"event {event}"
        return claimed

    def _check_accessor_names(self, declaration: str, *names: str) -> None:
        claimed = self._claimed_accessors()
        for name in names:
            if name in claimed:
                raise InvalidDefinitionError(
                    f"{self.full_name}: {declaration} needs accessor {name}, "
                    f"already used by {claimed[name]}"
                )

    def _validate_transition(self, event_name: str, transition: Transition) -> None:
        if transition.to_state not in self._states:
            raise InvalidDefinitionError(
                f"{self.full_name}: event {event_name} targets undeclared state "
                f"{transition.to_state}"
            )
        for source in transition.source_states:
            if source not in self._states:
                raise InvalidDefinitionError(
                    f"{self.full_name}: event {event_name} starts from undeclared "
                    f"state {source}"
                )

    # ------------------------------------------------------------------
    # Per-instance state
    # ------------------------------------------------------------------

    def current_state(self, host: Any) -> Optional[str]:
        """Return the host's current state, falling back to the initial state."""
        state = getattr(host, STATE_ATTR, {}).get(self._name)
        return self._initial_state if state is None else state

    def _write_state(self, host: Any, state: str) -> None:
        states = getattr(host, STATE_ATTR, None)
        if states is None:
            states = {}
            setattr(host, STATE_ATTR, states)
        states[self._name] = state

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _compiled(self, event_name: str) -> CompiledEvent:
        try:
            return self._events[event_name]
        except KeyError:
            raise UnknownEventError(f"{self.full_name} has no event {event_name!r}") from None

    def is_state(self, host: Any, state: str) -> bool:
        """True if the host is currently in ``state``."""
        self.get_state(state)
        return self.current_state(host) == state

    def may_fire(self, host: Any, event_name: str) -> bool:
        """Check, without side effects of its own, whether ``event_name`` would fire."""
        return self._compiled(event_name).may_fire(host)

    def fire(self, host: Any, event_name: str) -> bool:
        """
        Attempt the event's transition on ``host``.

        Returns:
            True if a transition was made. False if none applied, after the
            fail handler (if any) has run.
        """
        return self._compiled(event_name).fire(host)

    def bind(self, host: Any) -> MachineRuntime:
        """Return a runtime view of this machine for one host instance."""
        if self._name is None:
            raise InvalidDefinitionError("Cannot bind a machine that has no name")
        return MachineRuntime(self, host)

    # ------------------------------------------------------------------
    # Host attachment
    # ------------------------------------------------------------------

    def __set_name__(self, owner: type, name: str) -> None:
        self.attach(owner, name)

    def __get__(self, instance: Any, owner: Optional[type] = None):
        if instance is None:
            return self
        return self.current_state(instance)

    def attach(self, owner: type, name: Optional[str] = None) -> None:
        """
        Install this machine's accessors on ``owner`` and seal it.

        Called automatically when the machine is assigned in a class body.

        Args:
            owner: The host class.
            name: Attribute name; becomes the machine name if none was given.

        Raises:
            InvalidDefinitionError: If already attached, the names disagree,
                                    or an accessor would replace an existing
                                    attribute of ``owner``.
        """
        if self._owner is not None:
            raise InvalidDefinitionError(
                f"{self.full_name} is already attached to {self._owner.__name__}"
            )
        name = name or self._name
        if name is None:
            raise InvalidDefinitionError("Cannot attach a machine that has no name")
        if self._name is None:
            self._name = name
        elif self._name != name:
            raise InvalidDefinitionError(
                f"Machine {self._name!r} cannot be bound to attribute {name!r}"
            )

        accessors = self._build_accessors()
        clashes = [a for a in accessors if a in vars(owner)]
        if vars(owner).get(self._name, self) is not self:
            clashes.insert(0, self._name)
        if clashes:
            raise InvalidDefinitionError(
                f"{owner.__name__}/{self._name}: accessors {clashes} clash with "
                f"existing attributes"
            )

        if vars(owner).get(self._name) is not self:
            setattr(owner, self._name, self)
        for attr, func in accessors.items():
            func.__name__ = attr
            func.__qualname__ = f"{owner.__qualname__}.{attr}"
            setattr(owner, attr, func)
        self._owner = owner

        logger.info(
            f"{self.full_name} attached — "
            f"{len(self._states)} states, "
            f"{len(self._events)} events, "
            f"initial state {self._initial_state}"
        )

    def _build_accessors(self) -> Dict[str, Callable]:
        machine = self
        accessors: Dict[str, Callable] = {}

        def states(host):
            return list(machine.states)

        def events(host):
            return list(machine.events)

        states.__doc__ = f"States of the {self._name} machine, in declaration order."
        events.__doc__ = f"Events of the {self._name} machine, in declaration order."
        def add(attr: str, func: Callable) -> None:
            if attr == self._name or attr in accessors:
                raise InvalidDefinitionError(
                    f"{self._name}: accessor {attr} is produced more than once"
                )
            accessors[attr] = func

        add(f"{self._name}_states", states)
        add(f"{self._name}_events", events)

        for state in self._states:
            add(f"is_{state}", _state_accessor(machine, state))

        for name, compiled in self._events.items():
            add(f"may_{name}", _may_fire_accessor(compiled))
            add(name, _fire_accessor(compiled))

        return accessors

    def __str__(self) -> str:
        return self.full_name

    def __repr__(self) -> str:
        return (
            f"<StateMachine {self.full_name} states={list(self._states)} "
            f"events={list(self._events)}>"
        )


def _state_accessor(machine: StateMachine, state: str) -> Callable[[Any], bool]:
    def accessor(host):
        return machine.current_state(host) == state

    accessor.__doc__ = f"True if the {machine.name} machine is in state {state}."
    return accessor


def _may_fire_accessor(compiled: CompiledEvent) -> Callable[[Any], bool]:
    def accessor(host):
        return compiled.may_fire(host)

    accessor.__doc__ = f"True if event {compiled.name} would currently succeed."
    return accessor


def _fire_accessor(compiled: CompiledEvent) -> Callable[[Any], bool]:
    def accessor(host):
        return compiled.fire(host)

    accessor.__doc__ = f"Fire event {compiled.name}; returns True if a transition was made."
    return accessor


def _coerce_transitions(spec) -> Tuple[Tuple[Transition, ...], bool]:
    """Normalise the ``transitions`` argument to ``(rules, multi)``."""
    if isinstance(spec, (Transition, Mapping)):
        return (_coerce_transition(spec),), False
    if not isinstance(spec, (list, tuple)):
        raise InvalidDefinitionError(
            f"transitions must be a Transition, a mapping or a list of them, got {spec!r}"
        )
    return tuple(_coerce_transition(item) for item in spec), True


def _coerce_transition(spec) -> Transition:
    if isinstance(spec, Transition):
        return spec
    if isinstance(spec, Mapping):
        return Transition.from_config(spec)
    raise InvalidDefinitionError(f"Invalid transition: {spec!r}")
