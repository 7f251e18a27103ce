"""
Runtime view of one machine bound to one host instance.

MachineRuntime resolves every query through the machine's dispatch tables,
so it works for any host object, including ones whose class never had
accessors installed.
"""

from typing import TYPE_CHECKING, Any, Callable, List, Optional

if TYPE_CHECKING:
    from simplyfsm.machine import StateMachine


class MachineRuntime:
    """
    Operations of a StateMachine for a single host.

    Besides the explicit methods, the per-name forms are available as
    attributes: ``runtime.is_running()``, ``runtime.may_run()`` and
    ``runtime.run()``. Names the machine never declared are absent and raise
    AttributeError. Lookups try ``is_<state>``, then ``may_<event>``, then
    ``<event>``; declarations that would make these overlap are rejected by
    StateMachine, so at most one of them can match.

    Args:
        machine: The machine definition.
        host: The object whose state is read and written.
    """

    def __init__(self, machine: "StateMachine", host: Any):
        self.machine = machine
        self.host = host

    @property
    def current(self) -> Optional[str]:
        """The current state, or the initial state if no event has fired yet."""
        return self.machine.current_state(self.host)

    def states(self) -> List[str]:
        """Declared states, in declaration order."""
        return list(self.machine.states)

    def events(self) -> List[str]:
        """Declared events, in declaration order."""
        return list(self.machine.events)

    def is_state(self, state: str) -> bool:
        """
        Raises:
            UnknownStateError: If ``state`` was never declared.
        """
        return self.machine.is_state(self.host, state)

    def may_fire(self, event_name: str) -> bool:
        """
        Raises:
            UnknownEventError: If ``event_name`` was never declared.
        """
        return self.machine.may_fire(self.host, event_name)

    def fire(self, event_name: str) -> bool:
        """
        Raises:
            UnknownEventError: If ``event_name`` was never declared.
        """
        return self.machine.fire(self.host, event_name)

    def __getattr__(self, attr: str) -> Callable[[], bool]:
        machine = self.__dict__.get("machine")
        if machine is None:
            raise AttributeError(attr)

        if attr.startswith("is_") and attr[3:] in machine.states:
            state = attr[3:]
            return lambda: self.is_state(state)
        if attr.startswith("may_") and attr[4:] in machine.events:
            event_name = attr[4:]
            return lambda: self.may_fire(event_name)
        if attr in machine.events:
            return lambda: self.fire(attr)

        raise AttributeError(
            f"{type(self).__name__} for {machine.full_name} has no attribute {attr!r}"
        )

    def __repr__(self) -> str:
        return f"<MachineRuntime {self.machine.full_name} current={self.current!r}>"
