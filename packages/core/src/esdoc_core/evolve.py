"""Evolver: event-type -> state-transition dispatch with a pass-through default."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Generic, TypeAlias, TypeVar

if TYPE_CHECKING:
    from .ports.event_store import RecordedEvent

StateT = TypeVar("StateT")

Transition: TypeAlias = Callable[[StateT, "RecordedEvent"], StateT]


class Evolver(Generic[StateT]):
    """Folds events into state by dispatching on ``event.type``.

    The set of declared types is closed: an event whose type has no
    transition returns the state unchanged, so readers keep working when
    writers start emitting new event types.

    Usage::

        evolve = Evolver[Cart]()

        @evolve.on("ProductItemAdded")
        def _added(cart: Cart, event: RecordedEvent) -> Cart: ...

        result = await store.aggregate_stream(
            "cart-1", evolve=evolve, initial_state=Cart
        )
    """

    def __init__(self) -> None:
        self._transitions: dict[str, Transition[StateT]] = {}

    @property
    def handles(self) -> frozenset[str]:
        """Event types with a registered transition."""
        return frozenset(self._transitions)

    def add_transition(self, event_type: str, transition: Transition[StateT]) -> None:
        """Register the transition applied to events of *event_type*."""
        self._transitions[event_type] = transition

    def on(
        self, event_type: str
    ) -> Callable[[Transition[StateT]], Transition[StateT]]:
        """Decorator form of ``add_transition``."""

        def decorator(transition: Transition[StateT]) -> Transition[StateT]:
            self.add_transition(event_type, transition)
            return transition

        return decorator

    def __call__(self, state: StateT, event: RecordedEvent) -> StateT:
        transition = self._transitions.get(event.type)
        if transition is None:
            return state
        return transition(state, event)
