"""Protocols for the projection engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from esdoc_core.ports.event_store import RecordedEvent

    from .projection import ProjectionContext


@runtime_checkable
class IEventProcessor(Protocol):
    """Receives pages of events from a consumer, in global order.

    Pages may be delivered more than once (a failing page is retried against
    every processor), so implementations must be idempotent.
    """

    async def handle(self, events: Sequence[RecordedEvent]) -> None:
        ...


@runtime_checkable
class ICheckpointStore(Protocol):
    """Protocol for persisting a consumer's last delivered global position."""

    async def get_position(self, consumer_id: str) -> int | None:
        """Return last processed position; None if never run."""
        ...

    async def save_position(self, consumer_id: str, position: int) -> None:
        """Persist position after a delivered page."""
        ...


@runtime_checkable
class IProjection(Protocol):
    """A read-model projection: which events it folds and how it writes them."""

    name: str
    can_handle: frozenset[str]

    async def handle(
        self, events: Sequence[RecordedEvent], context: ProjectionContext
    ) -> None:
        ...
