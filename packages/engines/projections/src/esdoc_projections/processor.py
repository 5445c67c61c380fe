"""ProjectionProcessor: plugs projections into an EventStoreConsumer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .ports import IEventProcessor
from .projection import PROJECTIONS_COLLECTION, ProjectionContext, handle_projections

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from esdoc_core.ports.document_store import IDocumentStore
    from esdoc_core.ports.event_store import RecordedEvent

    from .ports import IProjection


class ProjectionProcessor(IEventProcessor):
    """Runs every matching projection against each delivered page."""

    def __init__(
        self,
        store: IDocumentStore,
        projections: Iterable[IProjection],
        *,
        collection: str = PROJECTIONS_COLLECTION,
    ) -> None:
        self.projections = list(projections)
        self._context = ProjectionContext(store=store, collection=collection)

    async def handle(self, events: Sequence[RecordedEvent]) -> None:
        await handle_projections(events, self.projections, self._context)
