"""Document projections: fold events into read-model documents.

Each read model lives at ``projections/{name}/{document_id}`` and carries a
``_metadata`` block recording which stream position it reflects. A fold that
ends in ``None`` removes the document.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

from esdoc_core.instrumentation import get_hook_registry
from esdoc_core.ports.document_store import make_path
from esdoc_core.ports.event_store import RecordedEvent
from esdoc_core.primitives.exceptions import (
    InvalidArgumentError,
    StoreUnavailableError,
)
from esdoc_core.serialization import parse_position, to_document
from esdoc_core.utils import resolve

from .exceptions import ProjectionHandlerError
from .ports import IProjection

if TYPE_CHECKING:
    from esdoc_core.ports.document_store import DocumentPath, IDocumentStore

logger = logging.getLogger("esdoc.projections")

PROJECTIONS_COLLECTION = "projections"
DEFAULT_PROJECTION_NAME = "_default"
METADATA_FIELD = "_metadata"
STREAM_POSITIONS_FIELD = "streamPositions"

DocT = TypeVar("DocT", bound=Mapping[str, Any])

NullableEvolve = Callable[
    [Union[DocT, None], RecordedEvent],
    Union[DocT, None, Awaitable[Union[DocT, None]]],
]
SeededEvolve = Callable[
    [DocT, RecordedEvent],
    Union[DocT, None, Awaitable[Union[DocT, None]]],
]
DocumentIdExtractor = Callable[[RecordedEvent], str]


@dataclass(frozen=True)
class ProjectionContext:
    """Where projections read and write their documents."""

    store: IDocumentStore
    collection: str = PROJECTIONS_COLLECTION


class NullableDocumentFold(Generic[DocT]):
    """Fold for projections that accept a missing document (``None``)."""

    def __init__(self, evolve: NullableEvolve[DocT]) -> None:
        self.evolve = evolve

    async def fold(
        self, document: DocT | None, events: Sequence[RecordedEvent]
    ) -> DocT | None:
        state = document
        for event in events:
            state = await resolve(self.evolve(state, event))
        return state


class SeededDocumentFold(Generic[DocT]):
    """Fold for projections that start from ``initial_state()`` when no document exists."""

    def __init__(
        self, evolve: SeededEvolve[DocT], initial_state: Callable[[], DocT]
    ) -> None:
        self.evolve = evolve
        self.initial_state = initial_state

    async def fold(
        self, document: DocT | None, events: Sequence[RecordedEvent]
    ) -> DocT | None:
        state: Any = document if document is not None else self.initial_state()
        for event in events:
            state = await resolve(self.evolve(state, event))
        return state


DocumentFold = Union[NullableDocumentFold[Any], SeededDocumentFold[Any]]


def read_model_path(
    name: str, document_id: str, collection: str = PROJECTIONS_COLLECTION
) -> DocumentPath:
    return make_path(collection, name, document_id)


class DocumentProjection(IProjection):
    """Projects events into one document per ``document_id``.

    Redelivered events are skipped: an event at or below the position already
    folded in for its stream (``_metadata.streamPosition``, or the
    ``_metadata.streamPositions`` entry for documents fed by several streams)
    is not folded again.
    """

    def __init__(
        self,
        *,
        document_id: DocumentIdExtractor,
        can_handle: Iterable[str],
        fold: DocumentFold,
        name: str = DEFAULT_PROJECTION_NAME,
        schema_version: int = 1,
    ) -> None:
        self.can_handle = frozenset(can_handle)
        if not self.can_handle:
            raise InvalidArgumentError(
                f"Projection '{name}' must handle at least one event type"
            )
        make_path(name)  # rejects empty names and "/"
        self.name = name
        self.schema_version = schema_version
        self.fold = fold
        self._document_id = document_id

    def document_id(self, event: RecordedEvent) -> str:
        document_id = self._document_id(event)
        if not document_id:
            raise InvalidArgumentError(
                f"Projection '{self.name}' got no document id for "
                f"event {event.type} at {event.stream_name}:{event.stream_position}"
            )
        return str(document_id)

    async def handle(
        self, events: Sequence[RecordedEvent], context: ProjectionContext
    ) -> None:
        partitions: dict[str, list[RecordedEvent]] = {}
        for event in events:
            if event.type in self.can_handle:
                partitions.setdefault(self.document_id(event), []).append(event)
        if not partitions:
            return

        failures: dict[str, Exception] = {}
        for document_id, document_events in partitions.items():
            try:
                await self._project_document(document_id, document_events, context)
            except StoreUnavailableError:
                raise
            except Exception as exc:
                logger.error(
                    "Projection %s failed for document %s",
                    self.name,
                    document_id,
                    exc_info=True,
                )
                failures[document_id] = exc

        if failures:
            raise ProjectionHandlerError(
                f"Projection '{self.name}' failed for "
                f"{len(failures)} document(s): {', '.join(failures)}",
                projection_name=self.name,
                failures=failures,
            )

    async def _project_document(
        self,
        document_id: str,
        events: list[RecordedEvent],
        context: ProjectionContext,
    ) -> None:
        path = read_model_path(self.name, document_id, context.collection)
        document = await context.store.get(path)
        metadata = document.pop(METADATA_FIELD, None) if document is not None else None

        positions = _projected_positions(metadata)
        pending = [
            e for e in events if e.stream_position > positions.get(e.stream_name, -1)
        ]
        if not pending:
            logger.debug(
                "Projection %s already reflects events for %s", self.name, document_id
            )
            return

        state = await self.fold.fold(document, pending)
        for event in pending:
            positions[event.stream_name] = event.stream_position
        last = pending[-1]

        registry = get_hook_registry()
        await registry.execute_all(
            f"projection.write.{self.name}",
            {
                "projection.name": self.name,
                "document.id": document_id,
                "document.deleted": state is None,
                "stream.name": last.stream_name,
                "stream.position": last.stream_position,
            },
            lambda: self._write(context.store, path, state, last, positions),
        )

    async def _write(
        self,
        store: IDocumentStore,
        path: DocumentPath,
        state: Mapping[str, Any] | None,
        last: RecordedEvent,
        positions: Mapping[str, int],
    ) -> None:
        if state is None:
            await store.delete(path)
            logger.debug("Projection %s deleted %s", self.name, path[-1])
            return

        body = to_document(state)
        metadata: dict[str, Any] = {
            "streamId": last.stream_name,
            "name": self.name,
            "schemaVersion": self.schema_version,
            "streamPosition": str(last.stream_position),
        }
        if len(positions) > 1:
            metadata[STREAM_POSITIONS_FIELD] = [
                {"streamId": stream, "streamPosition": str(position)}
                for stream, position in sorted(positions.items())
            ]
        body[METADATA_FIELD] = metadata
        await store.set(path, body)


def _projected_positions(metadata: Mapping[str, Any] | None) -> dict[str, int]:
    """Last folded stream position per stream, as recorded in ``_metadata``.

    Documents fed by one stream only carry ``streamId``/``streamPosition``;
    documents fed by several also list every stream under ``streamPositions``.
    """
    if not metadata:
        return {}
    positions: dict[str, int] = {}
    for entry in metadata.get(STREAM_POSITIONS_FIELD) or ():
        positions[entry["streamId"]] = parse_position(entry["streamPosition"])
    if "streamId" in metadata and "streamPosition" in metadata:
        positions.setdefault(
            metadata["streamId"], parse_position(metadata["streamPosition"])
        )
    return positions


def _make_fold(
    evolve: Callable[..., Any], initial_state: Callable[[], Any] | None
) -> DocumentFold:
    if initial_state is None:
        return NullableDocumentFold(evolve)
    return SeededDocumentFold(evolve, initial_state)


def single_stream_projection(
    *,
    can_handle: Iterable[str],
    evolve: Callable[..., Any],
    initial_state: Callable[[], Any] | None = None,
    name: str = DEFAULT_PROJECTION_NAME,
    schema_version: int = 1,
) -> DocumentProjection:
    """One read model per stream, keyed by the stream name."""
    return DocumentProjection(
        document_id=lambda event: event.stream_name,
        can_handle=can_handle,
        fold=_make_fold(evolve, initial_state),
        name=name,
        schema_version=schema_version,
    )


def multi_stream_projection(
    *,
    document_id: DocumentIdExtractor,
    can_handle: Iterable[str],
    evolve: Callable[..., Any],
    initial_state: Callable[[], Any] | None = None,
    name: str = DEFAULT_PROJECTION_NAME,
    schema_version: int = 1,
) -> DocumentProjection:
    """Read models that collect events from many streams under *document_id*."""
    return DocumentProjection(
        document_id=document_id,
        can_handle=can_handle,
        fold=_make_fold(evolve, initial_state),
        name=name,
        schema_version=schema_version,
    )


async def handle_projections(
    events: Sequence[RecordedEvent],
    projections: Iterable[IProjection],
    context: ProjectionContext,
) -> None:
    """Run, in order, the projections that handle any of the batch's event types."""
    event_types = {e.type for e in events}
    for projection in projections:
        if projection.can_handle & event_types:
            await projection.handle(events, context)
