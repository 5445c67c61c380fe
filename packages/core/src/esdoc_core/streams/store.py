"""DocumentEventStore: append-only streams on top of an ``IDocumentStore``.

Layout::

    streams/{name}                  {version, createdAt, updatedAt}
    streams/{name}/events/{pad10}   {type, data, metadata, timestamp,
                                     globalPosition, streamVersion}
    counters/global_position        {value, updatedAt}
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from ..instrumentation import get_hook_registry
from ..ports.event_store import (
    NO_CONCURRENCY_CHECK,
    STREAM_DOES_NOT_EXIST,
    STREAM_EXISTS,
    AggregateStreamResult,
    AppendToStreamResult,
    Event,
    ExpectedStreamVersion,
    ExpectedVersion,
    IEventStore,
    ReadStreamOptions,
    ReadStreamResult,
    RecordedEvent,
)
from ..primitives.exceptions import ExpectedVersionConflictError, InvalidArgumentError
from ..serialization import parse_position, to_document
from .aggregate import aggregate_stream
from .allocator import GlobalPositionAllocator
from .keys import (
    STREAMS_COLLECTION,
    event_path,
    events_path,
    stream_path,
    version_key,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ..ports.document_store import (
        DocumentSnapshot,
        IDocumentStore,
        IDocumentTransaction,
    )

logger = logging.getLogger("esdoc.event_store")

StateT = TypeVar("StateT")


def assert_expected_version(
    current: int | None,
    expected: ExpectedStreamVersion,
    *,
    stream_name: str | None = None,
) -> None:
    """Raise ``ExpectedVersionConflictError`` if *current* fails *expected*.

    ``current`` is ``None`` when the stream does not exist.
    """
    if expected is NO_CONCURRENCY_CHECK:
        return
    if expected is STREAM_EXISTS:
        matches = current is not None
    elif expected is STREAM_DOES_NOT_EXIST:
        matches = current is None
    else:
        matches = current == expected
    if not matches:
        raise ExpectedVersionConflictError(current, expected, stream_name=stream_name)


def recorded_event_from_snapshot(snapshot: DocumentSnapshot) -> RecordedEvent:
    """Normalize a stored event document into a ``RecordedEvent``.

    The owning stream is the document two levels above the event in its path.
    """
    stream_name = snapshot.parent_id
    if stream_name is None:
        raise InvalidArgumentError(
            f"Document {snapshot.path!r} is not nested under a stream"
        )
    data = snapshot.data
    stream_version = data.get("streamVersion")
    timestamp = data.get("timestamp")
    if isinstance(timestamp, datetime) and timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    kwargs: dict[str, Any] = {}
    if isinstance(timestamp, datetime):
        kwargs["timestamp"] = timestamp
    return RecordedEvent(
        type=data["type"],
        data=dict(data.get("data") or {}),
        metadata=dict(data.get("metadata") or {}),
        stream_name=stream_name,
        stream_position=parse_position(
            stream_version if stream_version is not None else snapshot.id
        ),
        global_position=parse_position(data["globalPosition"]),
        **kwargs,
    )


class DocumentEventStore(IEventStore):
    """Event store whose streams live in a transactional document store.

    One ``append_to_stream`` call is one document-store transaction covering
    the concurrency check, every event write, the global counter and the
    stream metadata. Conflicts are never retried here; the caller re-reads
    and decides.
    """

    def __init__(
        self,
        store: IDocumentStore,
        *,
        streams_collection: str = STREAMS_COLLECTION,
        allocator: GlobalPositionAllocator | None = None,
    ) -> None:
        self._store = store
        self._streams_collection = streams_collection
        self._allocator = allocator or GlobalPositionAllocator()

    @property
    def document_store(self) -> IDocumentStore:
        return self._store

    async def append_to_stream(
        self,
        stream_name: str,
        events: Sequence[Event],
        expected_version: ExpectedStreamVersion = NO_CONCURRENCY_CHECK,
    ) -> AppendToStreamResult:
        batch = list(events)
        if not batch:
            raise InvalidArgumentError("Cannot append an empty batch of events")
        _validate_expected_version(expected_version)
        # Validates the stream name before any I/O.
        stream_path(stream_name, self._streams_collection)

        async def _append(transaction: IDocumentTransaction) -> AppendToStreamResult:
            return await self._append_internal(
                transaction, stream_name, batch, expected_version
            )

        registry = get_hook_registry()
        result: AppendToStreamResult = await registry.execute_all(
            f"event_store.append.{stream_name}",
            {
                "stream.name": stream_name,
                "event_count": len(batch),
                "event.types": [e.type for e in batch],
                "expected_version": _describe_expected(expected_version),
            },
            lambda: self._store.run_transaction(_append),
        )
        if result.created_new_stream:
            logger.info("Created stream %s", stream_name)
        logger.debug(
            "Appended %d event(s) to %s, version is now %d",
            len(batch),
            stream_name,
            result.next_expected_stream_version,
        )
        return result

    async def _append_internal(
        self,
        transaction: IDocumentTransaction,
        stream_name: str,
        events: list[Event],
        expected_version: ExpectedStreamVersion,
    ) -> AppendToStreamResult:
        path = stream_path(stream_name, self._streams_collection)
        stream_doc = await transaction.get(path)
        current = (
            parse_position(stream_doc["version"]) if stream_doc is not None else None
        )
        assert_expected_version(current, expected_version, stream_name=stream_name)

        first_global = await self._allocator.reserve(transaction, len(events))
        now = datetime.now(timezone.utc)
        version = -1 if current is None else current
        for offset, event in enumerate(events):
            version += 1
            transaction.set(
                event_path(stream_name, version, self._streams_collection),
                {
                    "type": event.type,
                    "data": to_document(event.data, big_ints_as_strings=False),
                    "metadata": to_document(
                        event.metadata, big_ints_as_strings=False
                    ),
                    "timestamp": now,
                    "globalPosition": first_global + offset,
                    "streamVersion": version,
                },
            )

        stream_update: dict[str, Any] = {"version": version, "updatedAt": now}
        if current is None:
            stream_update["createdAt"] = now
        transaction.set(path, stream_update, merge=True)

        return AppendToStreamResult(
            next_expected_stream_version=version,
            created_new_stream=current is None,
        )

    async def read_stream(
        self,
        stream_name: str,
        options: ReadStreamOptions | None = None,
    ) -> ReadStreamResult:
        window = options or ReadStreamOptions()
        _validate_window(window)
        stream_path(stream_name, self._streams_collection)

        registry = get_hook_registry()
        result: ReadStreamResult = await registry.execute_all(
            f"event_store.read.{stream_name}",
            {
                "stream.name": stream_name,
                "read.from": window.from_version,
                "read.to": window.to_version,
                "read.max_count": window.max_count,
            },
            lambda: self._read_internal(stream_name, window),
        )
        return result

    async def _read_internal(
        self, stream_name: str, window: ReadStreamOptions
    ) -> ReadStreamResult:
        stream_doc = await self._store.get(
            stream_path(stream_name, self._streams_collection)
        )
        if stream_doc is None:
            return ReadStreamResult(
                current_stream_version=None, events=[], stream_exists=False
            )

        current = parse_position(stream_doc["version"])
        # Events appended after the stream document was read are left out so
        # the result never runs ahead of the version it reports.
        upper = current if window.to_version is None else min(window.to_version, current)
        snapshots = await self._store.list_children(
            events_path(stream_name, self._streams_collection),
            start_key=(
                version_key(window.from_version)
                if window.from_version is not None
                else None
            ),
            end_key=version_key(upper),
            limit=window.max_count,
        )
        return ReadStreamResult(
            current_stream_version=current,
            events=[recorded_event_from_snapshot(s) for s in snapshots],
            stream_exists=True,
        )

    async def aggregate_stream(
        self,
        stream_name: str,
        *,
        evolve: Callable[[StateT, RecordedEvent], StateT],
        initial_state: Callable[[], StateT],
        read: ReadStreamOptions | None = None,
    ) -> AggregateStreamResult[StateT]:
        return await aggregate_stream(
            self,
            stream_name,
            evolve=evolve,
            initial_state=initial_state,
            read=read,
        )


def _validate_expected_version(expected: ExpectedStreamVersion) -> None:
    if isinstance(expected, ExpectedVersion):
        return
    if isinstance(expected, bool) or not isinstance(expected, int):
        raise InvalidArgumentError(
            f"Expected version must be an int or ExpectedVersion, got {expected!r}"
        )
    if expected < 0:
        raise InvalidArgumentError(
            f"Expected version must be >= 0, got {expected}"
        )


def _validate_window(window: ReadStreamOptions) -> None:
    for name in ("from_version", "to_version", "max_count"):
        value = getattr(window, name)
        if value is not None and (isinstance(value, bool) or value < 0):
            raise InvalidArgumentError(f"{name} must be >= 0, got {value!r}")


def _describe_expected(expected: ExpectedStreamVersion) -> str | int:
    if isinstance(expected, ExpectedVersion):
        return expected.name
    return expected
