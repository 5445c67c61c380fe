"""Ports: protocols the engine depends on."""

from __future__ import annotations

from .background_worker import IBackgroundWorker
from .document_store import (
    DocumentPath,
    DocumentSnapshot,
    IDocumentStore,
    IDocumentTransaction,
    format_path,
    make_path,
    parse_path,
)
from .event_store import (
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

__all__ = [
    "NO_CONCURRENCY_CHECK",
    "STREAM_DOES_NOT_EXIST",
    "STREAM_EXISTS",
    "AggregateStreamResult",
    "AppendToStreamResult",
    "DocumentPath",
    "DocumentSnapshot",
    "Event",
    "ExpectedStreamVersion",
    "ExpectedVersion",
    "IBackgroundWorker",
    "IDocumentStore",
    "IDocumentTransaction",
    "IEventStore",
    "ReadStreamOptions",
    "ReadStreamResult",
    "RecordedEvent",
    "format_path",
    "make_path",
    "parse_path",
]
