"""esdoc-core: event-sourced streams on a transactional document store.

Zero infrastructure dependencies: the document store is a port with an
in-memory adapter here and real adapters in the persistence packages.
"""

from __future__ import annotations

# ── Adapters ────────────────────────────────────────────────────
from .adapters.memory import InMemoryDocumentStore
from .evolve import Evolver
from .instrumentation import (
    HookRegistration,
    HookRegistry,
    InstrumentationHook,
    get_hook_registry,
    set_hook_registry,
)

# ── Ports ───────────────────────────────────────────────────────
from .ports import (
    NO_CONCURRENCY_CHECK,
    STREAM_DOES_NOT_EXIST,
    STREAM_EXISTS,
    AggregateStreamResult,
    AppendToStreamResult,
    DocumentPath,
    DocumentSnapshot,
    Event,
    ExpectedStreamVersion,
    ExpectedVersion,
    IBackgroundWorker,
    IDocumentStore,
    IDocumentTransaction,
    IEventStore,
    ReadStreamOptions,
    ReadStreamResult,
    RecordedEvent,
    make_path,
)

# ── Primitives ──────────────────────────────────────────────────
from .primitives import (
    ConcurrencyError,
    EsdocError,
    ExpectedVersionConflictError,
    HandlerError,
    InfrastructureError,
    InvalidArgumentError,
    PersistenceError,
    ProcessingError,
    StoreUnavailableError,
)
from .serialization import parse_position, to_document, to_document_value

# ── Streams ─────────────────────────────────────────────────────
from .streams import (
    DocumentEventStore,
    GlobalPositionAllocator,
    aggregate_stream,
    recorded_event_from_snapshot,
)

__all__ = [
    "NO_CONCURRENCY_CHECK",
    "STREAM_DOES_NOT_EXIST",
    "STREAM_EXISTS",
    "AggregateStreamResult",
    "AppendToStreamResult",
    "ConcurrencyError",
    "DocumentEventStore",
    "DocumentPath",
    "DocumentSnapshot",
    "EsdocError",
    "Event",
    "Evolver",
    "ExpectedStreamVersion",
    "ExpectedVersion",
    "ExpectedVersionConflictError",
    "GlobalPositionAllocator",
    "HandlerError",
    "HookRegistration",
    "HookRegistry",
    "IBackgroundWorker",
    "IDocumentStore",
    "IDocumentTransaction",
    "IEventStore",
    "InMemoryDocumentStore",
    "InfrastructureError",
    "InstrumentationHook",
    "InvalidArgumentError",
    "PersistenceError",
    "ProcessingError",
    "ReadStreamOptions",
    "ReadStreamResult",
    "RecordedEvent",
    "StoreUnavailableError",
    "aggregate_stream",
    "get_hook_registry",
    "make_path",
    "parse_position",
    "recorded_event_from_snapshot",
    "set_hook_registry",
    "to_document",
    "to_document_value",
]
