"""Streams: append-only event logs, global positions and aggregation."""

from __future__ import annotations

from .aggregate import aggregate_stream
from .allocator import GlobalPositionAllocator
from .keys import (
    COUNTERS_COLLECTION,
    EVENTS_COLLECTION,
    GLOBAL_POSITION_COUNTER,
    STREAMS_COLLECTION,
    VERSION_KEY_WIDTH,
    version_key,
)
from .store import (
    DocumentEventStore,
    assert_expected_version,
    recorded_event_from_snapshot,
)

__all__ = [
    "COUNTERS_COLLECTION",
    "EVENTS_COLLECTION",
    "GLOBAL_POSITION_COUNTER",
    "STREAMS_COLLECTION",
    "VERSION_KEY_WIDTH",
    "DocumentEventStore",
    "GlobalPositionAllocator",
    "aggregate_stream",
    "assert_expected_version",
    "recorded_event_from_snapshot",
    "version_key",
]
