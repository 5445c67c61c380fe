"""Storage layout of streams, events and the global counter."""

from __future__ import annotations

from ..ports.document_store import DocumentPath, make_path

STREAMS_COLLECTION = "streams"
EVENTS_COLLECTION = "events"
COUNTERS_COLLECTION = "counters"
GLOBAL_POSITION_COUNTER = "global_position"

# Keys are zero-padded so lexicographic order equals numeric order.
VERSION_KEY_WIDTH = 10


def version_key(version: int) -> str:
    return str(version).zfill(VERSION_KEY_WIDTH)


def stream_path(
    stream_name: str, streams_collection: str = STREAMS_COLLECTION
) -> DocumentPath:
    return make_path(streams_collection, stream_name)


def events_path(
    stream_name: str, streams_collection: str = STREAMS_COLLECTION
) -> DocumentPath:
    return make_path(streams_collection, stream_name, EVENTS_COLLECTION)


def event_path(
    stream_name: str,
    version: int,
    streams_collection: str = STREAMS_COLLECTION,
) -> DocumentPath:
    return (*events_path(stream_name, streams_collection), version_key(version))


def global_counter_path() -> DocumentPath:
    return make_path(COUNTERS_COLLECTION, GLOBAL_POSITION_COUNTER)
