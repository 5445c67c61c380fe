"""Read side of esdoc: catch-up consumer, checkpoints and document projections."""

from __future__ import annotations

from .checkpoint import CHECKPOINTS_COLLECTION, DocumentCheckpointStore
from .consumer import EventStoreConsumer
from .exceptions import (
    CheckpointError,
    ConsumerStateError,
    ProjectionError,
    ProjectionHandlerError,
)
from .metadata import extract_from_event
from .ports import ICheckpointStore, IEventProcessor, IProjection
from .processor import ProjectionProcessor
from .projection import (
    DEFAULT_PROJECTION_NAME,
    METADATA_FIELD,
    PROJECTIONS_COLLECTION,
    DocumentProjection,
    NullableDocumentFold,
    ProjectionContext,
    SeededDocumentFold,
    handle_projections,
    multi_stream_projection,
    read_model_path,
    single_stream_projection,
)
from .retry import BackoffStrategy, RetryPolicy

__all__ = [
    "CHECKPOINTS_COLLECTION",
    "DEFAULT_PROJECTION_NAME",
    "METADATA_FIELD",
    "PROJECTIONS_COLLECTION",
    "BackoffStrategy",
    "CheckpointError",
    "ConsumerStateError",
    "DocumentCheckpointStore",
    "DocumentProjection",
    "EventStoreConsumer",
    "ICheckpointStore",
    "IEventProcessor",
    "IProjection",
    "NullableDocumentFold",
    "ProjectionContext",
    "ProjectionError",
    "ProjectionHandlerError",
    "ProjectionProcessor",
    "RetryPolicy",
    "SeededDocumentFold",
    "extract_from_event",
    "handle_projections",
    "multi_stream_projection",
    "read_model_path",
    "single_stream_projection",
]
