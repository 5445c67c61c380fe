"""Domain and infrastructure exceptions for esdoc-core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..ports.event_store import ExpectedStreamVersion


class EsdocError(Exception):
    """Root exception for the entire esdoc toolkit."""


class InvalidArgumentError(EsdocError, ValueError):
    """Raised when a caller passes an argument the operation cannot accept.

    Examples: appending an empty batch, a negative read window or a consumer
    without an id.
    """


class ConcurrencyError(EsdocError):
    """Base class for all concurrency-related conflicts."""


class ExpectedVersionConflictError(ConcurrencyError):
    """Raised when the stream version does not satisfy the expected version.

    Carries both sides of the comparison so the caller can re-read and decide
    how to resolve the conflict in its own business layer.
    """

    def __init__(
        self,
        actual: int | None,
        expected: ExpectedStreamVersion,
        *,
        stream_name: str | None = None,
    ) -> None:
        self.actual = actual
        self.expected = expected
        self.stream_name = stream_name
        actual_repr = "STREAM_DOES_NOT_EXIST" if actual is None else str(actual)
        expected_repr = getattr(expected, "name", None) or str(expected)
        where = f" for stream {stream_name!r}" if stream_name else ""
        super().__init__(
            f"Expected version {expected_repr} does not match "
            f"current version {actual_repr}{where}"
        )


class HandlerError(EsdocError):
    """Base class for errors raised while handling recorded events."""


class ProcessingError(HandlerError):
    """Raised when an event processor fails to handle a delivered batch."""


class InfrastructureError(EsdocError):
    """Base class for all infrastructure-related errors."""


class PersistenceError(InfrastructureError):
    """Base class for all persistence-related errors."""


class StoreUnavailableError(PersistenceError):
    """Raised when the document store cannot be reached or times out.

    Adapters translate their driver's transport errors into this type so
    callers can tell an outage from a programming error.
    """
