"""IEventStore protocol + event and result dataclasses."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    TYPE_CHECKING,
    Any,
    Generic,
    Protocol,
    TypeAlias,
    TypeVar,
    Union,
    runtime_checkable,
)

from ..utils import default_dict_factory

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from pydantic import BaseModel

StateT = TypeVar("StateT")


class ExpectedVersion(enum.Enum):
    """Optimistic concurrency policies besides an exact version number."""

    NO_CONCURRENCY_CHECK = "no_concurrency_check"
    STREAM_EXISTS = "stream_exists"
    STREAM_DOES_NOT_EXIST = "stream_does_not_exist"


NO_CONCURRENCY_CHECK = ExpectedVersion.NO_CONCURRENCY_CHECK
STREAM_EXISTS = ExpectedVersion.STREAM_EXISTS
STREAM_DOES_NOT_EXIST = ExpectedVersion.STREAM_DOES_NOT_EXIST

ExpectedStreamVersion: TypeAlias = Union[int, ExpectedVersion]


@dataclass(frozen=True)
class Event:
    """An event to append: a type name, a payload and optional metadata.

    ``data`` may be a plain mapping or a pydantic model; it is serialized to a
    document when appended. Integers are stored as they are and read back
    unchanged, within the range the document store can hold (64-bit on
    MongoDB). ``None`` entries are dropped.
    """

    type: str
    data: dict[str, Any] | BaseModel = field(default_factory=default_dict_factory)
    metadata: dict[str, Any] = field(default_factory=default_dict_factory)


@dataclass(frozen=True)
class RecordedEvent:
    """Persistent representation of an appended event.

    - ``stream_position``: version of the event inside its stream (0-based).
    - ``global_position``: store-wide sequence number across all streams.
    """

    type: str
    data: dict[str, Any]
    stream_name: str
    stream_position: int
    global_position: int
    metadata: dict[str, Any] = field(default_factory=default_dict_factory)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ReadStreamOptions:
    """Inclusive version window and result cap for ``read_stream``."""

    from_version: int | None = None
    to_version: int | None = None
    max_count: int | None = None


@dataclass(frozen=True)
class ReadStreamResult:
    current_stream_version: int | None
    events: list[RecordedEvent]
    stream_exists: bool


@dataclass(frozen=True)
class AppendToStreamResult:
    next_expected_stream_version: int
    created_new_stream: bool


@dataclass(frozen=True)
class AggregateStreamResult(Generic[StateT]):
    state: StateT
    current_stream_version: int | None
    stream_exists: bool


@runtime_checkable
class IEventStore(Protocol):
    """Protocol for appending to and reading from event streams."""

    async def append_to_stream(
        self,
        stream_name: str,
        events: Sequence[Event],
        expected_version: ExpectedStreamVersion = NO_CONCURRENCY_CHECK,
    ) -> AppendToStreamResult:
        """Append *events* atomically, checking *expected_version* first."""
        ...

    async def read_stream(
        self,
        stream_name: str,
        options: ReadStreamOptions | None = None,
    ) -> ReadStreamResult:
        """Return the stream's events (optionally windowed) and its version."""
        ...

    async def aggregate_stream(
        self,
        stream_name: str,
        *,
        evolve: Callable[[StateT, RecordedEvent], StateT],
        initial_state: Callable[[], StateT],
        read: ReadStreamOptions | None = None,
    ) -> AggregateStreamResult[StateT]:
        """Fold the stream's events into state."""
        ...
