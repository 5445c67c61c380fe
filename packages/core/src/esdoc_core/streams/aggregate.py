"""Stream aggregation: left-fold a stream's events into state."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from ..ports.event_store import AggregateStreamResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..ports.event_store import IEventStore, ReadStreamOptions, RecordedEvent

StateT = TypeVar("StateT")


async def aggregate_stream(
    event_store: IEventStore,
    stream_name: str,
    *,
    evolve: Callable[[StateT, RecordedEvent], StateT],
    initial_state: Callable[[], StateT],
    read: ReadStreamOptions | None = None,
) -> AggregateStreamResult[StateT]:
    """Read *stream_name* and fold ``evolve`` over ``initial_state()``.

    A stream that was never appended to yields ``initial_state()`` with
    ``stream_exists=False``; ``evolve`` is not called.
    """
    result = await event_store.read_stream(stream_name, read)
    state = initial_state()
    if not result.stream_exists:
        return AggregateStreamResult(
            state=state, current_stream_version=None, stream_exists=False
        )

    for event in result.events:
        state = evolve(state, event)

    return AggregateStreamResult(
        state=state,
        current_stream_version=result.current_stream_version,
        stream_exists=True,
    )
