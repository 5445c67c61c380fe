"""EventStoreConsumer: polling catch-up subscription over every stream.

Reads events in global order after the consumer's checkpoint, hands each page
to the registered processors and advances the checkpoint once the page has
been delivered to all of them.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

from esdoc_core.instrumentation import get_hook_registry
from esdoc_core.ports.background_worker import IBackgroundWorker
from esdoc_core.primitives.exceptions import (
    HandlerError,
    InvalidArgumentError,
    ProcessingError,
    StoreUnavailableError,
)
from esdoc_core.streams.keys import EVENTS_COLLECTION
from esdoc_core.streams.store import recorded_event_from_snapshot
from esdoc_core.utils import resolve

from .checkpoint import DocumentCheckpointStore
from .exceptions import ConsumerStateError
from .retry import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from esdoc_core.ports.document_store import IDocumentStore
    from esdoc_core.ports.event_store import RecordedEvent

    from .ports import ICheckpointStore, IEventProcessor

    ErrorHook = Callable[[Exception, Sequence[RecordedEvent]], Any]

logger = logging.getLogger("esdoc.consumer")


class EventStoreConsumer(IBackgroundWorker):
    """Catch-up consumer delivering pages of events to processors.

    Delivery is at-least-once: a page whose delivery fails is retried against
    all processors, and a page that exhausts its retries is offered again on
    the next poll because the checkpoint did not move.
    """

    def __init__(
        self,
        store: IDocumentStore,
        *,
        consumer_id: str,
        processors: Iterable[IEventProcessor] = (),
        batch_size: int = 100,
        polling_interval_seconds: float = 1.0,
        retry_policy: RetryPolicy | None = None,
        on_error: ErrorHook | None = None,
        checkpoint_store: ICheckpointStore | None = None,
        events_collection: str = EVENTS_COLLECTION,
    ) -> None:
        if not consumer_id:
            raise InvalidArgumentError("consumer_id is required")
        if batch_size < 1:
            raise InvalidArgumentError("batch_size must be at least 1")
        if polling_interval_seconds < 0:
            raise InvalidArgumentError("polling_interval_seconds must be >= 0")

        self._store = store
        self._consumer_id = consumer_id
        self._processors: list[IEventProcessor] = list(processors)
        self._batch_size = batch_size
        self._poll_interval = polling_interval_seconds
        self._retry_policy = retry_policy or RetryPolicy()
        self._on_error = on_error
        self._checkpoint_store = checkpoint_store or DocumentCheckpointStore(store)
        self._events_collection = events_collection

        self._position: int | None = None
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._wakeup = asyncio.Event()

    @property
    def consumer_id(self) -> str:
        return self._consumer_id

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def position(self) -> int | None:
        """Global position of the last delivered event, ``None`` before any."""
        return self._position

    @property
    def processors(self) -> list[IEventProcessor]:
        return list(self._processors)

    def add_processor(self, processor: IEventProcessor) -> IEventProcessor:
        """Register *processor*; pages are delivered in registration order."""
        self._processors.append(processor)
        return processor

    async def start(self) -> None:
        if self._running:
            raise ConsumerStateError(
                f"Consumer '{self._consumer_id}' is already running"
            )
        if not self._processors:
            raise ConsumerStateError(
                f"Consumer '{self._consumer_id}' has no processors to deliver to"
            )

        self._position = await self._checkpoint_store.get_position(self._consumer_id)
        self._wakeup.clear()
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Consumer %s started after position %s",
            self._consumer_id,
            self._position,
        )

    async def stop(self) -> None:
        if not self._running and self._task is None:
            return
        self._running = False
        self._wakeup.set()
        task, self._task = self._task, None
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Consumer %s stopped", self._consumer_id)

    async def _run(self) -> None:
        """Poll, deliver, checkpoint, wait; until stopped."""
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                logger.debug("Consumer %s cancelled", self._consumer_id)
                raise
            except Exception:
                logger.error(
                    "Consumer %s poll failed, retrying on next poll",
                    self._consumer_id,
                    exc_info=True,
                )
            if not self._running:
                break
            await self._wait_for_next_poll()

    async def _wait_for_next_poll(self) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._wakeup.wait(), timeout=self._poll_interval)

    async def poll_once(self) -> int:
        """Fetch and deliver one page. Returns the number of events checkpointed."""
        snapshots = await self._store.query_collection_group(
            self._events_collection,
            field="globalPosition",
            after=self._position,
            limit=self._batch_size,
        )
        if not snapshots:
            logger.debug("Consumer %s found no new events", self._consumer_id)
            return 0

        events = [recorded_event_from_snapshot(s) for s in snapshots]
        if not await self._deliver_with_retry(events):
            return 0

        last_position = events[-1].global_position
        await self._checkpoint_store.save_position(self._consumer_id, last_position)
        self._position = last_position
        logger.debug(
            "Consumer %s delivered %d event(s) up to position %d",
            self._consumer_id,
            len(events),
            last_position,
        )
        return len(events)

    async def _deliver_with_retry(self, events: list[RecordedEvent]) -> bool:
        """Deliver *events* to every processor, retrying the whole page.

        Returns ``False`` when retries are exhausted. Store outages are raised
        to the polling loop instead of consuming retries.
        """
        registry = get_hook_registry()
        attempt = 0
        while True:
            try:
                await registry.execute_all(
                    f"consumer.deliver.{self._consumer_id}",
                    {
                        "consumer.id": self._consumer_id,
                        "consumer.attempt": attempt,
                        "event_count": len(events),
                        "global_position.first": events[0].global_position,
                        "global_position.last": events[-1].global_position,
                    },
                    lambda: self._deliver(events),
                )
                return True
            except StoreUnavailableError:
                raise
            except Exception as exc:
                if attempt >= self._retry_policy.max_retries:
                    logger.error(
                        "Consumer %s gave up on events %d..%d after %d retries",
                        self._consumer_id,
                        events[0].global_position,
                        events[-1].global_position,
                        attempt,
                        exc_info=True,
                    )
                    await self._notify_error(exc, events)
                    return False
                attempt += 1
                delay = self._retry_policy.delay_for_attempt(attempt)
                logger.warning(
                    "Consumer %s delivery failed (%s), retry %d/%d in %.2fs",
                    self._consumer_id,
                    exc,
                    attempt,
                    self._retry_policy.max_retries,
                    delay,
                )
                await self._sleep(delay)

    async def _deliver(self, events: list[RecordedEvent]) -> None:
        for processor in self._processors:
            await processor.handle(events)

    async def _sleep(self, seconds: float) -> None:
        """Sleep before a retry; overridable in tests."""
        await asyncio.sleep(seconds)

    async def _notify_error(self, exc: Exception, events: list[RecordedEvent]) -> None:
        if self._on_error is None:
            return
        error: Exception = exc
        if not isinstance(exc, HandlerError):
            error = ProcessingError(
                f"Consumer '{self._consumer_id}' failed to deliver "
                f"{len(events)} event(s): {exc}"
            )
            error.__cause__ = exc
        try:
            await resolve(self._on_error(error, list(events)))
        except Exception:
            logger.error(
                "on_error hook of consumer %s raised",
                self._consumer_id,
                exc_info=True,
            )
