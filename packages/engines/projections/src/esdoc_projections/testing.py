"""Given/when/then helpers for testing projections against an in-memory store.

Example::

    spec = ProjectionSpec(cart_summary)

    await (
        spec.given("cart-1", [ProductItemAdded(...)])
        .when([DiscountApplied(...)])
        .then(lambda ctx: expect_read_model(ctx.store, "cart_summary", "cart-1")
              .to_have({"totalAmount": 36}))
    )
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from esdoc_core.adapters.memory import InMemoryDocumentStore
from esdoc_core.streams.store import DocumentEventStore
from esdoc_core.utils import resolve

from .projection import (
    METADATA_FIELD,
    PROJECTIONS_COLLECTION,
    ProjectionContext,
    handle_projections,
    read_model_path,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from esdoc_core.ports.document_store import IDocumentStore
    from esdoc_core.ports.event_store import Event

    from .ports import IProjection


@dataclass(frozen=True)
class ProjectionAssertContext:
    store: IDocumentStore
    stream_name: str


class ProjectionSpec:
    """Appends events to a fresh in-memory store and runs *projections* over them."""

    def __init__(
        self,
        *projections: IProjection,
        store_factory: Callable[[], IDocumentStore] = InMemoryDocumentStore,
        collection: str = PROJECTIONS_COLLECTION,
    ) -> None:
        self.projections = list(projections)
        self._store_factory = store_factory
        self._collection = collection

    def given(self, stream_name: str, events: Sequence[Event] = ()) -> _Given:
        return _Given(self, stream_name, list(events))

    async def _run(self, stream_name: str, events: list[Event]) -> IDocumentStore:
        store = self._store_factory()
        if events:
            event_store = DocumentEventStore(store)
            await event_store.append_to_stream(stream_name, events)
            recorded = (await event_store.read_stream(stream_name)).events
            await handle_projections(
                recorded,
                self.projections,
                ProjectionContext(store=store, collection=self._collection),
            )
        return store


class _Given:
    def __init__(self, spec: ProjectionSpec, stream_name: str, events: list[Event]):
        self._spec = spec
        self._stream_name = stream_name
        self._events = events

    def when(self, events: Sequence[Event]) -> _When:
        return _When(self._spec, self._stream_name, [*self._events, *events])


class _When:
    def __init__(self, spec: ProjectionSpec, stream_name: str, events: list[Event]):
        self._spec = spec
        self._stream_name = stream_name
        self._events = events

    async def then(
        self,
        assertion: Callable[[ProjectionAssertContext], Any],
        message: str | None = None,
    ) -> None:
        store = await self._spec._run(self._stream_name, self._events)
        context = ProjectionAssertContext(store=store, stream_name=self._stream_name)
        succeeded = await resolve(assertion(context))
        if succeeded is False:
            raise AssertionError(
                message or "Projection expectations didn't match the read models"
            )

    async def then_throws(
        self,
        error_type: type[BaseException] = Exception,
        condition: Callable[[Any], bool] | None = None,
    ) -> None:
        try:
            await self._spec._run(self._stream_name, self._events)
        except error_type as exc:
            if condition is not None and not condition(exc):
                raise AssertionError(
                    f"Error didn't match the error condition: {exc!r}"
                ) from exc
            return
        raise AssertionError("Handler did not fail as expected")


def _is_subset(expected: Any, actual: Any) -> bool:
    if isinstance(expected, Mapping):
        return isinstance(actual, Mapping) and all(
            key in actual and _is_subset(value, actual[key])
            for key, value in expected.items()
        )
    if isinstance(expected, Sequence) and not isinstance(expected, str):
        return (
            isinstance(actual, Sequence)
            and not isinstance(actual, str)
            and len(expected) == len(actual)
            and all(_is_subset(e, a) for e, a in zip(expected, actual))
        )
    return bool(expected == actual)


class ReadModelAssertion:
    """Assertions about one read-model document."""

    def __init__(
        self,
        store: IDocumentStore,
        projection_name: str,
        document_id: str,
        collection: str = PROJECTIONS_COLLECTION,
    ) -> None:
        self._store = store
        self._path = read_model_path(projection_name, document_id, collection)

    async def _load(self) -> dict[str, Any] | None:
        return await self._store.get(self._path)

    async def _require(self) -> dict[str, Any]:
        document = await self._load()
        if document is None:
            raise AssertionError(f"Read model {'/'.join(self._path)} does not exist")
        return document

    async def to_exist(self) -> None:
        await self._require()

    async def not_to_exist(self) -> None:
        document = await self._load()
        if document is not None:
            raise AssertionError(
                f"Read model {'/'.join(self._path)} exists: {document!r}"
            )

    async def to_have(self, expected: Mapping[str, Any]) -> None:
        """The document contains *expected* (nested mappings compared as subsets)."""
        document = await self._require()
        if not _is_subset(expected, document):
            raise AssertionError(f"Expected {document!r} to contain {expected!r}")

    async def to_deep_equal(self, expected: Mapping[str, Any]) -> None:
        """The document, without ``_metadata``, equals *expected*."""
        document = await self._require()
        document.pop(METADATA_FIELD, None)
        if document != dict(expected):
            raise AssertionError(f"Expected {document!r} to equal {expected!r}")

    async def to_match(self, predicate: Callable[[dict[str, Any]], bool]) -> None:
        document = await self._require()
        if not predicate(document):
            raise AssertionError(
                f"Read model {document!r} did not match the predicate"
            )


def expect_read_model(
    store: IDocumentStore,
    projection_name: str,
    document_id: str,
    *,
    collection: str = PROJECTIONS_COLLECTION,
) -> ReadModelAssertion:
    return ReadModelAssertion(store, projection_name, document_id, collection)
