"""Streams, consumer and projections running on MongoDocumentStore (mongomock)."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from esdoc_core import (
    STREAM_DOES_NOT_EXIST,
    DocumentEventStore,
    Event,
    ExpectedVersionConflictError,
    IDocumentStore,
    InMemoryDocumentStore,
    ReadStreamOptions,
    RecordedEvent,
)
from esdoc_persistence_mongo import MongoDocumentStore
from esdoc_projections import (
    EventStoreConsumer,
    ProjectionContext,
    ProjectionProcessor,
    single_stream_projection,
)


def evolve(doc: dict[str, Any], event: RecordedEvent) -> dict[str, Any] | None:
    if event.type == "ProductItemAdded":
        item = event.data["productItem"]
        return {
            "productItemsCount": doc["productItemsCount"] + item["quantity"],
            "totalAmount": doc["totalAmount"] + item["quantity"] * item["price"],
        }
    if event.type == "DiscountApplied":
        return {
            **doc,
            "totalAmount": doc["totalAmount"] * (100 - event.data["percent"]) // 100,
        }
    return None


def added(quantity: int, price: int) -> Event:
    return Event(
        type="ProductItemAdded",
        data={"productItem": {"productId": "p", "quantity": quantity, "price": price}},
    )


@pytest.mark.asyncio
async def test_append_read_and_conflicts(mongo_store: MongoDocumentStore) -> None:
    store = DocumentEventStore(mongo_store)

    first = await store.append_to_stream(
        "cart-1", [added(1, 1), added(2, 1)], STREAM_DOES_NOT_EXIST
    )
    await store.append_to_stream("cart-2", [added(3, 1)])
    second = await store.append_to_stream("cart-1", [added(4, 1)], 1)

    assert (first.next_expected_stream_version, first.created_new_stream) == (1, True)
    assert (second.next_expected_stream_version, second.created_new_stream) == (
        2,
        False,
    )

    with pytest.raises(ExpectedVersionConflictError):
        await store.append_to_stream("cart-1", [added(9, 9)], 1)

    read = await store.read_stream("cart-1")
    assert read.current_stream_version == 2
    assert [e.global_position for e in read.events] == [0, 1, 3]
    assert [e.stream_position for e in read.events] == [0, 1, 2]
    assert read.events[0].timestamp is not None
    assert read.events[0].timestamp.tzinfo is not None


@pytest.mark.asyncio
async def test_consumer_projects_read_models(mongo_store: MongoDocumentStore) -> None:
    store = DocumentEventStore(mongo_store)
    await store.append_to_stream(
        "cart-1",
        [added(10, 3), added(5, 2), Event(type="DiscountApplied", data={"percent": 10})],
    )
    projection = single_stream_projection(
        name="shopping_cart_details",
        can_handle=["ProductItemAdded", "DiscountApplied"],
        evolve=evolve,
        initial_state=lambda: {"productItemsCount": 0, "totalAmount": 0},
    )
    consumer = EventStoreConsumer(
        mongo_store,
        consumer_id="read-models",
        processors=[ProjectionProcessor(mongo_store, [projection])],
        polling_interval_seconds=0.01,
    )

    await consumer.start()
    try:
        await asyncio.wait_for(_until_checkpointed(consumer, 2), timeout=2.0)
    finally:
        await consumer.stop()

    doc = await mongo_store.get(("projections", "shopping_cart_details", "cart-1"))
    assert doc == {
        "productItemsCount": 15,
        "totalAmount": 36,
        "_metadata": {
            "streamId": "cart-1",
            "name": "shopping_cart_details",
            "schemaVersion": 1,
            "streamPosition": "2",
        },
    }
    checkpoint = await mongo_store.get(("checkpoints", "read-models"))
    assert checkpoint is not None
    assert checkpoint["position"] == "2"


async def _until_checkpointed(consumer: EventStoreConsumer, position: int) -> None:
    while consumer.position != position:
        await asyncio.sleep(0.005)


@pytest.fixture(params=["memory", "mongo"])
def document_store(
    request: pytest.FixtureRequest, mongo_store: MongoDocumentStore
) -> IDocumentStore:
    if request.param == "memory":
        return InMemoryDocumentStore()
    return mongo_store


@pytest.mark.asyncio
async def test_zero_max_count_reads_no_events(document_store: IDocumentStore) -> None:
    store = DocumentEventStore(document_store)
    await store.append_to_stream("cart-1", [added(1, 1), added(2, 1)])

    read = await store.read_stream("cart-1", ReadStreamOptions(max_count=0))

    assert read.events == []
    assert read.current_stream_version == 1


@pytest.mark.asyncio
async def test_projection_writes_updates_and_deletes_read_models(
    mongo_store: MongoDocumentStore,
) -> None:
    store = DocumentEventStore(mongo_store)
    projection = single_stream_projection(
        name="shopping_cart_details",
        can_handle=["ProductItemAdded", "DiscountApplied", "ShoppingCartDeleted"],
        evolve=evolve,
        initial_state=lambda: {"productItemsCount": 0, "totalAmount": 0},
    )
    context = ProjectionContext(store=mongo_store)
    path = ("projections", "shopping_cart_details", "cart-1")

    await store.append_to_stream("cart-1", [added(10, 3)])
    await projection.handle((await store.read_stream("cart-1")).events, context)
    created = await mongo_store.get(path)
    assert created is not None
    assert (created["productItemsCount"], created["totalAmount"]) == (10, 30)
    assert created["_metadata"]["streamPosition"] == "0"

    await store.append_to_stream("cart-1", [added(5, 2)])
    await projection.handle(
        (await store.read_stream("cart-1", ReadStreamOptions(from_version=1))).events,
        context,
    )
    updated = await mongo_store.get(path)
    assert updated is not None
    assert (updated["productItemsCount"], updated["totalAmount"]) == (15, 40)
    assert updated["_metadata"]["streamPosition"] == "1"

    await store.append_to_stream("cart-1", [Event(type="ShoppingCartDeleted")])
    await projection.handle(
        (await store.read_stream("cart-1", ReadStreamOptions(from_version=2))).events,
        context,
    )
    assert await mongo_store.get(path) is None
