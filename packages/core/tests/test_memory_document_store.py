"""Tests for InMemoryDocumentStore."""

from __future__ import annotations

import pytest

from esdoc_core import IDocumentStore, IDocumentTransaction, InMemoryDocumentStore


@pytest.mark.asyncio
class TestInMemoryDocumentStore:
    """Transactions, range queries and collection-group queries."""

    @pytest.fixture
    def store(self) -> InMemoryDocumentStore:
        return InMemoryDocumentStore()

    async def test_satisfies_protocol(self, store: InMemoryDocumentStore) -> None:
        assert isinstance(store, IDocumentStore)

    async def test_set_get_delete(self, store: InMemoryDocumentStore) -> None:
        await store.set(("docs", "a"), {"value": 1})
        assert await store.get(("docs", "a")) == {"value": 1}

        await store.delete(("docs", "a"))
        assert await store.get(("docs", "a")) is None

    async def test_returned_documents_are_copies(
        self, store: InMemoryDocumentStore
    ) -> None:
        await store.set(("docs", "a"), {"items": [1]})
        doc = await store.get(("docs", "a"))
        assert doc is not None
        doc["items"].append(2)

        assert await store.get(("docs", "a")) == {"items": [1]}

    async def test_transaction_commits_all_writes(
        self, store: InMemoryDocumentStore
    ) -> None:
        async def work(tx: IDocumentTransaction) -> str:
            tx.set(("docs", "a"), {"value": 1})
            tx.set(("docs", "b"), {"value": 2})
            return "done"

        assert await store.run_transaction(work) == "done"
        assert await store.get(("docs", "b")) == {"value": 2}

    async def test_failed_transaction_applies_nothing(
        self, store: InMemoryDocumentStore
    ) -> None:
        async def work(tx: IDocumentTransaction) -> None:
            tx.set(("docs", "a"), {"value": 1})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.run_transaction(work)

        assert len(store) == 0

    async def test_merge_updates_only_given_fields(
        self, store: InMemoryDocumentStore
    ) -> None:
        await store.set(("docs", "a"), {"x": 1, "y": 2})

        async def work(tx: IDocumentTransaction) -> None:
            tx.set(("docs", "a"), {"y": 3}, merge=True)
            tx.set(("docs", "b"), {"y": 4}, merge=True)

        await store.run_transaction(work)

        assert await store.get(("docs", "a")) == {"x": 1, "y": 3}
        assert await store.get(("docs", "b")) == {"y": 4}

    async def test_transaction_delete(self, store: InMemoryDocumentStore) -> None:
        await store.set(("docs", "a"), {"x": 1})

        async def work(tx: IDocumentTransaction) -> None:
            assert await tx.get(("docs", "a")) == {"x": 1}
            tx.delete(("docs", "a"))

        await store.run_transaction(work)

        assert await store.get(("docs", "a")) is None

    async def test_list_children_range_and_limit(
        self, store: InMemoryDocumentStore
    ) -> None:
        for key in ("0003", "0001", "0002", "0004"):
            await store.set(("s", "x", "events", key), {"k": key})
        await store.set(("s", "y", "events", "0001"), {"k": "other"})

        children = await store.list_children(
            ("s", "x", "events"), start_key="0002", end_key="0004", limit=2
        )

        assert [c.id for c in children] == ["0002", "0003"]
        assert children[0].parent_id == "x"

    async def test_collection_group_query_orders_by_field(
        self, store: InMemoryDocumentStore
    ) -> None:
        await store.set(("s", "a", "events", "0"), {"pos": 2})
        await store.set(("s", "b", "events", "0"), {"pos": 0})
        await store.set(("s", "a", "events", "1"), {"pos": 3})
        await store.set(("s", "b", "events", "1"), {"pos": 1})
        await store.set(("other", "x"), {"pos": 5})

        everything = await store.query_collection_group("events", field="pos")
        after_one = await store.query_collection_group(
            "events", field="pos", after=1, limit=1
        )

        assert [s.data["pos"] for s in everything] == [0, 1, 2, 3]
        assert [s.path for s in after_one] == [("s", "a", "events", "0")]
