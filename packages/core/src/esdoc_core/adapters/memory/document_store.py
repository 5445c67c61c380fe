"""InMemoryDocumentStore: dict-backed transactional document store for tests."""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING, Any, TypeVar

from ...ports.document_store import (
    DocumentPath,
    DocumentSnapshot,
    IDocumentStore,
    IDocumentTransaction,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

_DELETED = object()


class InMemoryTransaction(IDocumentTransaction):
    """Buffers writes until the owning store commits them."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self._writes: list[tuple[DocumentPath, Any, bool]] = []

    async def get(self, path: DocumentPath) -> dict[str, Any] | None:
        return self._store._read(path)

    def set(
        self,
        path: DocumentPath,
        data: dict[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        self._writes.append((tuple(path), copy.deepcopy(data), merge))

    def delete(self, path: DocumentPath) -> None:
        self._writes.append((tuple(path), _DELETED, False))

    def _apply(self) -> None:
        for path, data, merge in self._writes:
            if data is _DELETED:
                self._store._documents.pop(path, None)
            elif merge and path in self._store._documents:
                self._store._documents[path].update(data)
            else:
                self._store._documents[path] = data
        self._writes.clear()


class InMemoryDocumentStore(IDocumentStore):
    """In-memory implementation of ``IDocumentStore``.

    Transactions are serialized with a single lock, so every unit sees the
    state left by the previous one. Documents are deep-copied on the way in
    and out; callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._documents: dict[DocumentPath, dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def run_transaction(
        self,
        callback: Callable[[IDocumentTransaction], Awaitable[T]],
    ) -> T:
        async with self._lock:
            transaction = InMemoryTransaction(self)
            result = await callback(transaction)
            transaction._apply()
            return result

    async def get(self, path: DocumentPath) -> dict[str, Any] | None:
        return self._read(path)

    async def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        self._documents[tuple(path)] = copy.deepcopy(data)

    async def delete(self, path: DocumentPath) -> None:
        self._documents.pop(tuple(path), None)

    async def list_children(
        self,
        collection_path: DocumentPath,
        *,
        start_key: str | None = None,
        end_key: str | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        depth = len(collection_path) + 1
        keys = sorted(
            path[-1]
            for path in self._documents
            if len(path) == depth and path[:-1] == tuple(collection_path)
        )
        if start_key is not None:
            keys = [k for k in keys if k >= start_key]
        if end_key is not None:
            keys = [k for k in keys if k <= end_key]
        if limit is not None:
            keys = keys[:limit]
        return [self._snapshot((*collection_path, key)) for key in keys]

    async def query_collection_group(
        self,
        collection_id: str,
        *,
        field: str,
        after: int | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        matches = [
            (doc[field], path)
            for path, doc in self._documents.items()
            if len(path) >= 2
            and path[-2] == collection_id
            and isinstance(doc.get(field), int)
            and (after is None or doc[field] > after)
        ]
        matches.sort(key=lambda item: item[0])
        if limit is not None:
            matches = matches[:limit]
        return [self._snapshot(path) for _, path in matches]

    def _read(self, path: DocumentPath) -> dict[str, Any] | None:
        doc = self._documents.get(tuple(path))
        return copy.deepcopy(doc) if doc is not None else None

    def _snapshot(self, path: DocumentPath) -> DocumentSnapshot:
        return DocumentSnapshot(path=path, data=copy.deepcopy(self._documents[path]))

    # ── Test helpers ─────────────────────────────────────────────

    def clear(self) -> None:
        self._documents.clear()

    def __len__(self) -> int:
        return len(self._documents)
