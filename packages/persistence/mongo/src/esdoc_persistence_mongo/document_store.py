"""MongoDocumentStore: ``IDocumentStore`` over MongoDB collections.

A document at path ``(s1, ..., sN-1, sN)`` (two or more segments) is stored
in the MongoDB collection named by its second-to-last segment ``sN-1`` as::

    {
        "_id": "s1/.../sN-1/sN",    # full path
        "_parent": "s1/.../sN-1",   # path of its collection
        "_key": "sN",               # document id, used for range queries
        ...fields
    }

so every collection sharing an id lands in one MongoDB collection, which makes
collection-group queries a plain ``find``. Read models at
``projections/{name}/{id}`` land in the MongoDB collection ``{name}``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pymongo import ASCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from esdoc_core.ports.document_store import (
    DocumentPath,
    DocumentSnapshot,
    IDocumentStore,
    IDocumentTransaction,
    format_path,
    parse_path,
)
from esdoc_core.streams.keys import EVENTS_COLLECTION, STREAMS_COLLECTION

from .exceptions import (
    MongoConnectionError,
    MongoPersistenceError,
    MongoTransactionError,
)
from .session_utils import session_in_transaction

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from motor.motor_asyncio import (
        AsyncIOMotorClientSession,
        AsyncIOMotorCollection,
    )

    from .connection import MongoConnectionManager

T = TypeVar("T")

logger = logging.getLogger("esdoc.mongo.document_store")

_INTERNAL_FIELDS = ("_id", "_parent", "_key")
_DELETED = object()


def _session_kwargs(session: AsyncIOMotorClientSession | None) -> dict[str, Any]:
    return {"session": session} if session is not None else {}


def _from_mongo(doc: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in _INTERNAL_FIELDS}


def _internal_fields(path: DocumentPath) -> dict[str, Any]:
    return {
        "_id": format_path(path),
        "_parent": format_path(path[:-1]),
        "_key": path[-1],
    }


def _map_error(exc: PyMongoError) -> MongoPersistenceError:
    if isinstance(exc, ConnectionFailure):
        return MongoConnectionError(str(exc))
    return MongoPersistenceError(str(exc))


class MongoDocumentTransaction(IDocumentTransaction):
    """Reads through the session, buffers writes until commit."""

    def __init__(
        self,
        store: MongoDocumentStore,
        session: AsyncIOMotorClientSession | None,
    ) -> None:
        self._store = store
        self._session = session
        self._writes: list[tuple[DocumentPath, Any, bool]] = []

    async def get(self, path: DocumentPath) -> dict[str, Any] | None:
        return await self._store._find_one(path, self._session)

    def set(
        self,
        path: DocumentPath,
        data: dict[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        self._writes.append((tuple(path), dict(data), merge))

    def delete(self, path: DocumentPath) -> None:
        self._writes.append((tuple(path), _DELETED, False))

    async def _commit(self) -> None:
        for path, data, merge in self._writes:
            if data is _DELETED:
                await self._store._delete(path, self._session)
            elif merge:
                await self._store._merge(path, data, self._session)
            else:
                await self._store._replace(path, data, self._session)
        self._writes.clear()


class MongoDocumentStore(IDocumentStore):
    """MongoDB implementation of ``IDocumentStore``.

    With ``use_transactions`` (requires a replica set) each
    ``run_transaction`` is a session transaction, rerun on
    ``TransientTransactionError`` up to ``max_transaction_retries`` times.
    Without it, transactions are serialized by a process-local lock and
    their writes are applied one by one, which suits a single process
    against a standalone server or mongomock.
    """

    def __init__(
        self,
        connection: MongoConnectionManager,
        *,
        use_transactions: bool = True,
        max_transaction_retries: int = 5,
    ) -> None:
        self._connection = connection
        self._use_transactions = use_transactions
        self._max_transaction_retries = max_transaction_retries
        self._lock = asyncio.Lock()

    def _collection(self, collection_id: str) -> AsyncIOMotorCollection[Any]:
        return self._connection.database()[collection_id]

    def _collection_for(self, path: DocumentPath) -> AsyncIOMotorCollection[Any]:
        if len(path) < 2:
            raise MongoPersistenceError(
                f"Not a document path: {format_path(path)!r}"
            )
        return self._collection(path[-2])

    # ── Transactions ─────────────────────────────────────────────

    async def run_transaction(
        self,
        callback: Callable[[IDocumentTransaction], Awaitable[T]],
    ) -> T:
        if not self._use_transactions:
            async with self._lock:
                transaction = MongoDocumentTransaction(self, None)
                try:
                    result = await callback(transaction)
                    await transaction._commit()
                except PyMongoError as e:
                    raise _map_error(e) from e
                return result

        try:
            session = await self._connection.client.start_session()
        except PyMongoError as e:
            raise _map_error(e) from e
        async with session:
            return await self._run_in_session(session, callback)

    async def _run_in_session(
        self,
        session: AsyncIOMotorClientSession,
        callback: Callable[[IDocumentTransaction], Awaitable[T]],
    ) -> T:
        attempt = 0
        while True:
            attempt += 1
            session.start_transaction()
            try:
                transaction = MongoDocumentTransaction(self, session)
                result = await callback(transaction)
                await transaction._commit()
                await session.commit_transaction()
                return result
            except PyMongoError as e:
                await self._abort(session)
                if (
                    e.has_error_label("TransientTransactionError")
                    and attempt < self._max_transaction_retries
                ):
                    logger.warning(
                        "Transaction conflict, retrying (%d/%d): %s",
                        attempt,
                        self._max_transaction_retries,
                        e,
                    )
                    continue
                if e.has_error_label("TransientTransactionError"):
                    raise MongoTransactionError(
                        f"Transaction still conflicting after {attempt} attempts"
                    ) from e
                raise _map_error(e) from e
            except BaseException:
                await self._abort(session)
                raise

    async def _abort(self, session: AsyncIOMotorClientSession) -> None:
        if not session_in_transaction(session):
            return
        try:
            await session.abort_transaction()
        except PyMongoError:
            logger.warning("Failed to abort transaction", exc_info=True)

    # ── Single-document operations ───────────────────────────────

    async def get(self, path: DocumentPath) -> dict[str, Any] | None:
        try:
            return await self._find_one(path, None)
        except PyMongoError as e:
            raise _map_error(e) from e

    async def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        try:
            await self._replace(tuple(path), data, None)
        except PyMongoError as e:
            raise _map_error(e) from e

    async def delete(self, path: DocumentPath) -> None:
        try:
            await self._delete(tuple(path), None)
        except PyMongoError as e:
            raise _map_error(e) from e

    # Raw helpers let PyMongoError through so transaction error labels survive.

    async def _find_one(
        self,
        path: DocumentPath,
        session: AsyncIOMotorClientSession | None,
    ) -> dict[str, Any] | None:
        doc = await self._collection_for(path).find_one(
            {"_id": format_path(path)}, **_session_kwargs(session)
        )
        return _from_mongo(doc) if doc is not None else None

    async def _replace(
        self,
        path: DocumentPath,
        data: dict[str, Any],
        session: AsyncIOMotorClientSession | None,
    ) -> None:
        internal = _internal_fields(path)
        await self._collection_for(path).replace_one(
            {"_id": internal["_id"]},
            {**_from_mongo(data), **internal},
            upsert=True,
            **_session_kwargs(session),
        )

    async def _merge(
        self,
        path: DocumentPath,
        data: dict[str, Any],
        session: AsyncIOMotorClientSession | None,
    ) -> None:
        internal = _internal_fields(path)
        doc_id = internal.pop("_id")
        await self._collection_for(path).update_one(
            {"_id": doc_id},
            {"$set": {**_from_mongo(data), **internal}},
            upsert=True,
            **_session_kwargs(session),
        )

    async def _delete(
        self,
        path: DocumentPath,
        session: AsyncIOMotorClientSession | None,
    ) -> None:
        await self._collection_for(path).delete_one(
            {"_id": format_path(path)}, **_session_kwargs(session)
        )

    # ── Queries ──────────────────────────────────────────────────

    async def list_children(
        self,
        collection_path: DocumentPath,
        *,
        start_key: str | None = None,
        end_key: str | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        if limit == 0:
            return []
        query: dict[str, Any] = {"_parent": format_path(collection_path)}
        key_range: dict[str, str] = {}
        if start_key is not None:
            key_range["$gte"] = start_key
        if end_key is not None:
            key_range["$lte"] = end_key
        if key_range:
            query["_key"] = key_range

        cursor = (
            self._collection(collection_path[-1]).find(query).sort("_key", ASCENDING)
        )
        if limit is not None:
            cursor = cursor.limit(limit)
        return await self._snapshots(cursor)

    async def query_collection_group(
        self,
        collection_id: str,
        *,
        field: str,
        after: int | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        # MongoDB reads a limit of 0 as "no limit".
        if limit == 0:
            return []
        condition: dict[str, Any] = (
            {"$gt": after} if after is not None else {"$exists": True}
        )
        cursor = (
            self._collection(collection_id)
            .find({field: condition})
            .sort(field, ASCENDING)
        )
        if limit is not None:
            cursor = cursor.limit(limit)
        return await self._snapshots(cursor)

    async def _snapshots(self, cursor: Any) -> list[DocumentSnapshot]:
        try:
            return [
                DocumentSnapshot(path=parse_path(doc["_id"]), data=_from_mongo(doc))
                async for doc in cursor
            ]
        except PyMongoError as e:
            raise _map_error(e) from e

    async def ensure_indexes(self) -> list[str]:
        """Create the indexes range reads and catch-up queries rely on.

        ``(_parent, _key)`` on the events and streams collections and
        ``globalPosition`` on the events collection. Idempotent.
        """
        names: list[str] = []
        try:
            for collection_id in (EVENTS_COLLECTION, STREAMS_COLLECTION):
                names.append(
                    await self._collection(collection_id).create_index(
                        [("_parent", ASCENDING), ("_key", ASCENDING)],
                        name="parent_key",
                    )
                )
            names.append(
                await self._collection(EVENTS_COLLECTION).create_index(
                    [("globalPosition", ASCENDING)],
                    name="global_position",
                )
            )
        except PyMongoError as e:
            raise _map_error(e) from e
        logger.info("Ensured MongoDB indexes: %s", ", ".join(names))
        return names
