"""Checkpoint store keeping consumer positions as documents."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from esdoc_core.instrumentation import get_hook_registry
from esdoc_core.ports.document_store import make_path
from esdoc_core.serialization import parse_position

from .exceptions import CheckpointError
from .ports import ICheckpointStore

if TYPE_CHECKING:
    from esdoc_core.ports.document_store import DocumentPath, IDocumentStore

logger = logging.getLogger("esdoc.checkpoint")

CHECKPOINTS_COLLECTION = "checkpoints"


class DocumentCheckpointStore(ICheckpointStore):
    """Stores ``checkpoints/{consumer_id} -> {position, updatedAt, consumerId}``.

    The position is written as a decimal string so it survives stores that
    hold numbers as doubles.
    """

    def __init__(
        self,
        store: IDocumentStore,
        *,
        collection: str = CHECKPOINTS_COLLECTION,
    ) -> None:
        self._store = store
        self._collection = collection

    def _path(self, consumer_id: str) -> DocumentPath:
        return make_path(self._collection, consumer_id)

    async def get_position(self, consumer_id: str) -> int | None:
        doc = await self._store.get(self._path(consumer_id))
        if doc is None or doc.get("position") is None:
            return None
        try:
            return parse_position(doc["position"])
        except ValueError as exc:
            raise CheckpointError(
                f"Corrupt checkpoint for consumer '{consumer_id}': "
                f"{doc['position']!r}"
            ) from exc

    async def save_position(self, consumer_id: str, position: int) -> None:
        registry = get_hook_registry()
        await registry.execute_all(
            f"checkpoint.save.{consumer_id}",
            {"consumer.id": consumer_id, "checkpoint.position": position},
            lambda: self._save_position_internal(consumer_id, position),
        )

    async def _save_position_internal(self, consumer_id: str, position: int) -> None:
        await self._store.set(
            self._path(consumer_id),
            {
                "position": str(position),
                "updatedAt": datetime.now(timezone.utc),
                "consumerId": consumer_id,
            },
        )
        logger.debug("Checkpoint for %s saved at %d", consumer_id, position)
