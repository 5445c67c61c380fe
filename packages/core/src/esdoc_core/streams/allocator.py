"""GlobalPositionAllocator: reserves contiguous global-position blocks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..primitives.exceptions import InvalidArgumentError
from .keys import global_counter_path

if TYPE_CHECKING:
    from ..ports.document_store import IDocumentTransaction


class GlobalPositionAllocator:
    """Issues store-wide positions from a single counter document.

    The counter holds the next free position. Reservation happens inside the
    caller's transaction, so the block is only taken if that transaction
    commits. This counter is the one serialized hot spot of the write path.
    """

    async def reserve(self, transaction: IDocumentTransaction, count: int) -> int:
        """Reserve *count* positions and return the first one."""
        if count < 1:
            raise InvalidArgumentError(
                f"Cannot reserve {count} global positions; count must be >= 1"
            )
        path = global_counter_path()
        counter = await transaction.get(path)
        first = int(counter["value"]) if counter is not None else 0
        transaction.set(
            path,
            {"value": first + count, "updatedAt": datetime.now(timezone.utc)},
            merge=True,
        )
        return first
