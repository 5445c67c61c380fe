"""IDocumentStore protocol: the transactional document store the engine runs on.

Documents are addressed by paths of alternating collection ids and document
ids, e.g. ``("streams", "cart-1", "events", "0000000003")``. A document's
collection path is every segment but the last; its id is the last segment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from ..primitives.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

DocumentPath = tuple[str, ...]

PATH_SEPARATOR = "/"


def make_path(*segments: str) -> DocumentPath:
    """Build a document or collection path, rejecting unusable segments."""
    for segment in segments:
        if not isinstance(segment, str) or not segment:
            raise InvalidArgumentError(
                f"Path segments must be non-empty strings, got {segment!r}"
            )
        if PATH_SEPARATOR in segment:
            raise InvalidArgumentError(
                f"Path segment {segment!r} must not contain {PATH_SEPARATOR!r}"
            )
    return tuple(segments)


def format_path(path: DocumentPath) -> str:
    return PATH_SEPARATOR.join(path)


def parse_path(value: str) -> DocumentPath:
    return tuple(value.split(PATH_SEPARATOR))


@dataclass(frozen=True)
class DocumentSnapshot:
    """A document read from the store together with the path it lives at."""

    path: DocumentPath
    data: dict[str, Any]

    @property
    def id(self) -> str:
        return self.path[-1]

    @property
    def collection_path(self) -> DocumentPath:
        return self.path[:-1]

    @property
    def parent_id(self) -> str | None:
        """Id of the document owning this document's collection, if any."""
        if len(self.path) < 3:
            return None
        return self.path[-3]


@runtime_checkable
class IDocumentTransaction(Protocol):
    """Reads and buffered writes inside one atomic unit.

    Reads observe committed state; writes become visible only when the
    transaction callback returns without raising.
    """

    async def get(self, path: DocumentPath) -> dict[str, Any] | None:
        """Return the document at *path* or ``None`` if it does not exist."""
        ...

    def set(
        self,
        path: DocumentPath,
        data: dict[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        """Replace (or, with *merge*, update the given fields of) a document."""
        ...

    def delete(self, path: DocumentPath) -> None:
        """Delete the document at *path*; deleting a missing document is a no-op."""
        ...


@runtime_checkable
class IDocumentStore(Protocol):
    """Protocol for the transactional document store.

    Implementations must offer atomic multi-document transactions, ordered
    range queries over the keys of a collection, collection-group queries
    ordered by a numeric field, and full-replace / delete of single documents.
    Transport failures must surface as ``StoreUnavailableError``.
    """

    async def run_transaction(
        self,
        callback: Callable[[IDocumentTransaction], Awaitable[T]],
    ) -> T:
        """Run *callback* inside one atomic unit and return its result.

        If the callback raises, none of its writes are applied and the
        exception propagates. Implementations may rerun the callback when the
        underlying store reports a transient write conflict.
        """
        ...

    async def get(self, path: DocumentPath) -> dict[str, Any] | None:
        """Return the document at *path* or ``None``."""
        ...

    async def set(self, path: DocumentPath, data: dict[str, Any]) -> None:
        """Replace the whole document at *path*."""
        ...

    async def delete(self, path: DocumentPath) -> None:
        """Delete the document at *path*."""
        ...

    async def list_children(
        self,
        collection_path: DocumentPath,
        *,
        start_key: str | None = None,
        end_key: str | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """Return documents of a collection ordered by id.

        ``start_key`` and ``end_key`` are inclusive lexicographic bounds.
        """
        ...

    async def query_collection_group(
        self,
        collection_id: str,
        *,
        field: str,
        after: int | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """Query every collection named *collection_id*, whatever its parent.

        Returns documents whose numeric *field* is strictly greater than
        *after* (all documents when ``None``), ordered by that field.
        """
        ...
