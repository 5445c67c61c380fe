"""MongoDB persistence exceptions."""

from __future__ import annotations

from esdoc_core.primitives.exceptions import PersistenceError, StoreUnavailableError


class MongoPersistenceError(PersistenceError):
    """Base for MongoDB persistence errors."""


class MongoConnectionError(MongoPersistenceError, StoreUnavailableError):
    """Raised when MongoDB cannot be reached or times out."""


class MongoTransactionError(MongoPersistenceError):
    """Raised when a transaction keeps conflicting after all retries."""
