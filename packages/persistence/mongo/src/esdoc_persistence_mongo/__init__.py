"""MongoDB adapter: ``IDocumentStore`` on Motor."""

from __future__ import annotations

from .connection import MongoConnectionManager
from .document_store import MongoDocumentStore, MongoDocumentTransaction
from .exceptions import (
    MongoConnectionError,
    MongoPersistenceError,
    MongoTransactionError,
)

__all__ = [
    "MongoConnectionError",
    "MongoConnectionManager",
    "MongoDocumentStore",
    "MongoDocumentTransaction",
    "MongoPersistenceError",
    "MongoTransactionError",
]
