"""In-memory adapters for testing and prototyping."""

from __future__ import annotations

from .document_store import InMemoryDocumentStore, InMemoryTransaction

__all__ = ["InMemoryDocumentStore", "InMemoryTransaction"]
