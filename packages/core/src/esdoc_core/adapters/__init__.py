"""Adapters implementing the core ports."""

from __future__ import annotations

from .memory import InMemoryDocumentStore

__all__ = ["InMemoryDocumentStore"]
