"""Primitives: exceptions."""

from __future__ import annotations

from .exceptions import (
    ConcurrencyError,
    EsdocError,
    ExpectedVersionConflictError,
    HandlerError,
    InfrastructureError,
    InvalidArgumentError,
    PersistenceError,
    ProcessingError,
    StoreUnavailableError,
)

__all__ = [
    "ConcurrencyError",
    "EsdocError",
    "ExpectedVersionConflictError",
    "HandlerError",
    "InfrastructureError",
    "InvalidArgumentError",
    "PersistenceError",
    "ProcessingError",
    "StoreUnavailableError",
]
