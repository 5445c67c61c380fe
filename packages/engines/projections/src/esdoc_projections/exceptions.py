"""Projections package exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from esdoc_core.primitives.exceptions import (
    EsdocError,
    HandlerError,
    PersistenceError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping


class ProjectionError(HandlerError):
    """Base for projection-related errors."""


class CheckpointError(PersistenceError):
    """Raised when a checkpoint document cannot be read back."""


class ProjectionHandlerError(ProjectionError):
    """Raised when evolving one or more read-model documents failed.

    ``failures`` maps each failed document id to the error its fold raised.
    Documents that folded cleanly in the same batch were still written.
    """

    def __init__(
        self,
        message: str,
        *,
        projection_name: str | None = None,
        failures: Mapping[str, Exception] | None = None,
    ) -> None:
        super().__init__(message)
        self.projection_name = projection_name
        self.failures = dict(failures or {})


class ConsumerStateError(EsdocError):
    """Raised when a consumer is started twice or has nothing to deliver to."""
