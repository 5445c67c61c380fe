"""Helpers for deriving read-model keys from recorded events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

if TYPE_CHECKING:
    from esdoc_core.ports.event_store import RecordedEvent

EventSource = Literal["metadata", "data"]


def extract_from_event(
    event: RecordedEvent,
    field: str,
    source: EventSource = "metadata",
) -> Any:
    """Return *field* from the event's metadata (default) or data, or ``None``.

    Handy as a ``document_id`` for projections that aggregate many streams
    into one document, e.g. ``lambda e: extract_from_event(e, "clientId")``.
    """
    container: Any = event.metadata if source == "metadata" else event.data
    if isinstance(container, BaseModel):
        return getattr(container, field, None)
    return container.get(field)
