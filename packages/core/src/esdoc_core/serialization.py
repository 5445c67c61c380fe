"""Python values <-> document-store-safe values.

Document stores in this family have no notion of an unset field, so ``None``
entries are dropped from mappings. Read models are also read by clients that
hold numbers as doubles, so by default integers that a double cannot represent
exactly are written as decimal strings. Event payloads keep their integers.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, cast
from uuid import UUID

from pydantic import BaseModel

MAX_SAFE_INTEGER = 2**53 - 1


def to_document_value(value: Any, *, big_ints_as_strings: bool = True) -> Any:
    """Convert a Python value to a document-store-safe value."""

    def convert(v: Any) -> Any:
        return to_document_value(v, big_ints_as_strings=big_ints_as_strings)

    if isinstance(value, BaseModel):
        return convert(value.model_dump(mode="json"))
    if isinstance(value, bool):
        return value
    if isinstance(value, enum.Enum):
        return convert(value.value)
    if isinstance(value, int):
        if big_ints_as_strings and abs(value) > MAX_SAFE_INTEGER:
            return str(value)
        return value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): convert(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [convert(v) for v in value]
    return value


def to_document(
    value: Mapping[str, Any] | BaseModel, *, big_ints_as_strings: bool = True
) -> dict[str, Any]:
    """Serialize a mapping or pydantic model into a document body."""
    return cast(
        "dict[str, Any]",
        to_document_value(value, big_ints_as_strings=big_ints_as_strings),
    )


def parse_position(value: Any) -> int:
    """Read a position stored as an int or as a decimal string."""
    if isinstance(value, bool):
        raise ValueError(f"Not a position: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    raise ValueError(f"Not a position: {value!r}")
