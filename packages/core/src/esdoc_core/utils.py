"""Common utility functions and helpers."""

from __future__ import annotations

import inspect
from typing import Any


def default_dict_factory() -> dict[str, Any]:
    """Factory for mutable default dict in dataclass fields."""
    return {}


async def resolve(value: Any) -> Any:
    """Await *value* if a sync-or-async callable handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value
