"""Persistence backends for prospects.

Provides the backend protocol and a resolve() helper that transparently
handles both sync (local/demo) and async (remote) backend returns.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, TypeVar

T = TypeVar("T")


async def resolve(value: T | Awaitable[T]) -> T:
    """Await a value if it is awaitable, otherwise return it directly.

    This allows callers to drive either backend uniformly:
        saved = await resolve(backend.update(entity_id, patch))

    The local backend returns plain values; the remote backend returns
    coroutines.
    """
    if inspect.isawaitable(value):
        return await value  # type: ignore[return-value]
    return value  # type: ignore[return-value]
