"""
Process-wide read-through cache for resolved identifiers.

Only successful resolutions are stored. A miss is never cached, so an
organization created after startup becomes visible on the next lookup.
The cache is advisory: losing it only costs an extra query.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class ResolvedIdCache(Generic[K, V]):
    """Lazily populated key -> id map with a get-or-resolve contract."""

    def __init__(self) -> None:
        self._values: dict[K, V] = {}

    async def get_or_resolve(
        self,
        key: K,
        resolver: Callable[[K], Awaitable[V | None]],
    ) -> V | None:
        cached = self._values.get(key)
        if cached is not None:
            return cached

        value = await resolver(key)
        if value is not None:
            self._values[key] = value
        return value

    def peek(self, key: K) -> V | None:
        return self._values.get(key)

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)
