"""
Per-loader key cache holding pending and resolved futures
"""

import asyncio
from collections.abc import Hashable, Iterator
from typing import Any


class LoaderCache:
    """Maps load keys to the future that answers them.

    A cache belongs to exactly one loader, and a loader belongs to exactly one
    request, so entries never outlive the request that created them.
    """

    def __init__(self) -> None:
        self._futures: dict[Hashable, asyncio.Future[Any]] = {}

    def get(self, key: Hashable) -> asyncio.Future[Any] | None:
        return self._futures.get(key)

    def set(self, key: Hashable, future: asyncio.Future[Any]) -> None:
        self._futures[key] = future

    def clear(self, key: Hashable) -> None:
        self._futures.pop(key, None)

    def clear_all(self) -> None:
        self._futures.clear()

    def futures(self) -> Iterator[asyncio.Future[Any]]:
        return iter(list(self._futures.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._futures

    def __len__(self) -> int:
        return len(self._futures)
