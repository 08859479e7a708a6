"""
Request-scoped batch loader.

``BatchLoader.load(key)`` returns a future immediately. Keys requested while
a batch window is open are collected and handed to the bulk-fetch function in
one call; the results are then distributed back to the futures by key.

Dispatch ordering on asyncio
----------------------------
The first ``load()`` of a window creates the batch and schedules
``loop.call_soon(start_dispatch)``. That callback creates the dispatch task,
and the task's first step (the bulk fetch) runs on the next loop iteration.
So every callback or task step that was already ready when the window opened,
plus every task those steps schedule, runs before the fetch starts. Resolvers
started together by ``asyncio.gather`` (which is how graphql-core runs
sibling fields and list items) all land in the same batch as long as they
call ``load()`` before their first real suspension.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Generic, TypeVar

from ..logging import get_logger
from .cache import LoaderCache
from .errors import BatchLoadError, BatchLoadTimeoutError

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

BulkResult = Mapping[Any, Any] | Sequence[Any]
LoadFn = Callable[[list[Any]], Awaitable[BulkResult]]


@dataclass(eq=False)
class Batch(Generic[K, V]):
    """Keys collected during one window, with the futures waiting on them."""

    futures: dict[K, asyncio.Future[V]] = field(default_factory=dict)
    dispatched: bool = False
    cancelled: bool = False

    @property
    def keys(self) -> list[K]:
        return list(self.futures)

    def __len__(self) -> int:
        return len(self.futures)


class BatchLoader(Generic[K, V]):
    """Coalesce per-key lookups into bulk fetches.

    Args:
        load_fn: Coroutine function called once per batch with the distinct
            keys. It returns either a mapping of key to value or a sequence
            aligned with the keys it received. A value that is an exception
            instance fails only that key.
        name: Label used in logs and errors (defaults to ``load_fn.__name__``).
        key_fn: Normalizer applied to every key before it is cached or
            batched; raise ``InvalidLoadKeyError`` to reject a key.
        default_factory: Builds the value for keys missing from a mapping
            result. Defaults to ``None``.
        max_batch_size: Upper bound on keys per bulk fetch.
        timeout: Seconds allowed for one bulk fetch.
        cache: Keep futures after their batch completes. With ``cache=False``
            keys are still de-duplicated within a batch.
    """

    def __init__(
        self,
        load_fn: LoadFn,
        *,
        name: str | None = None,
        key_fn: Callable[[Any], K] | None = None,
        default_factory: Callable[[], V] | None = None,
        max_batch_size: int | None = None,
        timeout: float | None = None,
        cache: bool = True,
    ):
        if max_batch_size is not None and max_batch_size < 1:
            raise ValueError("max_batch_size must be a positive integer")
        self.name = name or getattr(load_fn, "__name__", "loader")
        self._load_fn = load_fn
        self._key_fn = key_fn
        self._default_factory = default_factory
        self._max_batch_size = max_batch_size
        self._timeout = timeout
        self._cache: LoaderCache | None = LoaderCache() if cache else None
        self._batch: Batch[K, V] | None = None
        self._open_batches: set[Batch[K, V]] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    def load(self, key: Any) -> asyncio.Future[V]:
        """Return the future answering ``key``, joining the open batch if needed.

        Every caller asking for the same key gets the same future, so cancelling
        it (directly or by cancelling a task awaiting it) is seen by all of them.
        A cancelled future is never handed out again: the key is fetched anew.
        """
        key = self._normalize(key)

        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None and not cached.cancelled():
                return cached

        batch = self._batch
        if batch is not None and not batch.dispatched:
            pending = batch.futures.get(key)
            if pending is not None and not pending.cancelled():
                return pending
            if pending is None and self._is_full(batch):
                batch = self._open_batch()
        else:
            batch = self._open_batch()

        future: asyncio.Future[V] = asyncio.get_running_loop().create_future()
        future.add_done_callback(partial(self._forget_cancelled, batch, key))
        batch.futures[key] = future
        if self._cache is not None:
            self._cache.set(key, future)
        return future

    def load_many(self, keys: Iterable[Any]) -> asyncio.Future[list[V]]:
        """Load several keys; the result lists values in the order of ``keys``."""
        return asyncio.gather(*[self.load(key) for key in keys])

    def prime(self, key: Any, value: V) -> BatchLoader[K, V]:
        """Seed the cache with a known value unless the key is already cached."""
        key = self._normalize(key)
        if self._cache is None:
            return self
        cached = self._cache.get(key)
        if cached is not None and not cached.cancelled():
            return self

        future: asyncio.Future[V] = asyncio.get_running_loop().create_future()
        if isinstance(value, BaseException):
            future.set_exception(value)
        else:
            future.set_result(value)
        self._cache.set(key, future)
        return self

    def clear(self, key: Any) -> BatchLoader[K, V]:
        if self._cache is not None:
            self._cache.clear(self._normalize(key))
        return self

    def clear_all(self) -> BatchLoader[K, V]:
        if self._cache is not None:
            self._cache.clear_all()
        return self

    def discard(self) -> None:
        """Cancel everything this loader still owes and drop its cache.

        Only futures and tasks created by this instance are touched.
        """
        for batch in list(self._open_batches):
            batch.cancelled = True
            for future in batch.futures.values():
                future.cancel()
        self._open_batches.clear()
        self._batch = None

        for task in list(self._tasks):
            task.cancel()

        if self._cache is not None:
            for future in self._cache.futures():
                future.cancel()
            self._cache.clear_all()

    # Scheduling

    def _normalize(self, key: Any) -> K:
        if self._key_fn is None:
            return key
        return self._key_fn(key)

    def _is_full(self, batch: Batch[K, V]) -> bool:
        return self._max_batch_size is not None and len(batch) >= self._max_batch_size

    def _open_batch(self) -> Batch[K, V]:
        batch: Batch[K, V] = Batch()
        self._batch = batch
        self._open_batches.add(batch)
        asyncio.get_running_loop().call_soon(self._start_dispatch, batch)
        return batch

    def _start_dispatch(self, batch: Batch[K, V]) -> None:
        if batch.cancelled:
            return
        task = asyncio.get_running_loop().create_task(self._dispatch(batch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, batch: Batch[K, V]) -> None:
        batch.dispatched = True
        if self._batch is batch:
            self._batch = None

        keys = batch.keys
        if not keys:
            # Every caller cancelled before the fetch started
            self._open_batches.discard(batch)
            return
        logger.debug("Dispatching batch", loader=self.name, size=len(keys))

        try:
            results = await self._fetch(keys)
            values = self._map_results(keys, results)
        except asyncio.CancelledError:
            for future in batch.futures.values():
                future.cancel()
            raise
        except Exception as e:
            self._reject(batch, e)
            return
        finally:
            self._open_batches.discard(batch)

        for key, value in zip(keys, values):
            future = batch.futures[key]
            if future.done():
                continue
            if isinstance(value, BaseException):
                self._evict(key, future)
                future.set_exception(value)
            else:
                future.set_result(value)

    async def _fetch(self, keys: list[K]) -> BulkResult:
        if self._timeout is None:
            return await self._load_fn(keys)
        try:
            return await asyncio.wait_for(self._load_fn(keys), self._timeout)
        except TimeoutError:
            raise BatchLoadTimeoutError(self.name, self._timeout, len(keys)) from None

    def _map_results(self, keys: list[K], results: BulkResult) -> list[Any]:
        if isinstance(results, Mapping):
            return [
                results[key] if key in results else self._missing()
                for key in keys
            ]

        values = list(results)
        if len(values) != len(keys):
            raise BatchLoadError(
                f"Loader '{self.name}' bulk fetch returned {len(values)} values "
                f"for {len(keys)} keys"
            )
        return values

    def _missing(self) -> Any:
        if self._default_factory is None:
            return None
        return self._default_factory()

    def _reject(self, batch: Batch[K, V], error: Exception) -> None:
        logger.warning(
            "Batch load failed",
            loader=self.name,
            size=len(batch),
            error=str(error),
            error_type=type(error).__name__,
        )
        for key, future in batch.futures.items():
            self._evict(key, future)
            if not future.done():
                future.set_exception(error)

    def _forget_cancelled(self, batch: Batch[K, V], key: K, future: asyncio.Future[V]) -> None:
        if not future.cancelled():
            return
        if not batch.dispatched and batch.futures.get(key) is future:
            del batch.futures[key]
        self._evict(key, future)

    def _evict(self, key: K, future: asyncio.Future[V]) -> None:
        # A newer future may already sit under this key after clear() + load().
        if self._cache is not None and self._cache.get(key) is future:
            self._cache.clear(key)
