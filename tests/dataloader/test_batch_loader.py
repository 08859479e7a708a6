"""
Unit tests for BatchLoader scheduling, caching and failure handling
"""

import asyncio
import uuid

import pytest

from socialgraph.dataloader import (
    BatchLoader,
    BatchLoadError,
    BatchLoadTimeoutError,
    InvalidLoadKeyError,
    uuid_key,
)


class RecordingFetch:
    """Bulk-fetch double that records every batch of keys it receives."""

    def __init__(self, result=None, delay: float = 0.0):
        self.calls: list[list] = []
        self._result = result
        self._delay = delay

    async def __call__(self, keys):
        self.calls.append(list(keys))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._result is not None:
            return self._result(keys)
        return [f"value-{key}" for key in keys]


class TestBatching:
    """Keys requested in the same window share one bulk fetch."""

    @pytest.mark.asyncio
    async def test_loads_in_same_tick_share_one_fetch(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch, name="numbers")

        results = await asyncio.gather(loader.load(1), loader.load(2), loader.load(3))

        assert results == ["value-1", "value-2", "value-3"]
        assert fetch.calls == [[1, 2, 3]]

    @pytest.mark.asyncio
    async def test_resolvers_started_together_share_one_fetch(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        async def resolve(key):
            return await loader.load(key)

        results = await asyncio.gather(*(resolve(key) for key in range(4)))

        assert results == [f"value-{key}" for key in range(4)]
        assert fetch.calls == [[0, 1, 2, 3]]

    @pytest.mark.asyncio
    async def test_second_level_loads_batch_together(self):
        """Children requested after their parents resolve form one batch per level."""
        parents = RecordingFetch(result=lambda keys: [key * 10 for key in keys])
        children = RecordingFetch()
        parent_loader = BatchLoader(parents)
        child_loader = BatchLoader(children)

        async def resolve(key):
            parent = await parent_loader.load(key)
            return await child_loader.load(parent)

        results = await asyncio.gather(*(resolve(key) for key in (1, 2, 3)))

        assert results == ["value-10", "value-20", "value-30"]
        assert parents.calls == [[1, 2, 3]]
        assert children.calls == [[10, 20, 30]]

    @pytest.mark.asyncio
    async def test_duplicate_keys_share_a_future(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        first = loader.load("a")
        second = loader.load("a")

        assert first is second
        assert await first == "value-a"
        assert fetch.calls == [["a"]]

    @pytest.mark.asyncio
    async def test_load_many_preserves_request_order(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        results = await loader.load_many([3, 1, 3, 2])

        assert results == ["value-3", "value-1", "value-3", "value-2"]
        assert fetch.calls == [[3, 1, 2]]

    @pytest.mark.asyncio
    async def test_max_batch_size_splits_window(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch, max_batch_size=2)

        results = await loader.load_many([1, 2, 3, 4, 5])

        assert results == [f"value-{key}" for key in (1, 2, 3, 4, 5)]
        assert fetch.calls == [[1, 2], [3, 4], [5]]

    def test_max_batch_size_must_be_positive(self):
        with pytest.raises(ValueError):
            BatchLoader(RecordingFetch(), max_batch_size=0)


class TestResultMapping:
    """Bulk results are mapped back onto the requested keys."""

    @pytest.mark.asyncio
    async def test_mapping_result_fills_missing_keys_with_none(self):
        fetch = RecordingFetch(result=lambda keys: {key: key.upper() for key in keys if key != "b"})
        loader = BatchLoader(fetch)

        results = await loader.load_many(["a", "b", "c"])

        assert results == ["A", None, "C"]

    @pytest.mark.asyncio
    async def test_default_factory_builds_missing_values(self):
        fetch = RecordingFetch(result=lambda keys: {})
        loader = BatchLoader(fetch, default_factory=list)

        first, second = await loader.load_many([1, 2])

        assert first == [] and second == []
        assert first is not second

    @pytest.mark.asyncio
    async def test_sequence_length_mismatch_fails_whole_batch(self):
        fetch = RecordingFetch(result=lambda keys: keys[:-1])
        loader = BatchLoader(fetch, name="short")

        results = await asyncio.gather(
            loader.load(1), loader.load(2), return_exceptions=True
        )

        assert all(isinstance(result, BatchLoadError) for result in results)
        assert "short" in str(results[0])

    @pytest.mark.asyncio
    async def test_exception_value_fails_only_its_key(self):
        fetch = RecordingFetch(
            result=lambda keys: [ValueError("bad key") if key == 2 else key for key in keys]
        )
        loader = BatchLoader(fetch)

        results = await asyncio.gather(
            loader.load(1), loader.load(2), loader.load(3), return_exceptions=True
        )

        assert results[0] == 1
        assert isinstance(results[1], ValueError)
        assert results[2] == 3

        # The failed key is not cached; the successful ones are
        await asyncio.gather(loader.load(2), return_exceptions=True)
        await loader.load(1)
        assert fetch.calls == [[1, 2, 3], [2]]


class TestFailures:
    """Whole-batch failures reach every waiting caller."""

    @pytest.mark.asyncio
    async def test_fetch_error_rejects_every_key_and_is_not_cached(self):
        attempts = 0

        async def flaky(keys):
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise ConnectionError("database unavailable")
            return [key * 2 for key in keys]

        loader = BatchLoader(flaky)

        results = await asyncio.gather(loader.load(1), loader.load(2), return_exceptions=True)
        assert all(isinstance(result, ConnectionError) for result in results)
        assert results[0] is results[1]

        assert await loader.load_many([1, 2]) == [2, 4]
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_timeout_rejects_batch(self):
        fetch = RecordingFetch(delay=1.0)
        loader = BatchLoader(fetch, name="slow", timeout=0.01)

        with pytest.raises(BatchLoadTimeoutError) as exc_info:
            await loader.load(1)

        error = exc_info.value
        assert isinstance(error, TimeoutError)
        assert error.loader_name == "slow"
        assert error.batch_size == 1

    @pytest.mark.asyncio
    async def test_failure_in_one_loader_does_not_touch_another(self):
        async def broken(keys):
            raise RuntimeError("boom")

        healthy = BatchLoader(RecordingFetch())
        failing = BatchLoader(broken)

        results = await asyncio.gather(
            healthy.load(1), failing.load(1), return_exceptions=True
        )

        assert results[0] == "value-1"
        assert isinstance(results[1], RuntimeError)


class TestCacheControl:
    """prime(), clear() and clear_all() manage the per-loader cache."""

    @pytest.mark.asyncio
    async def test_resolved_values_are_cached(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        await loader.load(1)
        await loader.load(1)

        assert fetch.calls == [[1]]

    @pytest.mark.asyncio
    async def test_cache_disabled_fetches_again(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch, cache=False)

        await loader.load(1)
        await loader.load(1)

        assert fetch.calls == [[1], [1]]

    @pytest.mark.asyncio
    async def test_prime_skips_fetch(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        loader.prime(1, "primed")

        assert await loader.load(1) == "primed"
        assert fetch.calls == []

    @pytest.mark.asyncio
    async def test_prime_does_not_overwrite(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        await loader.load(1)
        loader.prime(1, "ignored")

        assert await loader.load(1) == "value-1"

    @pytest.mark.asyncio
    async def test_clear_then_prime_replaces_value(self):
        loader = BatchLoader(RecordingFetch())

        await loader.load(1)
        loader.clear(1).prime(1, "fresh")

        assert await loader.load(1) == "fresh"

    @pytest.mark.asyncio
    async def test_clear_all_forces_refetch(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        await loader.load_many([1, 2])
        loader.clear_all()
        await loader.load_many([1, 2])

        assert fetch.calls == [[1, 2], [1, 2]]


class TestKeyValidation:
    """Key normalizers reject bad keys before they join a batch."""

    @pytest.mark.asyncio
    async def test_invalid_key_raises_synchronously(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch, key_fn=uuid_key)

        with pytest.raises(InvalidLoadKeyError):
            loader.load("not-a-uuid")

        await asyncio.sleep(0)
        assert fetch.calls == []

    @pytest.mark.asyncio
    async def test_string_and_uuid_forms_share_a_future(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch, key_fn=uuid_key)
        key = uuid.uuid4()

        assert loader.load(str(key)) is loader.load(key)
        await loader.load(key)
        assert fetch.calls == [[key]]


class TestDiscard:
    """discard() cancels outstanding work for one loader only."""

    @pytest.mark.asyncio
    async def test_discard_before_dispatch_cancels_and_skips_fetch(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        future = loader.load(1)
        loader.discard()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert future.cancelled()
        assert fetch.calls == []

    @pytest.mark.asyncio
    async def test_discard_during_fetch_cancels_waiters(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocking(keys):
            started.set()
            await release.wait()
            return keys

        loader = BatchLoader(blocking)
        future = loader.load(1)
        await started.wait()

        loader.discard()

        with pytest.raises(asyncio.CancelledError):
            await future

    @pytest.mark.asyncio
    async def test_discard_leaves_other_loaders_alone(self):
        first = BatchLoader(RecordingFetch())
        second = BatchLoader(RecordingFetch())

        discarded = first.load(1)
        kept = second.load(1)
        first.discard()

        assert discarded.cancelled()
        assert await kept == "value-1"

    @pytest.mark.asyncio
    async def test_loader_is_usable_after_discard(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        await loader.load(1)
        loader.discard()

        assert await loader.load(1) == "value-1"
        assert fetch.calls == [[1], [1]]


class TestCancelledCallers:
    """A cancelled future never poisons its key for later callers."""

    @pytest.mark.asyncio
    async def test_key_is_fetched_again_after_caller_times_out(self):
        fetch = RecordingFetch(delay=0.05)
        loader = BatchLoader(fetch)

        with pytest.raises(TimeoutError):
            await asyncio.wait_for(loader.load(1), 0.001)

        assert await loader.load(1) == "value-1"
        assert fetch.calls == [[1], [1]]

    @pytest.mark.asyncio
    async def test_other_keys_in_batch_still_resolve(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocking(keys):
            started.set()
            await release.wait()
            return [f"value-{key}" for key in keys]

        loader = BatchLoader(blocking)
        abandoned = loader.load(1)
        kept = loader.load(2)
        await started.wait()

        abandoned.cancel()
        await asyncio.sleep(0)
        release.set()

        assert await kept == "value-2"
        fresh = loader.load(1)
        assert fresh is not abandoned
        assert await fresh == "value-1"

    @pytest.mark.asyncio
    async def test_cancel_before_dispatch_drops_key_from_batch(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        loader.load(1).cancel()
        second = loader.load(2)

        assert await second == "value-2"
        assert fetch.calls == [[2]]

    @pytest.mark.asyncio
    async def test_reloading_in_same_tick_replaces_cancelled_future(self):
        fetch = RecordingFetch()
        loader = BatchLoader(fetch)

        first = loader.load(1)
        first.cancel()
        second = loader.load(1)

        assert second is not first
        assert await second == "value-1"
        assert fetch.calls == [[1]]

    @pytest.mark.asyncio
    async def test_prime_replaces_cancelled_entry(self):
        loader = BatchLoader(RecordingFetch())

        loader.load(1).cancel()
        loader.prime(1, "primed")

        assert await loader.load(1) == "primed"
