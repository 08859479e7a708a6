"""
Exceptions raised by the batch loading layer
"""


class DataLoaderError(Exception):
    """Base class for batch loader errors."""


class InvalidLoadKeyError(DataLoaderError, ValueError):
    """Raised by ``load()`` when a key cannot be used for a lookup.

    The key never enters a batch, so only the caller that supplied it fails.
    """

    def __init__(self, key: object, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid load key {key!r}: {reason}")


class BatchLoadError(DataLoaderError):
    """Raised when a bulk-fetch function returns results that cannot be mapped to keys."""


class BatchLoadTimeoutError(DataLoaderError, TimeoutError):
    """Raised for every key of a batch whose bulk fetch exceeded the loader timeout."""

    def __init__(self, loader_name: str, timeout: float, batch_size: int):
        self.loader_name = loader_name
        self.timeout = timeout
        self.batch_size = batch_size
        super().__init__(
            f"Loader '{loader_name}' timed out after {timeout}s fetching {batch_size} keys"
        )
