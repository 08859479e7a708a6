"""
Batch loading primitives used to collapse per-object lookups into bulk queries
"""

from .cache import LoaderCache
from .errors import (
    BatchLoadError,
    BatchLoadTimeoutError,
    DataLoaderError,
    InvalidLoadKeyError,
)
from .keys import enum_key, uuid_key
from .loader import Batch, BatchLoader
from .shapes import group_per_key, one_per_key

__all__ = [
    "Batch",
    "BatchLoadError",
    "BatchLoadTimeoutError",
    "BatchLoader",
    "DataLoaderError",
    "InvalidLoadKeyError",
    "LoaderCache",
    "enum_key",
    "group_per_key",
    "one_per_key",
    "uuid_key",
]
