"""
Helpers that map unordered bulk-fetch rows back onto requested keys
"""

from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Sequence
from typing import TypeVar

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")


def one_per_key(
    keys: Sequence[K], rows: Iterable[R], key_of: Callable[[R], K]
) -> list[R | None]:
    """Align rows with ``keys``; keys without a row get ``None``."""
    by_key = {key_of(row): row for row in rows}
    return [by_key.get(key) for key in keys]


def group_per_key(
    keys: Sequence[K], pairs: Iterable[tuple[K, R]]
) -> list[list[R]]:
    """Partition ``(key, row)`` pairs by key, in the order of ``keys``.

    Keys with no rows get an empty list, never ``None``.
    """
    groups: dict[K, list[R]] = defaultdict(list)
    for key, row in pairs:
        groups[key].append(row)
    return [list(groups.get(key, ())) for key in keys]
