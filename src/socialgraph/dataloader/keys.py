"""
Key normalizers for batch loaders.

A normalizer runs inside ``BatchLoader.load()`` before the key is cached or
batched. It returns the canonical form of the key or raises
``InvalidLoadKeyError``.
"""

from collections.abc import Callable
from enum import Enum
from typing import TypeVar
from uuid import UUID

from .errors import InvalidLoadKeyError

E = TypeVar("E", bound=Enum)


def uuid_key(value: object) -> UUID:
    """Accept a UUID or its string form."""
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            raise InvalidLoadKeyError(value, "not a valid UUID") from None
    raise InvalidLoadKeyError(value, f"expected UUID, got {type(value).__name__}")


def enum_key(enum_cls: type[E]) -> Callable[[object], E]:
    """Build a normalizer accepting members of ``enum_cls`` or their values."""

    def normalize(value: object) -> E:
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(repr(member.value) for member in enum_cls)
            raise InvalidLoadKeyError(value, f"expected one of {allowed}") from None

    return normalize
