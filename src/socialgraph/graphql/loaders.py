"""
Per-request batch loaders for every relationship the schema exposes.

Each bulk-fetch function runs one query for the whole batch and maps the rows
back onto the requested keys.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from uuid import UUID

import strawberry

from .. import repository
from ..config import settings
from ..database.connection import get_async_session
from ..dataloader import BatchLoader, enum_key, group_per_key, one_per_key, uuid_key
from ..dbmodels import MemberTypes, Posts, Profiles, Users
from .types.member_type import MemberTypeId

# Marks an option left to settings; None is a real value for both options
_FROM_SETTINGS: Any = object()


async def load_member_types(keys: list[MemberTypeId]) -> list[MemberTypes | None]:
    """Batch load member types by ID."""
    async with get_async_session() as session:
        rows = await repository.find_member_types_by_ids(session, [key.value for key in keys])
    by_id = {row.id: row for row in rows}
    return [by_id.get(key.value) for key in keys]


async def load_users(keys: list[UUID]) -> list[Users | None]:
    """Batch load users by ID."""
    async with get_async_session() as session:
        rows = await repository.find_users_by_ids(session, keys)
    return one_per_key(keys, rows, lambda user: user.id)


async def load_posts(keys: list[UUID]) -> list[Posts | None]:
    """Batch load posts by ID."""
    async with get_async_session() as session:
        rows = await repository.find_posts_by_ids(session, keys)
    return one_per_key(keys, rows, lambda post: post.id)


async def load_profiles(keys: list[UUID]) -> list[Profiles | None]:
    """Batch load profiles by ID."""
    async with get_async_session() as session:
        rows = await repository.find_profiles_by_ids(session, keys)
    return one_per_key(keys, rows, lambda profile: profile.id)


async def load_profiles_by_user_id(keys: list[UUID]) -> list[Profiles | None]:
    """Batch load the (at most one) profile of each user."""
    async with get_async_session() as session:
        rows = await repository.find_profiles_by_user_ids(session, keys)
    return one_per_key(keys, rows, lambda profile: profile.user_id)


async def load_posts_by_author_id(keys: list[UUID]) -> list[list[Posts]]:
    """Batch load all posts written by each author."""
    async with get_async_session() as session:
        rows = await repository.find_posts_by_author_ids(session, keys)
    return group_per_key(keys, ((post.author_id, post) for post in rows))


async def load_subscribed_authors(keys: list[UUID]) -> list[list[Users]]:
    """Batch load the authors each user subscribes to."""
    async with get_async_session() as session:
        pairs = await repository.find_authors_of_subscribers(session, keys)
    return group_per_key(keys, pairs)


async def load_subscribers(keys: list[UUID]) -> list[list[Users]]:
    """Batch load the users subscribed to each author."""
    async with get_async_session() as session:
        pairs = await repository.find_subscribers_of_authors(session, keys)
    return group_per_key(keys, pairs)


class Loaders:
    """Loader registry for one GraphQL request.

    Build a new instance per request; caches must never outlive it.
    """

    def __init__(
        self,
        *,
        timeout: float | None = _FROM_SETTINGS,
        max_batch_size: int | None = _FROM_SETTINGS,
    ):
        if timeout is _FROM_SETTINGS:
            timeout = settings.loader_timeout
        if max_batch_size is _FROM_SETTINGS:
            max_batch_size = settings.loader_max_batch_size
        options: dict[str, Any] = {"timeout": timeout, "max_batch_size": max_batch_size}

        self.member_type_loader: BatchLoader[MemberTypeId, MemberTypes | None] = BatchLoader(
            load_member_types, name="member_type", key_fn=enum_key(MemberTypeId), **options
        )
        self.user_loader: BatchLoader[UUID, Users | None] = BatchLoader(
            load_users, name="user", key_fn=uuid_key, **options
        )
        self.post_loader: BatchLoader[UUID, Posts | None] = BatchLoader(
            load_posts, name="post", key_fn=uuid_key, **options
        )
        self.profile_loader: BatchLoader[UUID, Profiles | None] = BatchLoader(
            load_profiles, name="profile", key_fn=uuid_key, **options
        )
        self.profile_by_user_loader: BatchLoader[UUID, Profiles | None] = BatchLoader(
            load_profiles_by_user_id, name="profile_by_user", key_fn=uuid_key, **options
        )
        self.posts_by_author_loader: BatchLoader[UUID, list[Posts]] = BatchLoader(
            load_posts_by_author_id, name="posts_by_author", key_fn=uuid_key, **options
        )
        self.subscribed_to_loader: BatchLoader[UUID, list[Users]] = BatchLoader(
            load_subscribed_authors, name="subscribed_to", key_fn=uuid_key, **options
        )
        self.subscribers_loader: BatchLoader[UUID, list[Users]] = BatchLoader(
            load_subscribers, name="subscribers", key_fn=uuid_key, **options
        )

    def __iter__(self) -> Iterator[BatchLoader[Any, Any]]:
        return (value for value in vars(self).values() if isinstance(value, BatchLoader))

    def discard(self) -> None:
        """Cancel outstanding loads and drop every cache (request finished or aborted)."""
        for loader in self:
            loader.discard()


def get_loaders(info: strawberry.Info) -> Loaders:
    """Return the request's loader registry from the GraphQL context."""
    context = info.context
    loaders = context.get("loaders") if isinstance(context, dict) else getattr(context, "loaders", None)
    if loaders is None:
        raise RuntimeError("GraphQL context has no loader registry")
    return loaders
