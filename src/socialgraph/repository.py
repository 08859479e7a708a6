"""Repository helpers for the socialgraph data store.

Every function takes an open ``AsyncSession``; callers own the transaction
(``get_async_session()`` commits on exit). Bulk readers issue exactly one
query each and leave ordering by key to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .dbmodels import Base, MemberTypes, Posts, Profiles, SubscribersOnAuthors, Users

ModelT = TypeVar("ModelT", bound=Base)


class RepositoryError(Exception):
    """Base class for data store errors raised by this module."""


class EntityNotFoundError(RepositoryError):
    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class EntityConflictError(RepositoryError):
    pass


async def _get_or_raise(session: AsyncSession, model: type[ModelT], entity_id: Any) -> ModelT:
    row = await session.get(model, entity_id)
    if row is None:
        raise EntityNotFoundError(model.__name__.rstrip("s"), entity_id)
    return row


def _apply_changes(row: Base, changes: dict[str, Any]) -> None:
    # None means "leave unchanged"; no column here is nullable
    for attr, value in changes.items():
        if value is not None:
            setattr(row, attr, value)


async def _delete_by_id(session: AsyncSession, model: type[Base], entity_id: UUID) -> None:
    result = await session.execute(delete(model).where(model.id == entity_id))  # type: ignore[attr-defined]
    if result.rowcount == 0:
        raise EntityNotFoundError(model.__name__.rstrip("s"), entity_id)


# Listing


async def list_member_types(session: AsyncSession) -> Sequence[MemberTypes]:
    result = await session.execute(select(MemberTypes).order_by(MemberTypes.id))
    return result.scalars().all()


async def list_users(session: AsyncSession) -> Sequence[Users]:
    result = await session.execute(select(Users))
    return result.scalars().all()


async def list_posts(session: AsyncSession) -> Sequence[Posts]:
    result = await session.execute(select(Posts))
    return result.scalars().all()


async def list_profiles(session: AsyncSession) -> Sequence[Profiles]:
    result = await session.execute(select(Profiles))
    return result.scalars().all()


# Bulk reads used by the batch loaders


async def find_member_types_by_ids(
    session: AsyncSession, ids: Sequence[str]
) -> Sequence[MemberTypes]:
    result = await session.execute(select(MemberTypes).where(MemberTypes.id.in_(ids)))
    return result.scalars().all()


async def find_users_by_ids(session: AsyncSession, ids: Sequence[UUID]) -> Sequence[Users]:
    result = await session.execute(select(Users).where(Users.id.in_(ids)))
    return result.scalars().all()


async def find_posts_by_ids(session: AsyncSession, ids: Sequence[UUID]) -> Sequence[Posts]:
    result = await session.execute(select(Posts).where(Posts.id.in_(ids)))
    return result.scalars().all()


async def find_profiles_by_ids(session: AsyncSession, ids: Sequence[UUID]) -> Sequence[Profiles]:
    result = await session.execute(select(Profiles).where(Profiles.id.in_(ids)))
    return result.scalars().all()


async def find_profiles_by_user_ids(
    session: AsyncSession, user_ids: Sequence[UUID]
) -> Sequence[Profiles]:
    result = await session.execute(select(Profiles).where(Profiles.user_id.in_(user_ids)))
    return result.scalars().all()


async def find_posts_by_author_ids(
    session: AsyncSession, author_ids: Sequence[UUID]
) -> Sequence[Posts]:
    result = await session.execute(select(Posts).where(Posts.author_id.in_(author_ids)))
    return result.scalars().all()


async def find_authors_of_subscribers(
    session: AsyncSession, subscriber_ids: Sequence[UUID]
) -> list[tuple[UUID, Users]]:
    """Return ``(subscriber_id, author)`` pairs for the given subscribers."""
    stmt = (
        select(SubscribersOnAuthors.subscriber_id, Users)
        .join(Users, Users.id == SubscribersOnAuthors.author_id)
        .where(SubscribersOnAuthors.subscriber_id.in_(subscriber_ids))
    )
    result = await session.execute(stmt)
    return [(subscriber_id, author) for subscriber_id, author in result.all()]


async def find_subscribers_of_authors(
    session: AsyncSession, author_ids: Sequence[UUID]
) -> list[tuple[UUID, Users]]:
    """Return ``(author_id, subscriber)`` pairs for the given authors."""
    stmt = (
        select(SubscribersOnAuthors.author_id, Users)
        .join(Users, Users.id == SubscribersOnAuthors.subscriber_id)
        .where(SubscribersOnAuthors.author_id.in_(author_ids))
    )
    result = await session.execute(stmt)
    return [(author_id, subscriber) for author_id, subscriber in result.all()]


# Users


async def create_user(session: AsyncSession, *, name: str, balance: float) -> Users:
    user = Users(name=name, balance=balance)
    session.add(user)
    await session.flush()
    return user


async def update_user(
    session: AsyncSession,
    user_id: UUID,
    *,
    name: str | None = None,
    balance: float | None = None,
) -> Users:
    user = await _get_or_raise(session, Users, user_id)
    _apply_changes(user, {"name": name, "balance": balance})
    await session.flush()
    return user


async def delete_user(session: AsyncSession, user_id: UUID) -> None:
    await _delete_by_id(session, Users, user_id)


# Posts


async def create_post(
    session: AsyncSession, *, author_id: UUID, title: str, content: str
) -> Posts:
    await _get_or_raise(session, Users, author_id)
    post = Posts(author_id=author_id, title=title, content=content)
    session.add(post)
    await session.flush()
    return post


async def update_post(
    session: AsyncSession,
    post_id: UUID,
    *,
    title: str | None = None,
    content: str | None = None,
) -> Posts:
    post = await _get_or_raise(session, Posts, post_id)
    _apply_changes(post, {"title": title, "content": content})
    await session.flush()
    return post


async def delete_post(session: AsyncSession, post_id: UUID) -> None:
    await _delete_by_id(session, Posts, post_id)


# Profiles


async def create_profile(
    session: AsyncSession,
    *,
    user_id: UUID,
    member_type_id: str,
    is_male: bool,
    year_of_birth: int,
) -> Profiles:
    await _get_or_raise(session, Users, user_id)
    await _get_or_raise(session, MemberTypes, member_type_id)

    existing = await session.execute(select(Profiles.id).where(Profiles.user_id == user_id))
    if existing.scalar_one_or_none() is not None:
        raise EntityConflictError(f"User {user_id} already has a profile")

    profile = Profiles(
        user_id=user_id,
        member_type_id=member_type_id,
        is_male=is_male,
        year_of_birth=year_of_birth,
    )
    session.add(profile)
    await session.flush()
    return profile


async def update_profile(
    session: AsyncSession,
    profile_id: UUID,
    *,
    member_type_id: str | None = None,
    is_male: bool | None = None,
    year_of_birth: int | None = None,
) -> Profiles:
    profile = await _get_or_raise(session, Profiles, profile_id)
    if member_type_id is not None:
        await _get_or_raise(session, MemberTypes, member_type_id)
    _apply_changes(
        profile,
        {"member_type_id": member_type_id, "is_male": is_male, "year_of_birth": year_of_birth},
    )
    await session.flush()
    return profile


async def delete_profile(session: AsyncSession, profile_id: UUID) -> None:
    await _delete_by_id(session, Profiles, profile_id)


# Subscriptions


async def subscribe(session: AsyncSession, *, subscriber_id: UUID, author_id: UUID) -> Users:
    """Subscribe ``subscriber_id`` to ``author_id``; repeating it is a no-op."""
    subscriber = await _get_or_raise(session, Users, subscriber_id)
    await _get_or_raise(session, Users, author_id)

    existing = await session.get(SubscribersOnAuthors, (subscriber_id, author_id))
    if existing is None:
        session.add(SubscribersOnAuthors(subscriber_id=subscriber_id, author_id=author_id))
        await session.flush()
    return subscriber


async def unsubscribe(session: AsyncSession, *, subscriber_id: UUID, author_id: UUID) -> int:
    """Remove a subscription and return the number of rows deleted."""
    result = await session.execute(
        delete(SubscribersOnAuthors).where(
            SubscribersOnAuthors.subscriber_id == subscriber_id,
            SubscribersOnAuthors.author_id == author_id,
        )
    )
    return result.rowcount
