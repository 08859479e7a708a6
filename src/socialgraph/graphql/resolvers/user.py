from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry

from ... import repository
from ...database.connection import get_async_session
from ...logging import get_logger
from ..loaders import get_loaders
from ..types.post import Post
from ..types.profile import Profile
from ..types.user import User

if TYPE_CHECKING:
    from ..mutations.root import ChangeUserInput, CreateUserInput

logger = get_logger(__name__)


# Query resolvers
async def resolve_users(info: strawberry.Info) -> list[User]:
    async with get_async_session() as session:
        rows = await repository.list_users(session)

    user_loader = get_loaders(info).user_loader
    for row in rows:
        user_loader.prime(row.id, row)
    return [User.from_model(row) for row in rows]


async def resolve_user_by_id(info: strawberry.Info, id: UUID) -> User | None:
    row = await get_loaders(info).user_loader.load(id)
    if row is None:
        logger.info("User not found", user_id=str(id))
        return None
    return User.from_model(row)


# Field resolvers
async def resolve_user_profile(user: User, info: strawberry.Info) -> Profile | None:
    row = await get_loaders(info).profile_by_user_loader.load(user.id)
    return Profile.from_model(row) if row is not None else None


async def resolve_user_posts(user: User, info: strawberry.Info) -> list[Post]:
    rows = await get_loaders(info).posts_by_author_loader.load(user.id)
    return [Post.from_model(row) for row in rows]


async def resolve_user_subscribed_to(user: User, info: strawberry.Info) -> list[User]:
    rows = await get_loaders(info).subscribed_to_loader.load(user.id)
    return [User.from_model(row) for row in rows]


async def resolve_subscribed_to_user(user: User, info: strawberry.Info) -> list[User]:
    rows = await get_loaders(info).subscribers_loader.load(user.id)
    return [User.from_model(row) for row in rows]


# Mutation resolvers
async def create_user(info: strawberry.Info, input: CreateUserInput) -> User:
    async with get_async_session() as session:
        row = await repository.create_user(session, name=input.name, balance=input.balance)

    get_loaders(info).user_loader.prime(row.id, row)
    logger.info("User created", user_id=str(row.id))
    return User.from_model(row)


async def change_user(info: strawberry.Info, id: UUID, input: ChangeUserInput) -> User:
    async with get_async_session() as session:
        row = await repository.update_user(session, id, name=input.name, balance=input.balance)

    get_loaders(info).user_loader.clear(id).prime(id, row)
    logger.info("User updated", user_id=str(id))
    return User.from_model(row)


async def delete_user(info: strawberry.Info, id: UUID) -> bool:
    async with get_async_session() as session:
        await repository.delete_user(session, id)

    # Cascades remove the user's profile, posts and subscriptions
    loaders = get_loaders(info)
    for loader in (loaders.user_loader, loaders.profile_by_user_loader, loaders.posts_by_author_loader):
        loader.clear(id)
    for loader in (
        loaders.profile_loader,
        loaders.post_loader,
        loaders.subscribed_to_loader,
        loaders.subscribers_loader,
    ):
        loader.clear_all()

    logger.info("User deleted", user_id=str(id))
    return True


async def subscribe_to(info: strawberry.Info, user_id: UUID, author_id: UUID) -> User:
    async with get_async_session() as session:
        row = await repository.subscribe(session, subscriber_id=user_id, author_id=author_id)

    loaders = get_loaders(info)
    loaders.subscribed_to_loader.clear(user_id)
    loaders.subscribers_loader.clear(author_id)
    logger.info("Subscription created", subscriber_id=str(user_id), author_id=str(author_id))
    return User.from_model(row)


async def unsubscribe_from(info: strawberry.Info, user_id: UUID, author_id: UUID) -> bool:
    async with get_async_session() as session:
        removed = await repository.unsubscribe(session, subscriber_id=user_id, author_id=author_id)

    loaders = get_loaders(info)
    loaders.subscribed_to_loader.clear(user_id)
    loaders.subscribers_loader.clear(author_id)
    logger.info(
        "Subscription removed",
        subscriber_id=str(user_id),
        author_id=str(author_id),
        removed=removed,
    )
    return removed > 0
