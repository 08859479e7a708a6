from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry

from ... import repository
from ...database.connection import get_async_session
from ...logging import get_logger
from ..loaders import get_loaders
from ..types.post import Post
from ..types.user import User

if TYPE_CHECKING:
    from ..mutations.root import ChangePostInput, CreatePostInput

logger = get_logger(__name__)


# Query resolvers
async def resolve_posts(info: strawberry.Info) -> list[Post]:
    async with get_async_session() as session:
        rows = await repository.list_posts(session)

    post_loader = get_loaders(info).post_loader
    for row in rows:
        post_loader.prime(row.id, row)
    return [Post.from_model(row) for row in rows]


async def resolve_post_by_id(info: strawberry.Info, id: UUID) -> Post | None:
    row = await get_loaders(info).post_loader.load(id)
    if row is None:
        logger.info("Post not found", post_id=str(id))
        return None
    return Post.from_model(row)


# Field resolvers
async def resolve_post_author(post: Post, info: strawberry.Info) -> User | None:
    row = await get_loaders(info).user_loader.load(post.author_id)
    return User.from_model(row) if row is not None else None


# Mutation resolvers
async def create_post(info: strawberry.Info, input: CreatePostInput) -> Post:
    async with get_async_session() as session:
        row = await repository.create_post(
            session, author_id=input.author_id, title=input.title, content=input.content
        )

    loaders = get_loaders(info)
    loaders.post_loader.prime(row.id, row)
    loaders.posts_by_author_loader.clear(row.author_id)
    logger.info("Post created", post_id=str(row.id), author_id=str(row.author_id))
    return Post.from_model(row)


async def change_post(info: strawberry.Info, id: UUID, input: ChangePostInput) -> Post:
    async with get_async_session() as session:
        row = await repository.update_post(session, id, title=input.title, content=input.content)

    loaders = get_loaders(info)
    loaders.post_loader.clear(id).prime(id, row)
    loaders.posts_by_author_loader.clear(row.author_id)
    logger.info("Post updated", post_id=str(id))
    return Post.from_model(row)


async def delete_post(info: strawberry.Info, id: UUID) -> bool:
    async with get_async_session() as session:
        await repository.delete_post(session, id)

    loaders = get_loaders(info)
    loaders.post_loader.clear(id)
    loaders.posts_by_author_loader.clear_all()
    logger.info("Post deleted", post_id=str(id))
    return True
