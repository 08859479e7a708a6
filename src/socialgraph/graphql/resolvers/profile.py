from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry

from ... import repository
from ...database.connection import get_async_session
from ...logging import get_logger
from ..loaders import get_loaders
from ..types.member_type import MemberType
from ..types.profile import Profile
from ..types.user import User

if TYPE_CHECKING:
    from ..mutations.root import ChangeProfileInput, CreateProfileInput

logger = get_logger(__name__)


# Query resolvers
async def resolve_profiles(info: strawberry.Info) -> list[Profile]:
    async with get_async_session() as session:
        rows = await repository.list_profiles(session)

    loaders = get_loaders(info)
    for row in rows:
        loaders.profile_loader.prime(row.id, row)
        loaders.profile_by_user_loader.prime(row.user_id, row)
    return [Profile.from_model(row) for row in rows]


async def resolve_profile_by_id(info: strawberry.Info, id: UUID) -> Profile | None:
    row = await get_loaders(info).profile_loader.load(id)
    if row is None:
        logger.info("Profile not found", profile_id=str(id))
        return None
    return Profile.from_model(row)


# Field resolvers
async def resolve_profile_member_type(
    profile: Profile, info: strawberry.Info
) -> MemberType | None:
    row = await get_loaders(info).member_type_loader.load(profile.member_type_id)
    return MemberType.from_model(row) if row is not None else None


async def resolve_profile_user(profile: Profile, info: strawberry.Info) -> User | None:
    row = await get_loaders(info).user_loader.load(profile.user_id)
    return User.from_model(row) if row is not None else None


# Mutation resolvers
async def create_profile(info: strawberry.Info, input: CreateProfileInput) -> Profile:
    async with get_async_session() as session:
        row = await repository.create_profile(
            session,
            user_id=input.user_id,
            member_type_id=input.member_type_id.value,
            is_male=input.is_male,
            year_of_birth=input.year_of_birth,
        )

    loaders = get_loaders(info)
    loaders.profile_loader.prime(row.id, row)
    loaders.profile_by_user_loader.clear(row.user_id).prime(row.user_id, row)
    logger.info("Profile created", profile_id=str(row.id), user_id=str(row.user_id))
    return Profile.from_model(row)


async def change_profile(info: strawberry.Info, id: UUID, input: ChangeProfileInput) -> Profile:
    async with get_async_session() as session:
        row = await repository.update_profile(
            session,
            id,
            member_type_id=input.member_type_id.value if input.member_type_id else None,
            is_male=input.is_male,
            year_of_birth=input.year_of_birth,
        )

    loaders = get_loaders(info)
    loaders.profile_loader.clear(id).prime(id, row)
    loaders.profile_by_user_loader.clear(row.user_id).prime(row.user_id, row)
    logger.info("Profile updated", profile_id=str(id))
    return Profile.from_model(row)


async def delete_profile(info: strawberry.Info, id: UUID) -> bool:
    async with get_async_session() as session:
        await repository.delete_profile(session, id)

    loaders = get_loaders(info)
    loaders.profile_loader.clear(id)
    loaders.profile_by_user_loader.clear_all()
    logger.info("Profile deleted", profile_id=str(id))
    return True
