from __future__ import annotations

import strawberry

from ... import repository
from ...database.connection import get_async_session
from ..loaders import get_loaders
from ..types.member_type import MemberType, MemberTypeId


async def resolve_member_types(info: strawberry.Info) -> list[MemberType]:
    async with get_async_session() as session:
        rows = await repository.list_member_types(session)

    member_type_loader = get_loaders(info).member_type_loader
    for row in rows:
        member_type_loader.prime(row.id, row)
    return [MemberType.from_model(row) for row in rows]


async def resolve_member_type_by_id(info: strawberry.Info, id: MemberTypeId) -> MemberType | None:
    row = await get_loaders(info).member_type_loader.load(id)
    return MemberType.from_model(row) if row is not None else None
