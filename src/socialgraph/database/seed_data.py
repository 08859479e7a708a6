"""
Reusable seed data functions for database initialization.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ..dbmodels import MemberTypes
from ..logging import get_logger

logger = get_logger(__name__)

DEFAULT_MEMBER_TYPES: tuple[dict[str, object], ...] = (
    {"id": "basic", "discount": 2.3, "posts_limit_per_month": 20},
    {"id": "business", "discount": 7.7, "posts_limit_per_month": 100},
)


async def ensure_member_types(db: AsyncSession) -> list[str]:
    """
    Ensure the membership tiers exist.

    Existing rows are left untouched so operators can tune discounts.

    Returns:
        IDs of the member types that were created
    """
    created: list[str] = []
    for data in DEFAULT_MEMBER_TYPES:
        if await db.get(MemberTypes, data["id"]) is not None:
            continue
        db.add(MemberTypes(**data))
        created.append(str(data["id"]))

    if created:
        await db.flush()
        logger.info("Seeded member types", member_types=created)
    else:
        logger.debug("Member types already present")

    return created
