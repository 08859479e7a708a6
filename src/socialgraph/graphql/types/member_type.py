"""
Member type GraphQL type definitions
"""

from enum import Enum
from typing import TYPE_CHECKING

import strawberry

if TYPE_CHECKING:
    from ...dbmodels import MemberTypes


@strawberry.enum(name="MemberTypeId")
class MemberTypeId(Enum):
    """Membership tier identifier."""

    # GraphQL enum values are the lowercase tier ids
    basic = "basic"
    business = "business"


@strawberry.type
class MemberType:
    """Membership tier with its discount and monthly post allowance."""

    id: MemberTypeId
    discount: float
    posts_limit_per_month: int

    @classmethod
    def from_model(cls, row: "MemberTypes") -> "MemberType":
        return cls(
            id=MemberTypeId(row.id),
            discount=row.discount,
            posts_limit_per_month=row.posts_limit_per_month,
        )
