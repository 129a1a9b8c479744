from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from content_access.models.content import ContentType

if TYPE_CHECKING:
    from content_access.models.content import Content
    from content_access.models.subscription import Subscription


class AccessReason(str, enum.Enum):
    """Why an access decision came out the way it did."""
    PUBLIC = "public"
    OWNER = "owner"
    SUBSCRIPTION = "subscription"
    NO_SUBSCRIPTION = "no_subscription"
    NOT_FOUND = "not_found"


GRANTING_REASONS = frozenset({AccessReason.PUBLIC, AccessReason.OWNER, AccessReason.SUBSCRIPTION})


@dataclass(frozen=True)
class SubscriptionGrant:
    """Detached snapshot of the subscription that justified an access grant."""

    id: str
    fan_id: str
    artist_id: str
    tier_id: str
    status: str
    current_period_end: datetime
    amount: Optional[Decimal] = None

    @classmethod
    def from_model(cls, subscription: "Subscription") -> "SubscriptionGrant":
        status = subscription.status
        return cls(
            id=subscription.id,
            fan_id=subscription.fan_id,
            artist_id=subscription.artist_id,
            tier_id=subscription.tier_id,
            status=getattr(status, "value", status),
            current_period_end=subscription.current_period_end,
            amount=subscription.amount,
        )


@dataclass(frozen=True)
class AccessResult:
    """Outcome of a single content access check.

    has_access is derived from reason, and the subscription payload exists
    only on the subscription branch.
    """

    reason: AccessReason
    subscription: Optional[SubscriptionGrant] = None

    def __post_init__(self) -> None:
        reason = AccessReason(self.reason)
        object.__setattr__(self, "reason", reason)
        if reason is AccessReason.SUBSCRIPTION and self.subscription is None:
            raise ValueError("subscription grant is required when reason is 'subscription'")
        if reason is not AccessReason.SUBSCRIPTION and self.subscription is not None:
            raise ValueError("subscription grant is only allowed when reason is 'subscription'")

    @property
    def has_access(self) -> bool:
        return self.reason in GRANTING_REASONS

    @classmethod
    def public(cls) -> "AccessResult":
        return cls(reason=AccessReason.PUBLIC)

    @classmethod
    def owner(cls) -> "AccessResult":
        return cls(reason=AccessReason.OWNER)

    @classmethod
    def via_subscription(cls, grant: SubscriptionGrant) -> "AccessResult":
        return cls(reason=AccessReason.SUBSCRIPTION, subscription=grant)

    @classmethod
    def no_subscription(cls) -> "AccessResult":
        return cls(reason=AccessReason.NO_SUBSCRIPTION)

    @classmethod
    def not_found(cls) -> "AccessResult":
        return cls(reason=AccessReason.NOT_FOUND)

    def to_dict(self) -> dict:
        payload: dict = {"hasAccess": self.has_access, "reason": self.reason.value}
        if self.subscription is not None:
            payload["subscription"] = {
                "id": self.subscription.id,
                "tierId": self.subscription.tier_id,
                "status": self.subscription.status,
                "currentPeriodEnd": self.subscription.current_period_end.isoformat(),
                "amount": None if self.subscription.amount is None else str(self.subscription.amount),
            }
        return payload


class ContentFilters(BaseModel):
    """Listing filters for accessible content."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    content_type: Optional[ContentType] = Field(default=None, alias="type")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def for_total(cls, *, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if total else 0)


@dataclass(frozen=True)
class AccessibleContentPage:
    """One page of content the user may view."""

    content: Tuple["Content", ...]
    pagination: Pagination

    @classmethod
    def empty(cls, filters: ContentFilters) -> "AccessibleContentPage":
        return cls(content=(), pagination=Pagination.for_total(page=filters.page, limit=filters.limit, total=0))


@dataclass(frozen=True)
class TierAccessSummary:
    tier_id: str
    tier_name: str
    content_count: int


@dataclass(frozen=True)
class ContentAccessSummary:
    """Aggregate access counts for one user against one artist's catalogue.

    Build through from_counts() so that the derived fields always satisfy
    accessible = public + accessible_gated and gated = total - public.
    """

    total_content: int
    public_content: int
    accessible_gated_content: int
    accessible_content: int
    gated_content: int
    subscriptions: Tuple[TierAccessSummary, ...] = field(default_factory=tuple)

    @classmethod
    def from_counts(
        cls,
        *,
        total_content: int,
        public_content: int,
        accessible_gated_content: int,
        subscriptions: Sequence[TierAccessSummary] = (),
    ) -> "ContentAccessSummary":
        return cls(
            total_content=total_content,
            public_content=public_content,
            accessible_gated_content=accessible_gated_content,
            accessible_content=public_content + accessible_gated_content,
            gated_content=total_content - public_content,
            subscriptions=tuple(subscriptions),
        )

    @classmethod
    def empty(cls) -> "ContentAccessSummary":
        return cls.from_counts(total_content=0, public_content=0, accessible_gated_content=0)
