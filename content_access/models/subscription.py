"""
Subscription model.

Rows are created on successful payment; status transitions are driven by
payment webhooks outside this package.

A subscription unlocks tier-locked content only when ALL hold:
- status == ACTIVE
- current_period_end >= now
- the referenced tier is active
- artist_id matches the content owner
"""

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.orm import relationship

from content_access.db_base import Base, TimestampMixin

if TYPE_CHECKING:
    from content_access.models.tier import Tier


class SubscriptionStatus(str, enum.Enum):
    """Billing status mirrored from the payment processor."""
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"
    PAST_DUE = "PAST_DUE"
    INCOMPLETE = "INCOMPLETE"


class Subscription(Base, TimestampMixin):
    """A fan's subscription to one artist tier."""

    __tablename__ = "subscriptions"

    id = Column(
        String(255),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Internal UUID primary key"
    )

    fan_id = Column(
        String(255),
        nullable=False,
        index=True,
        comment="Subscribing user"
    )

    artist_id = Column(
        String(255),
        nullable=False,
        index=True,
        comment="Artist the subscription pays; scopes access to their content"
    )

    tier_id = Column(
        String(255),
        ForeignKey("tiers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Subscribed tier"
    )

    status = Column(
        SAEnum(SubscriptionStatus, name="subscription_status", create_constraint=True),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
        index=True,
    )

    current_period_end = Column(
        DateTime(timezone=True),
        nullable=False,
        comment="End of the paid period; access lapses after this instant"
    )

    amount = Column(
        Numeric(10, 2),
        nullable=False,
        default=0,
        comment="Amount paid per period"
    )

    tier = relationship("Tier", back_populates="subscriptions")

    __table_args__ = (
        Index("ix_subscriptions_fan_artist_status", "fan_id", "artist_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Subscription(id={self.id}, fan_id={self.fan_id}, tier_id={self.tier_id}, "
            f"status={self.status})>"
        )
