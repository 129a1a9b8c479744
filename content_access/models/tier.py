"""
Tier model.

A Tier is a priced subscription level offered by an artist. Tier-locked
content lists the tiers that unlock it.

SECURITY:
- An inactive tier (is_active=False) never grants access, even when an
  ACTIVE subscription still references it.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Column, String, Text, Boolean, Numeric
from sqlalchemy.orm import relationship

from content_access.db_base import Base, TimestampMixin

if TYPE_CHECKING:
    from content_access.models.content import Content
    from content_access.models.subscription import Subscription


class Tier(Base, TimestampMixin):
    """Priced subscription level owned by one artist."""

    __tablename__ = "tiers"

    id = Column(
        String(255),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Internal UUID primary key"
    )

    artist_id = Column(
        String(255),
        nullable=False,
        index=True,
        comment="Artist (user) who owns this tier"
    )

    name = Column(
        String(255),
        nullable=False,
        comment="Display name shown to fans"
    )

    description = Column(Text, nullable=True)

    minimum_price = Column(
        Numeric(10, 2),
        nullable=False,
        default=0,
        comment="Lowest amount a fan may pay for this tier"
    )

    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Soft-disable flag; inactive tiers never grant access"
    )

    contents = relationship(
        "Content",
        secondary="content_tiers",
        back_populates="tiers",
    )
    subscriptions = relationship("Subscription", back_populates="tier")

    def __repr__(self) -> str:
        return f"<Tier(id={self.id}, artist_id={self.artist_id}, name={self.name!r}, is_active={self.is_active})>"
