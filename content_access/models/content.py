"""
Content model and the content <-> tier association table.

Visibility decides the access-check entry point:
- PUBLIC: anyone may view
- PRIVATE: owner only
- TIER_LOCKED: owner, or fans holding a valid subscription to one of `tiers`

The `tiers` association is only consulted for TIER_LOCKED content.
"""

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Column, String, Text, Table, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.orm import relationship

from content_access.db_base import Base, TimestampMixin

if TYPE_CHECKING:
    from content_access.models.tier import Tier


class Visibility(str, enum.Enum):
    """Per-content visibility mode."""
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    TIER_LOCKED = "TIER_LOCKED"


class ContentType(str, enum.Enum):
    """Media kind of an uploaded content item."""
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    IMAGE = "IMAGE"
    TEXT = "TEXT"
    DOCUMENT = "DOCUMENT"


content_tiers = Table(
    "content_tiers",
    Base.metadata,
    Column(
        "content_id",
        String(255),
        ForeignKey("contents.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tier_id",
        String(255),
        ForeignKey("tiers.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class Content(Base, TimestampMixin):
    """A piece of content published by an artist."""

    __tablename__ = "contents"

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
        comment="Artist (user) who owns this content"
    )

    title = Column(String(255), nullable=False)

    description = Column(Text, nullable=True)

    content_type = Column(
        SAEnum(ContentType, name="content_type", create_constraint=True),
        nullable=False,
        default=ContentType.IMAGE,
        comment="Media kind, used for listing filters"
    )

    visibility = Column(
        SAEnum(Visibility, name="content_visibility", create_constraint=True),
        nullable=False,
        default=Visibility.PRIVATE,
        comment="Access-check entry point"
    )

    tiers = relationship(
        "Tier",
        secondary=content_tiers,
        back_populates="contents",
    )

    __table_args__ = (
        Index("ix_contents_artist_visibility", "artist_id", "visibility"),
    )

    @property
    def tier_ids(self) -> list[str]:
        return [tier.id for tier in self.tiers]

    def __repr__(self) -> str:
        return f"<Content(id={self.id}, artist_id={self.artist_id}, visibility={self.visibility})>"
