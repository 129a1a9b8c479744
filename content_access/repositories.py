"""
Read-only repositories over the content and subscription tables.

These are the only places that build ORM queries. Exceptions from the
database propagate to the caller; the evaluator decides how to fail closed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Query, Session, selectinload

from content_access.models.content import Content, ContentType, Visibility
from content_access.models.subscription import Subscription, SubscriptionStatus
from content_access.models.tier import Tier


@dataclass(frozen=True)
class SubscriptionFilter:
    """Criteria for subscription lookups. None means "do not filter"."""

    fan_id: Optional[str] = None
    artist_id: Optional[str] = None
    tier_id: Optional[str] = None
    tier_ids: Optional[Iterable[str]] = None
    status: Optional[SubscriptionStatus] = None
    period_end_from: Optional[datetime] = None
    tier_active: Optional[bool] = None

    @classmethod
    def currently_valid(cls, *, now: datetime, **criteria) -> "SubscriptionFilter":
        """ACTIVE, unexpired (period end >= now) and attached to an active tier."""
        return cls(
            status=SubscriptionStatus.ACTIVE,
            period_end_from=now,
            tier_active=True,
            **criteria,
        )


class ContentRepository:
    """Queries over Content rows."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def find_content_by_id(self, content_id: Optional[str]) -> Optional[Content]:
        """Return the content with its tiers loaded, or None."""
        if not content_id:
            return None
        return (
            self.db.query(Content)
            .options(selectinload(Content.tiers))
            .filter(Content.id == str(content_id))
            .first()
        )

    def _artist_content(self, artist_id: str, content_type: Optional[ContentType] = None) -> Query:
        query = self.db.query(Content).filter(Content.artist_id == artist_id)
        if content_type is not None:
            query = query.filter(Content.content_type == content_type)
        return query

    def accessible_content_query(
        self,
        artist_id: str,
        tier_ids: Iterable[str],
        *,
        include_all: bool = False,
        content_type: Optional[ContentType] = None,
    ) -> Query:
        """
        Content of one artist that is public or unlocked by any of tier_ids.

        include_all skips visibility filtering (owner view).
        """
        query = self._artist_content(artist_id, content_type)
        if include_all:
            return query

        tier_ids = list(tier_ids)
        if not tier_ids:
            return query.filter(Content.visibility == Visibility.PUBLIC)

        return query.filter(
            (Content.visibility == Visibility.PUBLIC)
            | (
                (Content.visibility == Visibility.TIER_LOCKED)
                & Content.tiers.any(Tier.id.in_(tier_ids))
            )
        )

    def list_page(self, query: Query, *, offset: int, limit: int) -> List[Content]:
        return (
            query.options(selectinload(Content.tiers))
            .order_by(Content.created_at.desc(), Content.id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_content(
        self,
        artist_id: str,
        *,
        visibility: Optional[Visibility] = None,
        tier_ids: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Count an artist's content.

        When tier_ids is given only content linked to at least one of them is
        counted; an empty tier_ids counts nothing.
        """
        query = self._artist_content(artist_id)
        if visibility is not None:
            query = query.filter(Content.visibility == visibility)
        if tier_ids is not None:
            tier_ids = list(tier_ids)
            if not tier_ids:
                return 0
            query = query.filter(Content.tiers.any(Tier.id.in_(tier_ids)))
        return query.count()


class SubscriptionRepository:
    """Queries over Subscription rows."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def _query(self, criteria: SubscriptionFilter) -> Query:
        query = self.db.query(Subscription)

        if criteria.tier_active is not None:
            query = query.join(Tier, Subscription.tier_id == Tier.id).filter(
                Tier.is_active.is_(criteria.tier_active)
            )
        if criteria.fan_id is not None:
            query = query.filter(Subscription.fan_id == criteria.fan_id)
        if criteria.artist_id is not None:
            query = query.filter(Subscription.artist_id == criteria.artist_id)
        if criteria.tier_id is not None:
            query = query.filter(Subscription.tier_id == criteria.tier_id)
        if criteria.tier_ids is not None:
            query = query.filter(Subscription.tier_id.in_(list(criteria.tier_ids)))
        if criteria.status is not None:
            query = query.filter(Subscription.status == criteria.status)
        if criteria.period_end_from is not None:
            query = query.filter(Subscription.current_period_end >= criteria.period_end_from)

        # Latest-ending first so repeated lookups pick the same row
        return query.order_by(Subscription.current_period_end.desc(), Subscription.id)

    def find_subscriptions(self, criteria: SubscriptionFilter) -> List[Subscription]:
        return self._query(criteria).all()

    def find_one_subscription(self, criteria: SubscriptionFilter) -> Optional[Subscription]:
        return self._query(criteria).first()
