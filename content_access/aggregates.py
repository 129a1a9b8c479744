"""
Listing and reporting views built on the content access predicate.

Both views run set queries instead of calling check_content_access per item,
but grant exactly the same items: public content, content unlocked by one of
the user's currently valid tiers for that artist, or everything when the
user is the artist.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from content_access.db_base import utcnow
from content_access.evaluator import ContentAccessEvaluator
from content_access.models.content import Visibility
from content_access.results import (
    AccessibleContentPage,
    ContentAccessSummary,
    ContentFilters,
    Pagination,
    TierAccessSummary,
)

logger = logging.getLogger(__name__)


class ContentAccessAggregates:
    """Batch views over one artist's catalogue for one user."""

    def __init__(
        self,
        db_session: Optional[Session] = None,
        *,
        evaluator: Optional[ContentAccessEvaluator] = None,
    ):
        self.evaluator = evaluator or ContentAccessEvaluator(db_session)

    def get_user_accessible_content(
        self,
        user_id: Optional[str],
        artist_id: str,
        filters: Optional[ContentFilters] = None,
        *,
        now: Optional[datetime] = None,
    ) -> AccessibleContentPage:
        """
        Return one page of the artist's content that user_id may view.

        Returns an empty page on any repository error.
        """
        filters = filters or ContentFilters()
        now = now or utcnow()
        contents = self.evaluator.contents

        try:
            is_owner = bool(user_id) and user_id == artist_id
            tier_ids = [] if is_owner else self._active_tier_ids(user_id, artist_id, now)
            query = contents.accessible_content_query(
                artist_id,
                tier_ids,
                include_all=is_owner,
                content_type=filters.content_type,
            )
            total = query.count()
            items = contents.list_page(query, offset=filters.offset, limit=filters.limit)
        except Exception:
            logger.exception(
                "Accessible content listing failed; returning empty page",
                extra={"user_id": user_id, "artist_id": artist_id},
            )
            return AccessibleContentPage.empty(filters)

        return AccessibleContentPage(
            content=tuple(items),
            pagination=Pagination.for_total(page=filters.page, limit=filters.limit, total=total),
        )

    def get_content_access_summary(
        self,
        user_id: Optional[str],
        artist_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> ContentAccessSummary:
        """
        Aggregate access counts for user_id against artist_id's content.

        Returns an all-zero summary on any repository error.
        """
        now = now or utcnow()
        contents = self.evaluator.contents

        try:
            total = contents.count_content(artist_id)
            public = contents.count_content(artist_id, visibility=Visibility.PUBLIC)

            if user_id and user_id == artist_id:
                return ContentAccessSummary.from_counts(
                    total_content=total,
                    public_content=public,
                    accessible_gated_content=total - public,
                )

            tiers = self._active_tiers(user_id, artist_id, now)
            accessible_gated = contents.count_content(
                artist_id,
                visibility=Visibility.TIER_LOCKED,
                tier_ids=list(tiers),
            )
            breakdown: List[TierAccessSummary] = [
                TierAccessSummary(
                    tier_id=tier_id,
                    tier_name=tier_name,
                    content_count=contents.count_content(
                        artist_id,
                        visibility=Visibility.TIER_LOCKED,
                        tier_ids=[tier_id],
                    ),
                )
                for tier_id, tier_name in tiers.items()
            ]
        except Exception:
            logger.exception(
                "Content access summary failed; returning empty summary",
                extra={"user_id": user_id, "artist_id": artist_id},
            )
            return ContentAccessSummary.empty()

        return ContentAccessSummary.from_counts(
            total_content=total,
            public_content=public,
            accessible_gated_content=accessible_gated,
            subscriptions=breakdown,
        )

    def _active_tiers(self, user_id: Optional[str], artist_id: str, now: datetime) -> Dict[str, str]:
        """tier_id -> tier name for the user's currently valid subscriptions, in lookup order."""
        tiers: Dict[str, str] = {}
        for subscription in self.evaluator.active_subscriptions(user_id, artist_id, now=now):
            if subscription.tier_id not in tiers:
                tiers[subscription.tier_id] = subscription.tier.name if subscription.tier else ""
        return tiers

    def _active_tier_ids(self, user_id: Optional[str], artist_id: str, now: datetime) -> List[str]:
        return list(self._active_tiers(user_id, artist_id, now))
