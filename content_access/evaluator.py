"""
Content access evaluation.

Decides whether a user may view a content item, in strict precedence order:
lookup -> public -> owner -> tier-locked subscription -> deny.

Every public method is fail-closed: repository errors resolve to a denial and
are never raised to the caller.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from content_access.audit import DenyRateMonitor, log_access_decision, log_lookup_failure
from content_access.db_base import as_utc, utcnow
from content_access.models.content import Content, Visibility
from content_access.models.subscription import Subscription
from content_access.repositories import ContentRepository, SubscriptionFilter, SubscriptionRepository
from content_access.results import AccessResult, SubscriptionGrant

logger = logging.getLogger(__name__)


class ContentAccessEvaluator:
    """
    Stateless access checks over an explicit database session.

    Usage:
        evaluator = ContentAccessEvaluator(db_session)
        result = evaluator.check_content_access(user_id, content_id)
        if result.has_access:
            ...
    """

    def __init__(
        self,
        db_session: Optional[Session] = None,
        *,
        content_repository: Optional[ContentRepository] = None,
        subscription_repository: Optional[SubscriptionRepository] = None,
        deny_monitor: Optional[DenyRateMonitor] = None,
    ):
        """
        Args:
            db_session: Session used to build default repositories.
            content_repository: Overrides the default ContentRepository.
            subscription_repository: Overrides the default SubscriptionRepository.
            deny_monitor: Optional monitor fed with every denial.
        """
        if db_session is None and (content_repository is None or subscription_repository is None):
            raise ValueError("db_session is required unless both repositories are provided")
        self.contents = content_repository or ContentRepository(db_session)
        self.subscriptions = subscription_repository or SubscriptionRepository(db_session)
        self.deny_monitor = deny_monitor

    def check_content_access(
        self,
        user_id: Optional[str],
        content_id: Optional[str],
        *,
        now: Optional[datetime] = None,
        correlation_id: Optional[str] = None,
    ) -> AccessResult:
        """
        Decide whether user_id may view content_id.

        Args:
            user_id: Requesting user, or None for anonymous callers.
            content_id: Content to check.
            now: Evaluation instant (defaults to current UTC time).
            correlation_id: Optional id carried into audit events.

        Returns:
            AccessResult; never raises.
        """
        result = self._evaluate(user_id, content_id, as_utc(now or utcnow()))
        log_access_decision(user_id, content_id, result, correlation_id=correlation_id)
        if not result.has_access and self.deny_monitor is not None:
            self.deny_monitor.record_denial(user_id, content_id)
        return result

    def _evaluate(self, user_id: Optional[str], content_id: Optional[str], now: datetime) -> AccessResult:
        try:
            content = self.contents.find_content_by_id(content_id)
        except Exception as e:
            log_lookup_failure(content_id, e)
            return AccessResult.not_found()

        if content is None:
            return AccessResult.not_found()

        if content.visibility == Visibility.PUBLIC:
            return AccessResult.public()

        if user_id and user_id == content.artist_id:
            return AccessResult.owner()

        if content.visibility == Visibility.TIER_LOCKED:
            return self._evaluate_tier_locked(user_id, content, now)

        # PRIVATE content is owner-only
        return AccessResult.no_subscription()

    def _evaluate_tier_locked(self, user_id: Optional[str], content: Content, now: datetime) -> AccessResult:
        tier_ids = content.tier_ids
        if not tier_ids or not user_id:
            return AccessResult.no_subscription()

        try:
            subscription = self.subscriptions.find_one_subscription(
                SubscriptionFilter.currently_valid(
                    now=now,
                    fan_id=user_id,
                    artist_id=content.artist_id,
                    tier_ids=tier_ids,
                )
            )
        except Exception:
            logger.exception(
                "Subscription lookup failed; denying access",
                extra={"user_id": user_id, "content_id": content.id},
            )
            return AccessResult.no_subscription()

        if subscription is None:
            return AccessResult.no_subscription()
        return AccessResult.via_subscription(SubscriptionGrant.from_model(subscription))

    def check_tier_access(
        self,
        user_id: Optional[str],
        tier_id: Optional[str],
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """True if user_id holds a currently valid subscription to tier_id. Never raises."""
        if not user_id or not tier_id:
            return False
        try:
            subscription = self.subscriptions.find_one_subscription(
                SubscriptionFilter.currently_valid(
                    now=as_utc(now or utcnow()),
                    fan_id=user_id,
                    tier_id=tier_id,
                )
            )
        except Exception:
            logger.exception(
                "Tier access check failed; denying",
                extra={"user_id": user_id, "tier_id": tier_id},
            )
            return False
        return subscription is not None

    def active_subscriptions(
        self,
        user_id: Optional[str],
        artist_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> List[Subscription]:
        """
        Currently valid subscriptions of user_id to artist_id.

        Raises on repository errors; aggregate callers handle the fallback.
        """
        if not user_id:
            return []
        return self.subscriptions.find_subscriptions(
            SubscriptionFilter.currently_valid(
                now=as_utc(now or utcnow()),
                fan_id=user_id,
                artist_id=artist_id,
            )
        )
