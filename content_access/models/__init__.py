"""
Database models for tiers, gated content and fan subscriptions.
"""

from content_access.models.tier import Tier
from content_access.models.content import Content, ContentType, Visibility, content_tiers
from content_access.models.subscription import Subscription, SubscriptionStatus

__all__ = [
    "Tier",
    "Content",
    "ContentType",
    "Visibility",
    "content_tiers",
    "Subscription",
    "SubscriptionStatus",
]
