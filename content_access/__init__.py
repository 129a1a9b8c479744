"""
Content access control for gated creator content.

This module provides:
- ContentAccessEvaluator: per-item access decisions (public, owner, tier subscription)
- ContentAccessAggregates: accessible-content listing and per-artist access summary
- AccessTokenService: short-lived signed tokens for download/stream endpoints
- AccessTokenStore: optional Redis-backed JTI revocation
- DenyRateMonitor: alert on repeated denials per user
- require_content_token: FastAPI dependency that redeems access tokens

All access decisions fail closed: datastore errors deny, never grant.
"""

from content_access.aggregates import ContentAccessAggregates
from content_access.audit import DenyRateMonitor, create_deny_monitor, log_access_decision, log_lookup_failure
from content_access.config import AccessControlSettings, load_settings
from content_access.database import create_session_factory, session_scope
from content_access.dependencies import require_content_token
from content_access.errors import (
    AccessTokenError,
    ContentAccessError,
    TokenContentMismatchError,
    TokenExpiredError,
    TokenValidationError,
)
from content_access.evaluator import ContentAccessEvaluator
from content_access.repositories import ContentRepository, SubscriptionFilter, SubscriptionRepository
from content_access.results import (
    AccessibleContentPage,
    AccessReason,
    AccessResult,
    ContentAccessSummary,
    ContentFilters,
    Pagination,
    SubscriptionGrant,
    TierAccessSummary,
)
from content_access.token_store import AccessTokenStore, create_token_store
from content_access.tokens import (
    AccessTokenClaims,
    AccessTokenConfig,
    AccessTokenService,
    get_access_token_service,
)

__all__ = [
    # Evaluation
    "ContentAccessEvaluator",
    "ContentAccessAggregates",
    # Results
    "AccessReason",
    "AccessResult",
    "SubscriptionGrant",
    "ContentFilters",
    "Pagination",
    "AccessibleContentPage",
    "TierAccessSummary",
    "ContentAccessSummary",
    # Repositories
    "ContentRepository",
    "SubscriptionRepository",
    "SubscriptionFilter",
    # Tokens
    "AccessTokenService",
    "AccessTokenConfig",
    "AccessTokenClaims",
    "AccessTokenStore",
    "create_token_store",
    "get_access_token_service",
    "require_content_token",
    # Audit
    "DenyRateMonitor",
    "create_deny_monitor",
    "log_access_decision",
    "log_lookup_failure",
    # Config / database
    "AccessControlSettings",
    "load_settings",
    "create_session_factory",
    "session_scope",
    # Errors
    "ContentAccessError",
    "AccessTokenError",
    "TokenExpiredError",
    "TokenValidationError",
    "TokenContentMismatchError",
]
