"""
Audit logging for content access decisions.

Emits structured log events for every grant and denial, records content
lookup failures (which callers only ever see as not_found), and raises an
alert when one user accumulates denials faster than a threshold.
"""

import logging
import time
from collections import deque
from threading import Lock
from typing import Deque, Dict, Optional

from content_access.config import AccessControlSettings, load_settings
from content_access.results import AccessResult

logger = logging.getLogger(__name__)

DENY_WINDOW_SECONDS = 60


def log_access_decision(
    user_id: Optional[str],
    content_id: Optional[str],
    result: AccessResult,
    correlation_id: Optional[str] = None,
) -> None:
    """Log one access decision. Never raises."""
    try:
        extra = {
            "user_id": user_id,
            "content_id": content_id,
            "reason": result.reason.value,
            "correlation_id": correlation_id,
        }
        if result.has_access:
            if result.subscription is not None:
                extra["subscription_id"] = result.subscription.id
                extra["tier_id"] = result.subscription.tier_id
            logger.info("Content access granted", extra={"action": "content_access_granted", **extra})
        else:
            logger.warning("Content access denied", extra={"action": "content_access_denied", **extra})
    except Exception as e:
        logger.error(
            "Failed to log content access audit event",
            extra={"error": str(e), "content_id": content_id},
        )


def log_lookup_failure(content_id: Optional[str], error: Exception) -> None:
    """Record that a content lookup errored (reported to callers as not_found)."""
    logger.error(
        "Content lookup failed; denying as not_found",
        extra={
            "action": "content_lookup_failed",
            "content_id": content_id,
            "error": str(error),
            "error_type": type(error).__name__,
        },
        exc_info=error,
    )


class DenyRateMonitor:
    """
    Sliding-window counter of denials per user.

    Emits one warning alert when a user reaches `threshold` denials within
    the window; the alert re-arms once the user's count drops below it.
    Users with no denials left in the window are forgotten. Owned by
    whoever constructs it; not shared globally.
    """

    def __init__(self, threshold: int = 10, window_seconds: int = DENY_WINDOW_SECONDS, clock=time.monotonic):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.window_seconds = window_seconds
        self._clock = clock
        self._denials: Dict[str, Deque[float]] = {}
        self._last_sweep: Optional[float] = None
        self._lock = Lock()

    def record_denial(self, user_id: Optional[str], content_id: Optional[str]) -> int:
        """Record a denial; returns the user's count within the window."""
        key = user_id or "anonymous"
        now = self._clock()
        cutoff = now - self.window_seconds
        with self._lock:
            self._sweep(now, cutoff)
            window = self._denials.setdefault(key, deque())
            window.append(now)
            while window[0] <= cutoff:
                window.popleft()
            count = len(window)

        if count == self.threshold:
            emit_deny_alert(key, content_id, count)
        return count

    def tracked_users(self) -> int:
        with self._lock:
            return len(self._denials)

    def reset(self) -> None:
        with self._lock:
            self._denials.clear()
            self._last_sweep = None

    def _sweep(self, now: float, cutoff: float) -> None:
        # At most once per window; caller holds the lock
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        stale = [key for key, window in self._denials.items() if window[-1] <= cutoff]
        for key in stale:
            del self._denials[key]


def create_deny_monitor(settings: Optional[AccessControlSettings] = None) -> DenyRateMonitor:
    """Build a monitor using settings.deny_alert_threshold (CONTENT_ACCESS_DENY_ALERT_THRESHOLD)."""
    settings = settings or load_settings()
    return DenyRateMonitor(threshold=settings.deny_alert_threshold)


def emit_deny_alert(user_id: str, content_id: Optional[str], count: int) -> None:
    """Alert on repeated deny events (>N/min)."""
    logger.warning(
        "Repeated content access denials",
        extra={
            "action": "content_access_deny_alert",
            "user_id": user_id,
            "content_id": content_id,
            "count_per_window": count,
        },
    )
