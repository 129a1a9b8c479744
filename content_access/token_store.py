"""
Issued access token registry backed by Redis.

Every issued token is recorded under its JTI together with the (user, content)
pair it was minted for, so it can be revoked on its own or along with every
other token that user holds for the same content item.

Redis errors never reach callers: writes are skipped with a warning and
revocation checks answer "not revoked".

Keys (all under the content_access prefix):
    issued:{jti}                    JSON {"user_id", "content_id", "exp"}; expires with the token
    revoked:{jti}                   revocation marker; kept until the token would have expired
    holder:{user_id}:{content_id}   set of JTIs still live for that pair
"""

import json
import logging
import time
from typing import Optional

import redis

from content_access.config import AccessControlSettings, load_settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "content_access"
REVOCATION_FALLBACK_TTL = 86400


def _issued_key(jti: str) -> str:
    return f"{KEY_PREFIX}:issued:{jti}"


def _revoked_key(jti: str) -> str:
    return f"{KEY_PREFIX}:revoked:{jti}"


def _holder_key(user_id: str, content_id: str) -> str:
    return f"{KEY_PREFIX}:holder:{user_id}:{content_id}"


def _seconds_until(exp: int) -> int:
    return max(int(exp - time.time()), 1)


def _as_text(value) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


def _holder_of(record) -> Optional[str]:
    """Holder set key named by an issued-token record, or None if unreadable."""
    if record is None:
        return None
    try:
        data = json.loads(record)
        return _holder_key(data["user_id"], data["content_id"])
    except (ValueError, KeyError, TypeError):
        return None


class AccessTokenStore:
    """
    Registry of issued access token JTIs.

    Usage:
        store = AccessTokenStore(redis.Redis.from_url(url))
        store.store_token(jti, user_id, content_id, exp)
        store.revoke_token(jti)
        store.is_revoked(jti)  # True
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    def store_token(self, jti: str, user_id: str, content_id: str, exp: int) -> None:
        """Record an issued token until its expiry."""
        ttl = _seconds_until(exp)
        holder = _holder_key(user_id, content_id)
        record = json.dumps({"user_id": user_id, "content_id": content_id, "exp": exp})
        try:
            pipe = self._redis.pipeline()
            pipe.setex(_issued_key(jti), ttl, record)
            pipe.sadd(holder, jti)
            # Tokens for one pair share a lifetime, so the newest one sets the holder expiry
            pipe.expire(holder, ttl)
            pipe.execute()
        except Exception:
            logger.warning(
                "Could not record issued access token",
                extra={"jti": jti, "user_id": user_id, "content_id": content_id},
                exc_info=True,
            )

    def is_revoked(self, jti: str) -> bool:
        """
        True if the JTI carries a revocation marker.

        Answers False when Redis is unavailable; tokens expire within the
        configured lifetime regardless.
        """
        try:
            return bool(self._redis.exists(_revoked_key(jti)))
        except Exception:
            logger.warning("Revocation check unavailable", extra={"jti": jti}, exc_info=True)
            return False

    def revoke_token(self, jti: str) -> bool:
        """Revoke one token and drop it from its holder set. True when written."""
        issued_key = _issued_key(jti)
        try:
            record = self._redis.get(issued_key)
            remaining = self._redis.ttl(issued_key)
            holder = _holder_of(record)

            pipe = self._redis.pipeline()
            self._queue_revocation(pipe, jti, remaining)
            if holder is not None:
                pipe.srem(holder, jti)
            pipe.execute()
        except Exception:
            logger.warning("Access token revocation failed", extra={"jti": jti}, exc_info=True)
            return False

        logger.info("Access token revoked", extra={"jti": jti, "tracked": holder is not None})
        return True

    def revoke_all_for_user_content(self, user_id: str, content_id: str) -> int:
        """Revoke every live token user_id holds for content_id. Returns how many."""
        holder = _holder_key(user_id, content_id)
        try:
            jtis = [_as_text(member) for member in self._redis.smembers(holder)]
            if not jtis:
                return 0

            lookup = self._redis.pipeline()
            for jti in jtis:
                lookup.ttl(_issued_key(jti))
            remaining = lookup.execute()

            pipe = self._redis.pipeline()
            for jti, ttl in zip(jtis, remaining):
                self._queue_revocation(pipe, jti, ttl)
            pipe.delete(holder)
            pipe.execute()
        except Exception:
            logger.warning(
                "Bulk access token revocation failed",
                extra={"user_id": user_id, "content_id": content_id},
                exc_info=True,
            )
            return 0

        logger.info(
            "Access tokens revoked for user and content",
            extra={"user_id": user_id, "content_id": content_id, "revoked_count": len(jtis)},
        )
        return len(jtis)

    def get_active_token_count(self, user_id: str, content_id: str) -> int:
        """Live (issued, unrevoked) tokens for the pair. 0 when Redis is unavailable."""
        try:
            return int(self._redis.scard(_holder_key(user_id, content_id)) or 0)
        except Exception:
            logger.warning(
                "Active access token count unavailable",
                extra={"user_id": user_id, "content_id": content_id},
                exc_info=True,
            )
            return 0

    @staticmethod
    def _queue_revocation(pipe, jti: str, remaining: Optional[int]) -> None:
        ttl = remaining if remaining is not None and remaining > 0 else REVOCATION_FALLBACK_TTL
        pipe.setex(_revoked_key(jti), ttl, "1")
        pipe.delete(_issued_key(jti))


def create_token_store(settings: Optional[AccessControlSettings] = None) -> Optional[AccessTokenStore]:
    """
    Build a store from settings.redis_url, or None when it is unset.

    An unreachable server still yields a store; its operations degrade.
    """
    settings = settings or load_settings()
    if not settings.redis_url:
        return None

    client = redis.Redis.from_url(settings.redis_url, decode_responses=False)
    try:
        client.ping()
    except Exception:
        logger.warning("Redis unreachable; access token revocation degraded", exc_info=True)
    return AccessTokenStore(client)
