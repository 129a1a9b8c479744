"""
Runtime configuration for the content access core.

Settings come from environment variables. Services accept an explicit config
object, and fall back to load_settings() when none is given.
"""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./content_access.db"


class AccessControlSettings(BaseModel):
    """Environment-derived settings."""
    database_url: str = DEFAULT_DATABASE_URL
    token_secret: Optional[str] = None
    token_algorithm: str = "HS256"
    token_lifetime_seconds: int = Field(default=3600, gt=0)
    token_issuer: str = "content-access"
    redis_url: Optional[str] = None
    deny_alert_threshold: int = Field(default=10, gt=0)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            "Invalid integer in environment, using default",
            extra={"variable": name, "default": default},
        )
        return default


def load_settings() -> AccessControlSettings:
    """Build settings from the current environment."""
    return AccessControlSettings(
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        token_secret=os.getenv("CONTENT_ACCESS_TOKEN_SECRET") or None,
        token_algorithm=os.getenv("CONTENT_ACCESS_TOKEN_ALGORITHM", "HS256"),
        token_lifetime_seconds=_int_env("CONTENT_ACCESS_TOKEN_TTL_SECONDS", 3600),
        token_issuer=os.getenv("CONTENT_ACCESS_TOKEN_ISSUER", "content-access"),
        redis_url=os.getenv("REDIS_URL") or None,
        deny_alert_threshold=_int_env("CONTENT_ACCESS_DENY_ALERT_THRESHOLD", 10),
    )
