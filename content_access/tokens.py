"""
Short-lived signed access tokens for download and streaming endpoints.

A token is a capability: it names one user and one content item and carries
no access decision. Callers issue it only after check_content_access grants
access, and the redeeming endpoint must still confirm the token's contentId
matches the requested resource (see verify_for_content).

Security Requirements:
- HS256 with a server-held secret
- Lifetime: 1 hour (configurable)
- Optional revocation by JTI when a token store is configured
"""

import logging
import uuid
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

import jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from content_access.config import AccessControlSettings, load_settings
from content_access.db_base import utcnow
from content_access.errors import (
    AccessTokenError,
    TokenContentMismatchError,
    TokenExpiredError,
    TokenValidationError,
)
from content_access.token_store import AccessTokenStore, create_token_store

logger = logging.getLogger(__name__)


class AccessTokenConfig(BaseModel):
    """Configuration for access token signing."""
    secret: str = Field(min_length=1)
    algorithm: str = "HS256"
    lifetime_seconds: int = Field(default=3600, gt=0)
    issuer: str = "content-access"

    @classmethod
    def from_settings(cls, settings: AccessControlSettings) -> "AccessTokenConfig":
        if not settings.token_secret:
            raise ValueError("CONTENT_ACCESS_TOKEN_SECRET environment variable is required")
        return cls(
            secret=settings.token_secret,
            algorithm=settings.token_algorithm,
            lifetime_seconds=settings.token_lifetime_seconds,
            issuer=settings.token_issuer,
        )


class AccessTokenClaims(BaseModel):
    """Decoded access token payload."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_id: str = Field(alias="userId")
    content_id: str = Field(alias="contentId")
    iat: int
    exp: int
    jti: Optional[str] = None
    iss: Optional[str] = None

    def is_for_content(self, content_id: Optional[str]) -> bool:
        return content_id is not None and self.content_id == str(content_id)


class AccessTokenService:
    """
    Issues and verifies access tokens.

    Tokens include:
    - userId / contentId (the capability)
    - iat / exp (short lifetime)
    - jti (revocation handle)
    - iss (rejects tokens from other signers sharing a secret)
    """

    def __init__(
        self,
        config: Optional[AccessTokenConfig] = None,
        token_store: Optional[AccessTokenStore] = None,
    ):
        """
        Args:
            config: Signing configuration. If not provided, loads from environment.
            token_store: Optional revocation store. Without one, tokens are
                valid until natural expiry.
        """
        self.config = config or AccessTokenConfig.from_settings(load_settings())
        self.token_store = token_store

    def generate_access_token(
        self,
        user_id: Optional[str],
        content_id: Optional[str],
        *,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Sign a token for (user_id, content_id).

        Issuance is unconditional; authorization is the caller's job. Empty or
        missing ids are encoded as empty strings rather than rejected.
        """
        issued_at = now or utcnow()
        expires_at = issued_at + timedelta(seconds=self.config.lifetime_seconds)
        jti = str(uuid.uuid4())
        user_claim = "" if user_id is None else str(user_id)
        content_claim = "" if content_id is None else str(content_id)

        payload = {
            "userId": user_claim,
            "contentId": content_claim,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": jti,
            "iss": self.config.issuer,
        }
        token = jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)

        if self.token_store is not None:
            self.token_store.store_token(jti=jti, user_id=user_claim, content_id=content_claim, exp=payload["exp"])

        logger.info(
            "Issued content access token",
            extra={
                "user_id": user_claim,
                "content_id": content_claim,
                "jti": jti,
                "expires_at": expires_at.isoformat(),
            },
        )
        return token

    def validate_token(self, token: str) -> AccessTokenClaims:
        """
        Validate and decode a token.

        Raises:
            TokenExpiredError: If the token has expired
            TokenValidationError: If the token is malformed, forged, from another
                issuer, missing claims or revoked
        """
        if not token or not isinstance(token, str):
            raise TokenValidationError("Token is required")
        try:
            payload = jwt.decode(
                token,
                self.config.secret,
                algorithms=[self.config.algorithm],
                issuer=self.config.issuer,
                options={"require": ["exp", "iat"]},
            )
            claims = AccessTokenClaims(**payload)
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenValidationError(f"Invalid token: {e}")
        except ValidationError as e:
            raise TokenValidationError(f"Invalid token claims: {e.error_count()} error(s)")

        if claims.jti and self.token_store is not None and self.token_store.is_revoked(claims.jti):
            raise TokenValidationError("Token has been revoked")
        return claims

    def verify_access_token(self, token: Optional[str]) -> Optional[AccessTokenClaims]:
        """
        Non-raising verification.

        Returns None for any expired, malformed, forged or revoked token;
        callers treat None as an unauthenticated request.
        """
        try:
            return self.validate_token(token)
        except AccessTokenError as e:
            logger.info("Access token rejected", extra={"error_code": e.error_code, "detail": e.message})
            return None

    def validate_for_content(self, token: str, content_id: Optional[str]) -> AccessTokenClaims:
        """
        Validate a token and require it to have been minted for content_id.

        Raises:
            TokenExpiredError / TokenValidationError: as validate_token
            TokenContentMismatchError: token is valid but names another content item
        """
        claims = self.validate_token(token)
        if not claims.is_for_content(content_id):
            logger.warning(
                "Access token presented for a different content item",
                extra={
                    "user_id": claims.user_id,
                    "token_content_id": claims.content_id,
                    "requested_content_id": content_id,
                    "jti": claims.jti,
                },
            )
            raise TokenContentMismatchError(claims.content_id, content_id)
        return claims

    def verify_for_content(self, token: Optional[str], content_id: Optional[str]) -> Optional[AccessTokenClaims]:
        """Non-raising validate_for_content."""
        try:
            return self.validate_for_content(token, content_id)
        except AccessTokenError as e:
            logger.info("Access token rejected", extra={"error_code": e.error_code, "detail": e.message})
            return None

    def revoke_token(self, token: str) -> bool:
        """Revoke a token by its JTI. False when no store is configured or the token is unreadable."""
        if self.token_store is None:
            return False
        try:
            payload = jwt.decode(
                token,
                self.config.secret,
                algorithms=[self.config.algorithm],
                issuer=self.config.issuer,
                options={"verify_exp": False},
            )
        except jwt.InvalidTokenError:
            logger.warning("Cannot revoke unreadable access token")
            return False

        jti = payload.get("jti")
        if not jti:
            return False
        return self.token_store.revoke_token(jti)

    def revoke_all_for_user_content(self, user_id: str, content_id: str) -> int:
        """Revoke every tracked token for (user_id, content_id). 0 without a store."""
        if self.token_store is None:
            return 0
        return self.token_store.revoke_all_for_user_content(user_id, content_id)


@lru_cache(maxsize=1)
def get_access_token_service() -> AccessTokenService:
    """
    Process-wide service built once from environment settings.

    The Redis client behind the token store is created on first use and
    reused by every request. Call get_access_token_service.cache_clear()
    after changing the environment.

    Raises ValueError when no signing secret is configured (not cached).
    """
    settings = load_settings()
    return AccessTokenService(
        config=AccessTokenConfig.from_settings(settings),
        token_store=create_token_store(settings),
    )
