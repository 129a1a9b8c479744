"""
Content access error hierarchy.

Provides:
- ContentAccessError: base for all content access failures
- AccessTokenError: token could not be redeemed
- TokenExpiredError: token signature is valid but exp has passed
- TokenValidationError: malformed, forged, wrong issuer, missing claims or revoked
- TokenContentMismatchError: valid token presented for a different content item

Evaluator operations never raise these; they are used by the raising token
API and by the HTTP integration layer.
"""

from typing import Optional


class ContentAccessError(Exception):
    """Base exception for content access failures."""

    error_code = "CONTENT_ACCESS_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class AccessTokenError(ContentAccessError):
    """Base exception for access token failures."""

    error_code = "TOKEN_ERROR"


class TokenExpiredError(AccessTokenError):
    """Token has expired."""

    error_code = "TOKEN_EXPIRED"


class TokenValidationError(AccessTokenError):
    """Token validation failed."""

    error_code = "TOKEN_INVALID"


class TokenContentMismatchError(AccessTokenError):
    """
    Raised when a valid token was minted for another content item.

    Carries both ids so callers can log the attempted redemption.
    """

    error_code = "TOKEN_CONTENT_MISMATCH"

    def __init__(self, token_content_id: Optional[str], requested_content_id: Optional[str]):
        self.token_content_id = token_content_id
        self.requested_content_id = requested_content_id
        super().__init__("Access token is not valid for the requested content")

    def to_dict(self) -> dict:
        # token_content_id stays server-side
        return {
            "error": self.error_code,
            "message": self.message,
            "content_id": self.requested_content_id,
        }
