"""
Access token dependencies.

FastAPI dependencies for download and streaming routes. The route declares
which path parameter names the content item; the dependency rejects any
request whose token is missing, invalid or minted for other content.

Usage:
    @router.get("/content/{content_id}/stream")
    def stream(claims: AccessTokenClaims = Depends(require_content_token())):
        ...
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from content_access.errors import AccessTokenError, TokenContentMismatchError, TokenValidationError
from content_access.tokens import AccessTokenClaims, AccessTokenService, get_access_token_service

logger = logging.getLogger(__name__)

TOKEN_QUERY_PARAM = "token"


def _extract_token(request: Request) -> Optional[str]:
    """Token from the query string, else from an Authorization: Bearer header."""
    token = request.query_params.get(TOKEN_QUERY_PARAM)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def require_content_token(content_id_param: str = "content_id") -> Callable:
    """
    Factory for a dependency that redeems an access token for one content item.

    Args:
        content_id_param: Name of the path parameter holding the content id.

    Returns:
        FastAPI dependency returning AccessTokenClaims; raises 401 when the
        token is missing or invalid and 403 when it names another content item.
    """

    def check_content_token(
        request: Request,
        service: AccessTokenService = Depends(get_access_token_service),
    ) -> AccessTokenClaims:
        content_id = request.path_params.get(content_id_param)
        token = _extract_token(request)
        if not token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=TokenValidationError("Access token is required").to_dict(),
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            return service.validate_for_content(token, content_id)
        except TokenContentMismatchError as e:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=e.to_dict(),
            ) from e
        except AccessTokenError as e:
            logger.info(
                "Access token redemption rejected",
                extra={"content_id": content_id, "error_code": e.error_code},
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=e.to_dict(),
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

    return check_content_token
