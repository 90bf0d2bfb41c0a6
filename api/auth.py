"""
Bearer-token authorization for gated routes.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.errors import NotAuthorized
from api.tokens import TokenService

logger = structlog.get_logger(__name__)

# Security scheme; a missing or non-Bearer header yields None instead of a 403
security = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> str:
    """
    Admit the request only with a valid bearer token.

    Args:
        request: Incoming request; receives ``state.user_email`` on success
        credentials: Parsed ``Authorization: Bearer <token>`` header
        tokens: Token service used for verification

    Returns:
        The verified email

    Raises:
        NotAuthorized: For any missing, malformed, forged or expired token
    """
    token = credentials.credentials.strip() if credentials else ""
    if not token:
        logger.warning("Request rejected", reason="missing_token", path=request.url.path)
        raise NotAuthorized()

    result = tokens.verify(token)
    if not result.ok:
        logger.warning("Request rejected", reason=result.reason, path=request.url.path)
        raise NotAuthorized()

    request.state.user_email = result.email
    return result.email
