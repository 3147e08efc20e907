"""
Authentication Module

Shared-secret bearer authentication for service-to-service calls. End-user
identity is taken from the URL; the caller (the app backend) is trusted to
have authenticated the user.
"""

import logging

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


async def verify_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> HTTPAuthorizationCredentials:
    """
    Verify shared secret token.

    Raises:
        HTTPException: 401 if the token is missing or invalid,
            500 if auth is required but no secret is configured
    """
    if not settings.auth_required:
        return credentials

    if not settings.board_api_secret:
        raise HTTPException(status_code=500, detail="Server authentication not configured")

    if credentials is None or credentials.credentials != settings.board_api_secret:
        logger.warning("Rejected request with invalid authentication token")
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    return credentials
