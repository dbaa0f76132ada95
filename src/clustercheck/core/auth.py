"""
Authentication for the admin (override) endpoints.

Bearer token checked against API_KEY. The health routes polled by the load
balancer stay public.
"""

from typing import Optional
from fastapi import HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from clustercheck.core.config import settings

# Create security scheme for Bearer tokens (auto_error=False makes it optional)
security = HTTPBearer(auto_error=False)


def verify_token(credentials: Optional[HTTPAuthorizationCredentials] = Security(security)) -> str:
    """
    Verify the Bearer token against the configured API key.

    Raises:
        HTTPException: 403 Forbidden if token is invalid or missing when auth is enabled
    """
    if not settings.AUTH_ENABLED:
        return "auth-disabled"

    if credentials is None:
        raise HTTPException(
            status_code=403,
            detail="Authentication required. Please provide a Bearer token."
        )

    token = credentials.credentials

    if not settings.API_KEY or token != settings.API_KEY:
        raise HTTPException(
            status_code=403,
            detail="Invalid API key. Please provide a valid Bearer token."
        )

    return token
