"""
Authentication dependencies for route handlers
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from podadmin.auth.identity import AuthenticationError, Identity, IdentityProvider
from podadmin.config import Settings

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


async def get_current_user(
    authorization: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    """
    Resolve the bearer token to the caller's identity

    Raises:
        HTTPException 401: missing header or token rejected by the provider
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized: No token provided")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized: No token provided")

    try:
        return await provider.resolve(token)
    except AuthenticationError as e:
        logger.info("Token validation failed: %s", e)
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid token")


async def require_admin(
    identity: Identity = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """
    Admin gate for /admin routes

    With an empty ADMIN_EMAILS allowlist every authenticated user is let
    through (legacy deployments); otherwise the caller's email must be listed.
    """
    if not settings.ADMIN_EMAILS:
        logger.warning(
            "ADMIN_EMAILS is empty, granting admin access to user %s (%s)",
            identity.user_id, identity.email,
        )
        return identity

    if not identity.email or identity.email.lower() not in settings.ADMIN_EMAILS:
        logger.warning("Admin access denied for user %s (%s)", identity.user_id, identity.email)
        raise HTTPException(status_code=403, detail="Access denied")

    return identity
