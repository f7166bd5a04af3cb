"""
Auth utilities for the marketplace API.

Validates HS256 JWTs (claims: sub, email) and extracts the caller identity.
Without AUTH_JWT_SECRET, falls back to X-User-Id / X-User-Email headers for
local development and tests.
"""
from dataclasses import dataclass
from typing import Optional
import logging

import jwt
from fastapi import Depends, Header, HTTPException, Request

from marketplace.core.admin import AdminAllowlist
from marketplace.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""
    user_id: str
    email: Optional[str] = None


def verify_jwt(token: str, secret: Optional[str] = None) -> Optional[Identity]:
    """
    Verify a bearer token and build an Identity from its claims.

    Returns None when no secret is configured.

    Raises:
        HTTPException 401: Invalid or expired token
    """
    key = secret or settings.AUTH_JWT_SECRET
    if not key:
        logger.debug("No AUTH_JWT_SECRET configured, skipping JWT validation")
        return None

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=["HS256"],
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return Identity(user_id=str(user_id), email=payload.get("email"))


def get_optional_identity(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Internal callers and tests"),
    x_user_email: Optional[str] = Header(None),
) -> Optional[Identity]:
    """
    Resolve the caller if any credentials were presented.

    Priority:
    1. Bearer JWT from Authorization header
    2. X-User-Id (+ X-User-Email) headers, only while AUTH_JWT_SECRET is unset
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        identity = verify_jwt(auth_header[7:].strip())
        if identity:
            return identity

    if settings.AUTH_JWT_SECRET:
        if x_user_id:
            logger.warning(
                "[auth] header identity ignored, bearer token required",
                extra={"user_id": x_user_id, "error_code": "unauthorized"},
            )
        return None

    if x_user_id:
        return Identity(user_id=x_user_id, email=x_user_email)

    return None


def get_current_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    """
    FastAPI dependency: require an authenticated caller.

    Raises:
        HTTPException 401: Missing authentication
    """
    if identity is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return identity


def get_allowlist() -> AdminAllowlist:
    """Allow-list built from the current settings."""
    return AdminAllowlist.from_settings(settings)


def require_admin(
    identity: Identity = Depends(get_current_identity),
    allowlist: AdminAllowlist = Depends(get_allowlist),
) -> Identity:
    """
    FastAPI dependency: require an allow-listed admin.

    Usage:
        @router.get("/diagnostics")
        def diagnostics(admin: Identity = Depends(require_admin)):
            ...
    """
    match = allowlist.match(identity.email)
    if not match.is_admin:
        logger.warning(
            "[auth] admin denied",
            extra={"user_id": identity.user_id, "error_code": match.reason},
        )
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity
