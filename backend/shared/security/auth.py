"""
Access token verification.

Tokens are issued by the external auth service; this module only verifies
them and turns the claims into an immutable RequestContext that every
service call receives explicitly.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Header

from shared.config.settings import JWT_SECRET, JWT_ISSUER, JWT_AUDIENCE, settings
from shared.config.logging import auth_logger as logger, mask_email
from shared.utils.exceptions import UnauthorizedError


@dataclass(frozen=True)
class RequestContext:
    """Who is calling and for which tenant. Built once per request."""

    tenant_id: int
    user_id: int
    location_id: int | None = None
    user_email: str | None = None

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "RequestContext":
        location_id = claims.get("location_id")
        return cls(
            tenant_id=claims["tenant_id"],
            user_id=int(claims["sub"]),
            location_id=int(location_id) if location_id is not None else None,
            user_email=claims.get("email"),
        )


# =============================================================================
# JWT Functions
# =============================================================================


def sign_jwt(payload: dict[str, Any], ttl_seconds: int | None = None) -> str:
    """
    Sign an access token with the configured secret.

    Used by the CLI and the test-suite to mint tokens the way the auth
    service does.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        UnauthorizedError: If the token is invalid, expired, or lacks the
            sub / tenant_id claims.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError as e:
        # Log the actual error, return a generic message
        logger.warning("JWT validation failed", error=str(e))
        raise UnauthorizedError("Invalid token")

    if "sub" not in payload:
        raise UnauthorizedError("Invalid token: missing subject claim")
    if "tenant_id" not in payload:
        raise UnauthorizedError("Invalid token: missing tenant_id claim")

    try:
        int(payload["sub"])
    except (ValueError, TypeError):
        raise UnauthorizedError("Invalid token: malformed subject claim")

    if not isinstance(payload["tenant_id"], int):
        raise UnauthorizedError("Invalid token: malformed tenant_id claim")

    return payload


def get_bearer_token(authorization: str | None) -> str:
    """Extract the bearer token from an Authorization header."""
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid Authorization header format. Expected: Bearer <token>")
    return authorization.split(" ", 1)[1].strip()


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> RequestContext:
    """
    FastAPI dependency returning the caller's RequestContext.

    Usage:
        @router.get("/orders")
        def list_orders(ctx: RequestContext = Depends(current_user_context)):
            ...
    """
    token = get_bearer_token(authorization)
    ctx = RequestContext.from_claims(verify_jwt(token))
    logger.debug(
        "Request authenticated",
        tenant_id=ctx.tenant_id,
        user_id=ctx.user_id,
        email=mask_email(ctx.user_email),
    )
    return ctx
