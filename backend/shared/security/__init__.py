"""
Security module: access token verification and request context.
"""

from shared.security.auth import (
    RequestContext,
    sign_jwt,
    verify_jwt,
    get_bearer_token,
    current_user_context,
)

__all__ = [
    "RequestContext",
    "sign_jwt",
    "verify_jwt",
    "get_bearer_token",
    "current_user_context",
]
