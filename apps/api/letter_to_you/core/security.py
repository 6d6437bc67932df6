"""Security utilities: access-token verification and continuity cookies."""

import secrets
from dataclasses import dataclass

import jwt
from fastapi import Response

from letter_to_you.core.config import settings


# Cookie names (survive the cross-site checkout redirect)
CHECKOUT_USER_COOKIE = "bl_uid"
RESTORE_TOKEN_COOKIE = "bl_restore"

ACCESS_TOKEN_AUDIENCE = "authenticated"


# =============================================================================
# Access Token (Supabase-issued JWT)
# =============================================================================

@dataclass
class AuthUser:
    """Identity carried by a verified access token."""

    id: str
    email: str | None = None
    display_name: str | None = None


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token issued by the auth collaborator.

    Tokens are HS256 JWTs signed with the project JWT secret and scoped to
    the ``authenticated`` audience.

    Raises:
        jwt.InvalidTokenError: If token is invalid or expired
    """
    if not settings.SUPABASE_JWT_SECRET:
        raise jwt.InvalidTokenError("SUPABASE_JWT_SECRET not configured")
    return jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=["HS256"],
        audience=ACCESS_TOKEN_AUDIENCE,
    )


def user_from_claims(claims: dict) -> AuthUser:
    """Build an AuthUser from verified token claims."""
    metadata = claims.get("user_metadata") or {}
    return AuthUser(
        id=str(claims["sub"]),
        email=claims.get("email"),
        display_name=metadata.get("display_name"),
    )


# =============================================================================
# Session Continuity (restore tokens + cookies)
# =============================================================================

def generate_restore_token() -> str:
    """Generate an unguessable single-use restore token (32 random bytes, hex)."""
    return secrets.token_hex(32)


def set_continuity_cookie(response: Response, name: str, value: str, max_age: int) -> None:
    """Set a short-lived HTTP-only cookie that survives the checkout redirect."""
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_continuity_cookie(response: Response, name: str) -> None:
    """Expire a continuity cookie."""
    response.delete_cookie(
        key=name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
