"""FastAPI dependencies for authentication and database access."""

import logging
from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from letter_to_you.core.errors import AuthError, ValidationError
from letter_to_you.core.security import (
    CHECKOUT_USER_COOKIE,
    AuthUser,
    decode_access_token,
    user_from_claims,
)
from letter_to_you.db.session import SessionLocal

logger = logging.getLogger(__name__)

INTERNAL_SECRET_HEADER = "X-Internal-Secret"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_optional_user(request: Request) -> AuthUser | None:
    """
    Authenticated user if a valid bearer token is present, else None.

    An invalid or expired token is an error, not an anonymous request.
    """
    token = _bearer_token(request)
    if not token:
        return None
    try:
        claims = decode_access_token(token)
    except jwt.InvalidTokenError:
        raise AuthError("Invalid or expired session")
    return user_from_claims(claims)


def get_current_user(user: AuthUser | None = Depends(get_optional_user)) -> AuthUser:
    """
    Require a signed-in user.

    Raises:
        AuthError (401): Missing, invalid or expired access token
    """
    if user is None:
        raise AuthError("Not authenticated")
    return user


def get_current_user_id(user: AuthUser = Depends(get_current_user)) -> UUID:
    return parse_user_id(user.id)


def parse_user_id(value: str | UUID | None) -> UUID:
    """Parse a user id, raising ValidationError (400) on garbage."""
    if isinstance(value, UUID):
        return value
    if not value:
        raise ValidationError("Missing required field: userId")
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError("Invalid userId")


def resolve_user_id(
    request: Request,
    claimed: str | UUID | None,
    user: AuthUser | None,
) -> UUID:
    """
    Pick the acting user for endpoints that accept an explicit userId.

    Order: verified bearer token, then the request body's userId, then the
    checkout cookie (weak fallback after a cross-site redirect). A body
    userId that disagrees with a verified token is rejected.
    """
    if user is not None:
        user_id = parse_user_id(user.id)
        if claimed and parse_user_id(claimed) != user_id:
            raise AuthError("User mismatch")
        return user_id
    if claimed:
        return parse_user_id(claimed)
    cookie_user = request.cookies.get(CHECKOUT_USER_COOKIE)
    if cookie_user:
        logger.info("Using checkout cookie user id fallback")
        return parse_user_id(cookie_user)
    raise ValidationError("Missing required field: userId")
