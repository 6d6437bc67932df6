"""Profiles mirror auth users (email + display name)."""

from uuid import UUID

from sqlalchemy.orm import Session

from letter_to_you.core.errors import AuthError
from letter_to_you.core.security import AuthUser
from letter_to_you.db.models import Profile


def get_profile(db: Session, user_id: UUID) -> Profile | None:
    return db.get(Profile, user_id)


def ensure_profile(db: Session, user: AuthUser) -> Profile:
    """
    Get or create the profile for an authenticated user.

    Email is refreshed from the token on every call; display name is only
    seeded, never overwritten (users edit it through the profile endpoint).
    """
    try:
        user_id = UUID(user.id)
    except ValueError:
        raise AuthError("Invalid session")
    profile = db.get(Profile, user_id)
    if profile is None:
        profile = Profile(id=user_id, email=user.email, display_name=user.display_name)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    if user.email and profile.email != user.email:
        profile.email = user.email
        db.commit()
        db.refresh(profile)
    return profile


def update_display_name(db: Session, profile: Profile, display_name: str | None) -> Profile:
    profile.display_name = (display_name or "").strip() or None
    db.commit()
    db.refresh(profile)
    return profile
