"""Profile router - the signed-in user's display name and email."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from letter_to_you.core.deps import get_current_user, get_db
from letter_to_you.core.security import AuthUser
from letter_to_you.schemas.profile import ProfileRead, ProfileUpdate
from letter_to_you.services import profile_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileRead)
def get_profile(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return profile_service.ensure_profile(db, user)


@router.patch("", response_model=ProfileRead)
def update_profile(
    data: ProfileUpdate,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the display name used in delivered letters."""
    profile = profile_service.ensure_profile(db, user)
    return profile_service.update_display_name(db, profile, data.display_name)
