import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.moderation.service import ModerationService
from ..models import User
from ..realtime import live_queries
from ..schemas import OnboardingSubmission, PresenceUpdate, PublicUserResponse, UserResponse, UserUpdate
from ..shared.clock import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def publish_user(user: User) -> None:
    try:
        live_queries.publish("users", UserResponse.model_validate(user).model_dump(mode="json"))
    except Exception as e:
        logger.error(f"❌ Failed to publish user {user.id}: {e}")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update profile fields; identity and role fields are not editable here"""
    updates = data.model_dump(exclude_unset=True)
    if "date_of_birth" in updates and updates["date_of_birth"] is not None:
        updates["date_of_birth"] = updates["date_of_birth"].isoformat()
    for field, value in updates.items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    logger.info(f"✏️ Profile updated for {current_user.id}: {sorted(updates)}")
    publish_user(current_user)
    return current_user


@router.post("/me/onboarding", response_model=UserResponse)
async def submit_onboarding(
    data: OnboardingSubmission,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Ask to become a service provider"""
    return ModerationService(db).submit_onboarding(current_user, data)


@router.post("/me/presence", response_model=UserResponse)
async def update_presence(
    data: PresenceUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    current_user.is_online = data.is_online
    if not data.is_online:
        current_user.last_seen = utcnow()
    db.commit()
    db.refresh(current_user)
    publish_user(current_user)
    return current_user


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_public_profile(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
