import logging

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..auth import get_current_user, get_or_create_user, security, verify_firebase_token
from ..database import get_db
from ..models import User
from ..schemas import (
    CurrentUserResponse,
    MessageResponse,
    PasswordResetRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    UserResponse,
)
from ..services.identity_service import identity_provider
from ..shared.clock import utcnow
from .users import publish_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=UserResponse, status_code=201)
async def sign_up(data: SignUpRequest, db: Session = Depends(get_db)):
    """Create the Firebase account and the matching user record"""
    uid = identity_provider.sign_up(data.email, data.password, data.name.strip())
    user = get_or_create_user(db, uid, data.email, data.name.strip())
    logger.info(f"✅ Signed up {user.id}")
    return user


@router.post("/signin", response_model=SessionResponse)
async def sign_in(data: SignInRequest):
    return await identity_provider.sign_in(data.email, data.password)


@router.post("/signout", response_model=MessageResponse)
async def sign_out(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Revoke the user's sessions and mark them offline"""
    identity_provider.sign_out(current_user.id)
    current_user.is_online = False
    current_user.last_seen = utcnow()
    db.commit()
    db.refresh(current_user)
    publish_user(current_user)
    logger.info(f"👋 Signed out {current_user.id}")
    return MessageResponse(message="Signed out")


@router.post("/password-reset", response_model=MessageResponse)
async def send_password_reset(data: PasswordResetRequest):
    await identity_provider.send_password_reset(data.email)
    # Same answer whether or not the email has an account
    return MessageResponse(message="If an account exists for this email, a reset link has been sent")


@router.get("/me", response_model=CurrentUserResponse)
async def current_identity(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """The identity carried by the bearer token"""
    decoded_token = await verify_firebase_token(credentials.credentials)
    return identity_provider.current_user(decoded_token)
