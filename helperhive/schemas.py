from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .services.storage_service import resolve_url
from .shared.validators import validate_email, validate_national_id, validate_phone


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = None
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class UserResponse(BaseModel):
    id: str
    name: Optional[str]
    email: str
    email_verified: bool
    phone: Optional[str]
    address: Optional[str]
    city: Optional[str]
    date_of_birth: Optional[str]
    is_service_provider: bool
    is_admin: bool
    request_status: str
    rejection_reason: Optional[str] = None
    avatar_url: Optional[str] = None
    national_id_front_url: Optional[str] = None
    national_id_back_url: Optional[str] = None
    is_online: bool
    last_seen: Optional[datetime] = None
    created_at: Optional[datetime] = None

    # Columns hold object keys; clients get a loadable URL
    @field_validator("avatar_url", "national_id_front_url", "national_id_back_url")
    @classmethod
    def resolve_stored_file(cls, v):
        return resolve_url(v)

    class Config:
        from_attributes = True


class PublicUserResponse(BaseModel):
    """What other marketplace members may see about a user"""

    id: str
    name: Optional[str]
    city: Optional[str]
    avatar_url: Optional[str] = None
    is_service_provider: bool
    is_online: bool
    last_seen: Optional[datetime] = None

    @field_validator("avatar_url")
    @classmethod
    def resolve_avatar(cls, v):
        return resolve_url(v)

    class Config:
        from_attributes = True


class OnboardingSubmission(BaseModel):
    """Provider onboarding request; ID images are uploaded beforehand through /upload"""

    phone: str
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    national_id_number: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_phone(v)

    @field_validator("national_id_number")
    @classmethod
    def validate_national_id(cls, v):
        return validate_national_id(v)


class PresenceUpdate(BaseModel):
    is_online: bool


class SignUpRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return validate_email(v)


class SignInRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return validate_email(v)


class PasswordResetRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return validate_email(v)


class SessionResponse(BaseModel):
    user_id: str
    id_token: str
    refresh_token: str
    expires_in: int
    email_verified: bool = False


class CurrentUserResponse(BaseModel):
    id: str
    email_verified: bool


class NotificationResponse(BaseModel):
    id: str
    recipient_id: str
    booking_id: Optional[str]
    message: str
    read: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str
