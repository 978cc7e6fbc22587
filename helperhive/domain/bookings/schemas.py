"""Booking domain schemas - Pydantic models for validation"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BookingAction(str, enum.Enum):
    ACCEPT = "Accept"
    REJECT = "Reject"
    CANCEL = "Cancel"
    COMPLETE = "Complete"


class BookingCreate(BaseModel):
    """Schema for booking a service"""

    service_id: str
    scheduled_at: datetime
    duration_hours: int = Field(1, description="Requested working hours")


class BookingTransitionRequest(BaseModel):
    action: BookingAction


class BookingResponse(BaseModel):
    id: str
    customer_id: Optional[str]
    provider_id: Optional[str]
    service_id: Optional[str]
    service_name: str
    scheduled_at: datetime
    duration_hours: int
    status: str
    has_reviewed: bool
    is_completed: bool
    participants: list[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingDetailResponse(BookingResponse):
    """Booking plus the flags derived for the requesting user"""

    can_review: bool = False
    can_message: bool = False
    allowed_actions: list[BookingAction] = []


class BookingEventResponse(BaseModel):
    action: str
    from_status: Optional[str]
    to_status: str
    actor_id: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
