"""Booking router - FastAPI endpoints for the booking lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...shared.validators import validate_uuid
from .schemas import (
    BookingCreate,
    BookingDetailResponse,
    BookingEventResponse,
    BookingResponse,
    BookingTransitionRequest,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Book a service listing"""
    return service.create_booking(current_user, data.service_id, data.scheduled_at, data.duration_hours)


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    role: Optional[str] = Query(None, description="customer or provider"),
    status: Optional[str] = Query(None),
    counterpart_id: Optional[str] = Query(None, description="only bookings shared with this user"),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings the current user takes part in, optionally filtered"""
    return service.list_bookings(current_user, role, status, counterpart_id)


@router.get("/latest", response_model=BookingDetailResponse)
async def get_latest_booking_with(
    counterpart_id: str = Query(...),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Latest booking with a chat counterpart, including can_review and can_message"""
    detail = service.latest_booking_with(current_user, counterpart_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="No booking with this user")
    return detail


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    if not validate_uuid(booking_id):
        raise HTTPException(status_code=400, detail="Invalid booking ID format")
    return service.get_booking_detail(booking_id, current_user)


@router.get("/{booking_id}/history", response_model=list[BookingEventResponse])
async def get_booking_history(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_history(booking_id, current_user)


@router.get("/{booking_id}/review-eligibility")
async def get_review_eligibility(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return {"booking_id": booking_id, "eligible": service.is_review_eligible(booking_id, current_user.id)}


@router.post("/{booking_id}/transition", response_model=BookingResponse)
async def transition_booking(
    booking_id: str,
    data: BookingTransitionRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Accept, reject, cancel or complete a booking"""
    if not validate_uuid(booking_id):
        raise HTTPException(status_code=400, detail="Invalid booking ID format")
    return service.transition(booking_id, current_user.id, data.action)
