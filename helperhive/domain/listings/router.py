"""Listing router - FastAPI endpoints for service listings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import ServiceCreate, ServiceResponse, TimeSlotsResponse
from .service import ListingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/listings", tags=["Listings"])


def get_listing_service(db: Session = Depends(get_db)) -> ListingService:
    """Dependency injection for ListingService"""
    return ListingService(db)


@router.get("", response_model=list[ServiceResponse])
async def list_services(
    category: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    """Approved services, optionally filtered by category and city"""
    return service.list_public(category, city)


@router.get("/mine", response_model=list[ServiceResponse])
async def list_my_services(
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    return service.list_mine(current_user)


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    """Register a new service listing (pending admin approval)"""
    return service.create_listing(data, current_user)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    return service.get_listing(service_id, current_user)


@router.get("/{service_id}/slots", response_model=TimeSlotsResponse)
async def get_time_slots(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    return TimeSlotsResponse(service_id=service_id, slots=service.get_time_slots(service_id, current_user))


@router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    return service.delete_listing(service_id, current_user)
