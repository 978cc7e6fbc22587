"""Admin router - FastAPI endpoints for moderation"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...schemas import UserResponse
from ..listings.schemas import ServiceResponse
from ..tickets.schemas import TicketResolve, TicketResponse
from .schemas import DashboardResponse, RejectUserRequest
from .service import ModerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_moderation_service(db: Session = Depends(get_db)) -> ModerationService:
    """Dependency injection for ModerationService"""
    return ModerationService(db)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    """Pending requests, providers, listings and open tickets in one call"""
    return service.dashboard(current_user)


# ============================================================================
# Users
# ============================================================================


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    request_status: Optional[str] = Query(None),
    is_service_provider: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.list_users(current_user, request_status, is_service_provider)


@router.post("/users/{user_id}/approve", response_model=UserResponse)
async def approve_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.approve_user(current_user, user_id)


@router.post("/users/{user_id}/reject", response_model=UserResponse)
async def reject_user(
    user_id: str,
    data: Optional[RejectUserRequest] = None,
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.reject_user(current_user, user_id, data.reason if data else None)


@router.delete("/users/{user_id}")
async def remove_provider(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    """Remove a service provider and their listings"""
    return service.remove_provider(current_user, user_id)


# ============================================================================
# Listings
# ============================================================================


@router.get("/services", response_model=list[ServiceResponse])
async def list_services(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.list_listings(current_user, status)


@router.post("/services/{service_id}/approve", response_model=ServiceResponse)
async def approve_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.approve_listing(current_user, service_id)


@router.post("/services/{service_id}/suspend", response_model=ServiceResponse)
async def suspend_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    """Send an approved listing back to Pending"""
    return service.suspend_listing(current_user, service_id)


@router.delete("/services/{service_id}")
async def delete_service(
    service_id: str,
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.delete_listing(current_user, service_id)


# ============================================================================
# Tickets
# ============================================================================


@router.get("/tickets", response_model=list[TicketResponse])
async def list_tickets(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.list_tickets(current_user, status)


@router.post("/tickets/{ticket_id}/resolve", response_model=TicketResponse)
async def resolve_ticket(
    ticket_id: str,
    data: Optional[TicketResolve] = None,
    current_user: User = Depends(get_current_user),
    service: ModerationService = Depends(get_moderation_service),
):
    return service.resolve_ticket(current_user, ticket_id, data.admin_response if data else None)
