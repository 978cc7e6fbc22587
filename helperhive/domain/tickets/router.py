"""Ticket router - FastAPI endpoints for support tickets"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import TicketCreate, TicketResponse
from .service import TicketService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


def get_ticket_service(db: Session = Depends(get_db)) -> TicketService:
    """Dependency injection for TicketService"""
    return TicketService(db)


@router.post("", response_model=TicketResponse, status_code=201)
async def create_ticket(
    data: TicketCreate,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return service.create_ticket(data, current_user)


@router.get("", response_model=list[TicketResponse])
async def list_my_tickets(
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    """Tickets filed by or against the current user"""
    return service.list_my_tickets(current_user)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: str,
    current_user: User = Depends(get_current_user),
    service: TicketService = Depends(get_ticket_service),
):
    return service.get_ticket(ticket_id, current_user)
