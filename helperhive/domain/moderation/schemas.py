"""Moderation domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field

from ...schemas import UserResponse
from ..listings.schemas import ServiceResponse
from ..tickets.schemas import TicketResponse


class RejectUserRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class DashboardResponse(BaseModel):
    pending_users: list[UserResponse]
    service_providers: list[UserResponse]
    pending_services: list[ServiceResponse]
    approved_services: list[ServiceResponse]
    open_tickets: list[TicketResponse]
