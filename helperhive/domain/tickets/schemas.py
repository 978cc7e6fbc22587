"""Ticket domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TicketCreate(BaseModel):
    against_id: str
    service_id: Optional[str] = None
    subject: str = Field(..., max_length=255)
    description: str


class TicketResolve(BaseModel):
    admin_response: Optional[str] = Field(None, max_length=5000)


class TicketResponse(BaseModel):
    id: str
    from_id: Optional[str]
    against_id: Optional[str]
    service_id: Optional[str]
    subject: str
    description: str
    status: str
    admin_response: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
