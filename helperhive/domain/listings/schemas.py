"""Listing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import ServiceCategory


class ServiceCreate(BaseModel):
    """Schema for registering a service listing"""

    name: str = Field(..., min_length=1, max_length=255)
    category: ServiceCategory
    description: str = Field(..., min_length=1)
    price_range: str = Field(..., min_length=1, max_length=100)
    availability: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(None, max_length=100)


class ServiceResponse(BaseModel):
    id: str
    owner_id: str
    name: str
    category: str
    description: str
    price_range: str
    availability: str
    city: Optional[str]
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TimeSlotsResponse(BaseModel):
    service_id: str
    slots: list[str]
