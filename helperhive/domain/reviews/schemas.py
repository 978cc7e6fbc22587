"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ReviewCreate(BaseModel):
    booking_id: str
    rating: int
    text: str


class ReviewResponse(BaseModel):
    id: str
    service_id: Optional[str]
    booking_id: str
    reviewer_id: Optional[str]
    reviewer_name: Optional[str] = None
    rating: int
    text: str
    submitted_at: Optional[datetime]

    class Config:
        from_attributes = True


class ServiceReviewsResponse(BaseModel):
    service_id: str
    average_rating: Optional[float]
    review_count: int
    reviews: list[ReviewResponse]
