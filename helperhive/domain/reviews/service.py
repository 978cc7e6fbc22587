"""
Review gate.

A customer may review a booking once, after it is Completed. The review row
and ``Booking.has_reviewed`` are written in one transaction, and the booking
row's version check makes a concurrent second submission lose with Conflict.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import REVIEW_MAX_LENGTH
from ...database import atomic
from ...errors import InvalidInput, NotEligible
from ...models import Review, User
from ...realtime import LiveQueryHub, live_queries
from ..bookings.repository import BookingRepository
from ..bookings.schemas import BookingResponse
from ..bookings.service import review_eligible
from .repository import ReviewRepository
from .schemas import ReviewResponse, ServiceReviewsResponse

logger = logging.getLogger(__name__)


def validate_review_input(rating: int, text: str) -> str:
    """Return the trimmed review text or raise InvalidInput"""
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidInput("Rating must be a whole number between 1 and 5")
    cleaned = (text or "").strip()
    if not cleaned:
        raise InvalidInput("Review text cannot be empty")
    if len(cleaned) > REVIEW_MAX_LENGTH:
        raise InvalidInput(f"Review text cannot exceed {REVIEW_MAX_LENGTH} characters")
    return cleaned


class ReviewService:
    """Service layer for the review gate"""

    def __init__(self, db: Session, hub: LiveQueryHub = live_queries):
        self.db = db
        self.hub = hub
        self.repo = ReviewRepository()
        self.bookings = BookingRepository()

    def submit_review(self, booking_id: str, reviewer: User, rating: int, text: str) -> Review:
        """
        Raises:
            NotEligible: booking missing, not completed, already reviewed, or not the reviewer's
            InvalidInput: rating outside 1..5 or text empty / too long
            Conflict: a concurrent submission on the same booking committed first
        """
        booking = self.bookings.get_booking(self.db, booking_id)
        if not booking or not review_eligible(booking, reviewer.id):
            logger.warning(f"⚠️ User {reviewer.id} not eligible to review booking {booking_id}")
            raise NotEligible("This booking cannot be reviewed")

        cleaned = validate_review_input(rating, text)

        try:
            with atomic(self.db):
                review = self.repo.add_review(
                    self.db,
                    service_id=booking.service_id,
                    booking_id=booking.id,
                    reviewer_id=reviewer.id,
                    rating=rating,
                    text=cleaned,
                )
                booking.has_reviewed = True
        except IntegrityError as e:
            logger.warning(f"⚠️ Duplicate review rejected for booking {booking_id}: {e}")
            raise NotEligible("This booking has already been reviewed") from e

        self.db.refresh(review)
        self.db.refresh(booking)
        logger.info(f"⭐ Review {review.id} ({rating}/5) stored for booking {booking.id}")

        try:
            self.hub.publish("reviews", self.to_response(review).model_dump(mode="json"))
            self.hub.publish("bookings", BookingResponse.model_validate(booking).model_dump(mode="json"))
        except Exception as e:
            logger.error(f"❌ Failed to publish review {review.id}: {e}")
        return review

    def list_reviews(self, service_id: str) -> ServiceReviewsResponse:
        reviews = self.repo.list_for_service(self.db, service_id)
        average, count = self.repo.rating_stats(self.db, service_id)
        return ServiceReviewsResponse(
            service_id=service_id,
            average_rating=round(average, 2) if average is not None else None,
            review_count=count,
            reviews=[self.to_response(r) for r in reviews],
        )

    @staticmethod
    def to_response(review: Review) -> ReviewResponse:
        response = ReviewResponse.model_validate(review)
        response.reviewer_name = review.reviewer.name if review.reviewer else None
        return response
