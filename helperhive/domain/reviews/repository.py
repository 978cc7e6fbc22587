"""Review repository - Database operations for reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Review


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def add_review(db: Session, **review_data) -> Review:
        review = Review(**review_data)
        db.add(review)
        return review

    @staticmethod
    def list_for_service(db: Session, service_id: str) -> list[Review]:
        return (
            db.query(Review)
            .options(joinedload(Review.reviewer))
            .filter(Review.service_id == service_id)
            .order_by(Review.submitted_at.desc())
            .all()
        )

    @staticmethod
    def rating_stats(db: Session, service_id: str) -> tuple[Optional[float], int]:
        average, count = (
            db.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.service_id == service_id)
            .one()
        )
        return (float(average) if average is not None else None, int(count or 0))
