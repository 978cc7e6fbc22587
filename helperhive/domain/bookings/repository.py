"""Booking repository - Database operations for bookings"""

from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import Booking, BookingEvent, BookingStatus, Service

OPEN_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class BookingRepository:
    """Repository for booking database operations; callers own the transaction"""

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_service(db: Session, service_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def add_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def add_event(
        db: Session,
        booking: Booking,
        action: str,
        from_status: Optional[str],
        to_status: str,
        actor_id: Optional[str],
    ) -> BookingEvent:
        event = BookingEvent(
            booking_id=booking.id,
            action=action,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
        )
        db.add(event)
        return event

    @staticmethod
    def list_bookings(
        db: Session,
        user_id: str,
        role: Optional[str] = None,
        status: Optional[str] = None,
        counterpart_id: Optional[str] = None,
    ) -> list[Booking]:
        """Bookings the user takes part in, newest first; optionally only those shared with a counterpart"""
        query = db.query(Booking)

        if role == "customer":
            query = query.filter(Booking.customer_id == user_id)
        elif role == "provider":
            query = query.filter(Booking.provider_id == user_id)
        else:
            query = query.filter(or_(Booking.customer_id == user_id, Booking.provider_id == user_id))

        if counterpart_id:
            query = query.filter(
                or_(
                    and_(Booking.customer_id == user_id, Booking.provider_id == counterpart_id),
                    and_(Booking.customer_id == counterpart_id, Booking.provider_id == user_id),
                )
            )

        if status:
            query = query.filter(Booking.status == status)

        return query.order_by(Booking.created_at.desc()).all()

    @staticmethod
    def get_events(db: Session, booking_id: str) -> list[BookingEvent]:
        return (
            db.query(BookingEvent)
            .filter(BookingEvent.booking_id == booking_id)
            .order_by(BookingEvent.created_at.asc(), BookingEvent.id.asc())
            .all()
        )

    @staticmethod
    def count_open_for_service(db: Session, service_id: str) -> int:
        return (
            db.query(Booking)
            .filter(Booking.service_id == service_id, Booking.status.in_(OPEN_STATUSES))
            .count()
        )

    @staticmethod
    def count_open_for_user(db: Session, user_id: str) -> int:
        """Open bookings the user takes part in, as customer or provider"""
        return (
            db.query(Booking)
            .filter(
                or_(Booking.customer_id == user_id, Booking.provider_id == user_id),
                Booking.status.in_(OPEN_STATUSES),
            )
            .count()
        )

    @staticmethod
    def detach_service(db: Session, service_id: str) -> int:
        """Drop the listing reference from historical bookings before the listing is deleted"""
        return (
            db.query(Booking)
            .filter(Booking.service_id == service_id)
            .update({Booking.service_id: None}, synchronize_session=False)
        )
