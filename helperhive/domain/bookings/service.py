"""
Booking lifecycle engine.

Owns the booking state machine. Every status change goes through
``transition``; nothing else in the code base writes ``Booking.status``.

    Pending   --Accept(provider)-->   Confirmed
    Pending   --Reject(provider)-->   Rejected  [terminal]
    Pending   --Cancel(customer)-->   Canceled  [terminal]
    Confirmed --Complete(provider)--> Completed [terminal]
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...config import MAX_BOOKING_HOURS
from ...database import atomic
from ...errors import Forbidden, InvalidInput, InvalidTransition, NotFound
from ...models import Booking, BookingStatus, ServiceStatus, User
from ...realtime import LiveQueryHub, live_queries
from ...services.notification_service import notify_booking_event
from ...shared.clock import to_naive_utc, utcnow
from .repository import BookingRepository
from .schemas import BookingAction, BookingDetailResponse, BookingResponse

logger = logging.getLogger(__name__)

CUSTOMER = "customer"
PROVIDER = "provider"

# action -> party allowed to perform it
ACTION_ACTORS = {
    BookingAction.ACCEPT: PROVIDER,
    BookingAction.REJECT: PROVIDER,
    BookingAction.COMPLETE: PROVIDER,
    BookingAction.CANCEL: CUSTOMER,
}

# (current status, action) -> next status
TRANSITIONS = {
    (BookingStatus.PENDING, BookingAction.ACCEPT): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingAction.REJECT): BookingStatus.REJECTED,
    (BookingStatus.PENDING, BookingAction.CANCEL): BookingStatus.CANCELED,
    (BookingStatus.CONFIRMED, BookingAction.COMPLETE): BookingStatus.COMPLETED,
}

TERMINAL_STATUSES = frozenset(
    {BookingStatus.REJECTED, BookingStatus.CANCELED, BookingStatus.COMPLETED}
)

MESSAGEABLE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED}
)


def next_status(current: BookingStatus, action: BookingAction) -> Optional[BookingStatus]:
    return TRANSITIONS.get((current, action))


def party_of(booking: Booking, user_id: str) -> Optional[str]:
    if user_id and user_id == booking.provider_id:
        return PROVIDER
    if user_id and user_id == booking.customer_id:
        return CUSTOMER
    return None


def allowed_actions(booking: Booking, user_id: str) -> list[BookingAction]:
    """Actions this user could perform on the booking right now"""
    party = party_of(booking, user_id)
    current = BookingStatus(booking.status)
    return [
        action
        for action, actor in ACTION_ACTORS.items()
        if actor == party and next_status(current, action) is not None
    ]


def review_eligible(booking: Booking, reviewer_id: str) -> bool:
    return (
        booking.status == BookingStatus.COMPLETED.value
        and booking.customer_id == reviewer_id
        and not booking.has_reviewed
    )


def can_message(booking: Booking, user_id: str) -> bool:
    return (
        party_of(booking, user_id) is not None
        and BookingStatus(booking.status) in MESSAGEABLE_STATUSES
    )


class BookingService:
    """Service layer for the booking lifecycle"""

    def __init__(self, db: Session, hub: LiveQueryHub = live_queries):
        self.db = db
        self.hub = hub
        self.repo = BookingRepository()

    def create_booking(
        self,
        customer: User,
        service_id: str,
        scheduled_at: datetime,
        duration_hours: int = 1,
    ) -> Booking:
        """Book an approved listing for a future slot"""
        logger.info(f"📥 Booking request from {customer.id} for service {service_id}")

        scheduled_at = to_naive_utc(scheduled_at)
        if scheduled_at <= utcnow():
            raise InvalidInput("Booking time must be in the future")

        if duration_hours is None or duration_hours < 1 or duration_hours > MAX_BOOKING_HOURS:
            raise InvalidInput(f"Duration must be between 1 and {MAX_BOOKING_HOURS} hours")

        service = self.repo.get_service(self.db, service_id)
        if not service or service.status != ServiceStatus.APPROVED.value:
            raise InvalidInput("Service is not available for booking")

        if service.owner_id == customer.id:
            raise InvalidInput("You cannot book your own service")

        with atomic(self.db):
            booking = self.repo.add_booking(
                self.db,
                customer_id=customer.id,
                provider_id=service.owner_id,
                service_id=service.id,
                service_name=service.name,
                scheduled_at=scheduled_at,
                duration_hours=duration_hours,
                status=BookingStatus.PENDING.value,
            )
            self.repo.add_event(
                self.db, booking, "Create", None, BookingStatus.PENDING.value, customer.id
            )
        self.db.refresh(booking)

        logger.info(f"✅ Booking {booking.id} created (Pending)")
        self._publish(booking)
        notify_booking_event(self.db, booking, "Create", booking.provider_id, hub=self.hub)
        return booking

    def transition(self, booking_id: str, acting_user_id: str, action: BookingAction) -> Booking:
        """
        Apply a lifecycle action.

        Raises:
            NotFound: no such booking
            Forbidden: the acting user is not the party allowed to perform the action
            InvalidTransition: the current status does not permit the action
            Conflict: another request changed the booking first
        """
        action = BookingAction(action)
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFound("Booking not found")

        required = ACTION_ACTORS[action]
        if party_of(booking, acting_user_id) != required:
            logger.warning(
                f"⚠️ User {acting_user_id} tried to {action.value} booking {booking_id} "
                f"(requires {required})"
            )
            raise Forbidden(f"Only the {required} can {action.value.lower()} this booking")

        current = BookingStatus(booking.status)
        target = next_status(current, action)
        if target is None:
            raise InvalidTransition(f"Cannot {action.value.lower()} a booking that is {current.value}")

        with atomic(self.db):
            booking.status = target.value
            self.repo.add_event(self.db, booking, action.value, current.value, target.value, acting_user_id)
        self.db.refresh(booking)

        logger.info(f"✅ Booking {booking.id} transitioned: {current.value} → {target.value}")
        self._publish(booking)

        recipient = booking.provider_id if required == CUSTOMER else booking.customer_id
        notify_booking_event(self.db, booking, action.value, recipient, hub=self.hub)
        return booking

    def is_review_eligible(self, booking_id: str, reviewer_id: str) -> bool:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            return False
        return review_eligible(booking, reviewer_id)

    def get_booking(self, booking_id: str, user: User) -> Booking:
        """Get a booking visible to a participant or an admin"""
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking or (party_of(booking, user.id) is None and not user.is_admin):
            raise NotFound("Booking not found")
        return booking

    def get_booking_detail(self, booking_id: str, user: User) -> BookingDetailResponse:
        return self._detail(self.get_booking(booking_id, user), user)

    def latest_booking_with(self, user: User, counterpart_id: str) -> Optional[BookingDetailResponse]:
        """Most recent booking between the user and a counterpart, with what the user may do next"""
        bookings = self.repo.list_bookings(self.db, user.id, counterpart_id=counterpart_id)
        if not bookings:
            return None
        return self._detail(bookings[0], user)

    def _detail(self, booking: Booking, user: User) -> BookingDetailResponse:
        detail = BookingDetailResponse.model_validate(booking)
        detail.can_review = review_eligible(booking, user.id)
        detail.can_message = can_message(booking, user.id)
        detail.allowed_actions = allowed_actions(booking, user.id)
        return detail

    def list_bookings(
        self,
        user: User,
        role: Optional[str] = None,
        status: Optional[str] = None,
        counterpart_id: Optional[str] = None,
    ) -> list[Booking]:
        if role not in (None, CUSTOMER, PROVIDER):
            raise InvalidInput("role must be 'customer' or 'provider'")
        if status is not None:
            try:
                status = BookingStatus(status).value
            except ValueError as e:
                raise InvalidInput(f"Unknown booking status: {status}") from e
        return self.repo.list_bookings(self.db, user.id, role, status, counterpart_id)

    def get_history(self, booking_id: str, user: User):
        booking = self.get_booking(booking_id, user)
        return self.repo.get_events(self.db, booking.id)

    def _publish(self, booking: Booking) -> None:
        try:
            self.hub.publish("bookings", BookingResponse.model_validate(booking).model_dump(mode="json"))
        except Exception as e:
            logger.error(f"❌ Failed to publish booking {booking.id}: {e}")
