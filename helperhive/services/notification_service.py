"""
Booking notifications.

Notifications are side effects of a booking write that has already
committed: a failure here is logged and swallowed so it can never undo or
fail the primary operation.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Booking, Notification
from ..realtime import LiveQueryHub, live_queries
from ..schemas import NotificationResponse

logger = logging.getLogger(__name__)

BOOKING_MESSAGES = {
    "Create": "New booking request for {service} on {when}.",
    "Accept": "Your booking for {service} on {when} was accepted.",
    "Reject": "Your booking for {service} on {when} was declined.",
    "Cancel": "The booking for {service} on {when} was canceled by the customer.",
    "Complete": "Your booking for {service} was marked as completed. You can now leave a review.",
}


def notify(
    db: Session,
    recipient_id: Optional[str],
    message: str,
    booking_id: Optional[str] = None,
    hub: LiveQueryHub = live_queries,
) -> Optional[Notification]:
    """
    Store a notification for a user, fire-and-forget.

    Returns:
        The stored notification, or None when it could not be written
    """
    if not recipient_id:
        logger.debug("⚠️ Notification skipped: no recipient")
        return None

    try:
        notification = Notification(recipient_id=recipient_id, booking_id=booking_id, message=message)
        db.add(notification)
        db.commit()
        db.refresh(notification)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to store notification for {recipient_id}: {e}")
        return None

    try:
        hub.publish(
            "notifications",
            NotificationResponse.model_validate(notification).model_dump(mode="json"),
        )
    except Exception as e:
        logger.error(f"❌ Failed to publish notification {notification.id}: {e}")

    logger.info(f"🔔 Notification {notification.id} stored for {recipient_id}")
    return notification


def notify_booking_event(
    db: Session,
    booking: Booking,
    action: str,
    recipient_id: Optional[str],
    hub: LiveQueryHub = live_queries,
) -> Optional[Notification]:
    template = BOOKING_MESSAGES.get(action)
    if template is None:
        logger.debug(f"ℹ️ No notification template for booking action {action}")
        return None

    try:
        message = template.format(
            service=booking.service_name,
            when=booking.scheduled_at.strftime("%Y-%m-%d %H:%M"),
        )
    except Exception as e:
        logger.error(f"❌ Failed to render {action} notification for booking {booking.id}: {e}")
        return None

    return notify(db, recipient_id, message, booking_id=booking.id, hub=hub)
