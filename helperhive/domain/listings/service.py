"""Listing service - Business logic for service listings"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...config import SLOT_END_HOUR, SLOT_MINUTES, SLOT_START_HOUR
from ...database import atomic
from ...errors import Conflict, Forbidden, InvalidInput, NotFound
from ...models import Service, ServiceCategory, ServiceStatus, User
from ...realtime import LiveQueryHub, live_queries
from ..bookings.repository import BookingRepository
from .repository import ListingRepository
from .schemas import ServiceCreate, ServiceResponse

logger = logging.getLogger(__name__)


def generate_time_slots(
    start_hour: int = SLOT_START_HOUR,
    end_hour: int = SLOT_END_HOUR,
    step_minutes: int = SLOT_MINUTES,
) -> list[str]:
    """Bookable start times as 12-hour labels, e.g. ["9:00 AM", "9:30 AM", ...]"""
    slots = []
    for minute_of_day in range(start_hour * 60, end_hour * 60, step_minutes):
        hour, minute = divmod(minute_of_day, 60)
        period = "PM" if hour >= 12 else "AM"
        display_hour = hour - 12 if hour > 12 else hour
        display_hour = 12 if display_hour == 0 else display_hour
        slots.append(f"{display_hour}:{minute:02d} {period}")
    return slots


class ListingService:
    """Service layer for service listings"""

    def __init__(self, db: Session, hub: LiveQueryHub = live_queries):
        self.db = db
        self.hub = hub
        self.repo = ListingRepository()

    def create_listing(self, data: ServiceCreate, owner: User) -> Service:
        """Register a listing; it stays hidden until an admin approves it"""
        logger.info(f"📥 Creating listing '{data.name}' for user {owner.id}")
        with atomic(self.db):
            service = self.repo.add_service(
                self.db,
                owner.id,
                name=data.name.strip(),
                category=ServiceCategory(data.category).value,
                description=data.description.strip(),
                price_range=data.price_range.strip(),
                availability=data.availability.strip(),
                city=data.city.strip() if data.city else owner.city,
            )
        self.db.refresh(service)
        self.publish(service)
        return service

    def list_public(self, category: Optional[str] = None, city: Optional[str] = None) -> list[Service]:
        """Approved listings only"""
        if category is not None:
            try:
                category = ServiceCategory(category).value
            except ValueError as e:
                raise InvalidInput(f"Unknown category: {category}") from e
        return self.repo.list_services(
            self.db, status=ServiceStatus.APPROVED.value, category=category, city=city
        )

    def list_mine(self, owner: User) -> list[Service]:
        return self.repo.list_services(self.db, owner_id=owner.id)

    def get_listing(self, service_id: str, user: User) -> Service:
        """Pending listings are visible only to their owner and admins"""
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise NotFound("Service not found")
        if (
            service.status != ServiceStatus.APPROVED.value
            and service.owner_id != user.id
            and not user.is_admin
        ):
            raise NotFound("Service not found")
        return service

    def get_time_slots(self, service_id: str, user: User) -> list[str]:
        self.get_listing(service_id, user)
        return generate_time_slots()

    def delete_listing(self, service_id: str, actor: User) -> dict:
        """
        Delete a listing (owner or admin).

        Refused while Pending or Confirmed bookings reference it; finished
        bookings keep their copy of the service name.
        """
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise NotFound("Service not found")
        if service.owner_id != actor.id and not actor.is_admin:
            raise Forbidden("Only the owner or an admin can delete this service")

        open_bookings = BookingRepository.count_open_for_service(self.db, service.id)
        if open_bookings:
            raise Conflict(
                f"Service has {open_bookings} open booking(s); they must be resolved before deletion"
            )

        snapshot = ServiceResponse.model_validate(service).model_dump(mode="json")
        with atomic(self.db):
            BookingRepository.detach_service(self.db, service.id)
            self.repo.delete_service(self.db, service)

        logger.info(f"🗑️ Service {service_id} deleted by {actor.id}")
        self.hub.publish("services", {**snapshot, "deleted": True})
        return {"message": "Service deleted"}

    def publish(self, service: Service) -> None:
        try:
            self.hub.publish("services", ServiceResponse.model_validate(service).model_dump(mode="json"))
        except Exception as e:
            logger.error(f"❌ Failed to publish service {service.id}: {e}")
