"""Ticket service - dispute and support tickets"""

import logging

from sqlalchemy.orm import Session

from ...database import atomic
from ...errors import InvalidInput, NotFound
from ...models import Ticket, TicketStatus, User
from ...realtime import LiveQueryHub, live_queries
from ..listings.repository import ListingRepository
from ..messaging.repository import MessageRepository
from .repository import TicketRepository
from .schemas import TicketCreate, TicketResponse

logger = logging.getLogger(__name__)


class TicketService:
    """Service layer for support tickets; resolution lives in the moderation workflow"""

    def __init__(self, db: Session, hub: LiveQueryHub = live_queries):
        self.db = db
        self.hub = hub
        self.repo = TicketRepository()

    def create_ticket(self, data: TicketCreate, reporter: User) -> Ticket:
        subject = data.subject.strip()
        description = data.description.strip()
        if not subject or not description:
            raise InvalidInput("Subject and description are required")
        if data.against_id == reporter.id:
            raise InvalidInput("You cannot file a ticket against yourself")
        if not MessageRepository.get_user(self.db, data.against_id):
            raise NotFound("Reported user not found")
        if data.service_id and not ListingRepository.get_service(self.db, data.service_id):
            raise NotFound("Service not found")

        with atomic(self.db):
            ticket = self.repo.add_ticket(
                self.db,
                from_id=reporter.id,
                against_id=data.against_id,
                service_id=data.service_id,
                subject=subject,
                description=description,
                status=TicketStatus.OPEN.value,
            )
        self.db.refresh(ticket)

        logger.info(f"🎫 Ticket {ticket.id} opened by {reporter.id} against {data.against_id}")
        self.publish(ticket)
        return ticket

    def list_my_tickets(self, user: User) -> list[Ticket]:
        return self.repo.list_for_user(self.db, user.id)

    def get_ticket(self, ticket_id: str, user: User) -> Ticket:
        ticket = self.repo.get_ticket(self.db, ticket_id)
        if not ticket or (user.id not in (ticket.from_id, ticket.against_id) and not user.is_admin):
            raise NotFound("Ticket not found")
        return ticket

    def publish(self, ticket: Ticket) -> None:
        try:
            document = TicketResponse.model_validate(ticket).model_dump(mode="json")
            document["participants"] = [uid for uid in (ticket.from_id, ticket.against_id) if uid]
            self.hub.publish("tickets", document)
        except Exception as e:
            logger.error(f"❌ Failed to publish ticket {ticket.id}: {e}")
