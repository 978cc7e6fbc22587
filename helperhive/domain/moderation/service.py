"""
Moderation workflow.

Three admin-gated state machines:

    onboarding: None | Rejected --submit--> Pending --approve--> Approved
                                            Pending --reject-->  Rejected
    listing:    Pending --approve--> Approved --suspend--> Pending; either --delete--> gone
    ticket:     Open --resolve--> Resolved

Every admin transition checks ``is_admin`` here, and every status write is a
compare-and-set on the expected source status so two admins acting on the
same record cannot both win.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...database import atomic
from ...errors import Conflict, Forbidden, InvalidInput, InvalidTransition, NotFound
from ...models import RequestStatus, Service, ServiceStatus, Ticket, TicketStatus, User
from ...realtime import LiveQueryHub, live_queries
from ...schemas import OnboardingSubmission, UserResponse
from ...services.notification_service import notify
from ...shared.clock import utcnow
from ..bookings.repository import BookingRepository
from ..listings.repository import ListingRepository
from ..listings.schemas import ServiceResponse
from ..listings.service import ListingService
from ..tickets.repository import TicketRepository
from ..tickets.schemas import TicketResponse
from ..tickets.service import TicketService
from .repository import ModerationRepository
from .schemas import DashboardResponse

logger = logging.getLogger(__name__)

RESUBMITTABLE_STATUSES = (RequestStatus.NONE.value, RequestStatus.REJECTED.value)


class ModerationService:
    """Service layer for admin moderation"""

    def __init__(self, db: Session, hub: LiveQueryHub = live_queries):
        self.db = db
        self.hub = hub
        self.repo = ModerationRepository()
        self.listings = ListingService(db, hub)
        self.tickets = TicketService(db, hub)

    @staticmethod
    def require_admin(actor: User) -> None:
        if not actor.is_admin:
            logger.warning(f"🚫 Non-admin {actor.id} attempted an admin action")
            raise Forbidden("Admin privileges required")

    # ------------------------------------------------------------------
    # Provider onboarding
    # ------------------------------------------------------------------

    def submit_onboarding(self, user: User, data: OnboardingSubmission) -> User:
        """
        File a provider request. Allowed from None and from Rejected; a
        resubmission clears the previous rejection reason.
        """
        if user.request_status not in RESUBMITTABLE_STATUSES:
            raise InvalidTransition(f"Onboarding request is already {user.request_status}")
        if not user.national_id_front_url or not user.national_id_back_url:
            raise InvalidInput("Upload both sides of your national ID before submitting")

        with atomic(self.db):
            moved = self.repo.compare_and_set(
                self.db,
                User,
                user.id,
                "request_status",
                RESUBMITTABLE_STATUSES,
                {
                    User.request_status: RequestStatus.PENDING.value,
                    User.rejection_reason: None,
                    User.onboarding_submitted_at: utcnow(),
                    User.phone: data.phone,
                    User.address: data.address.strip(),
                    User.city: data.city.strip(),
                    User.date_of_birth: data.date_of_birth.isoformat(),
                    User.national_id_number: data.national_id_number,
                },
            )
            if not moved:
                raise Conflict("Onboarding request changed concurrently. Reload and try again.")

        self.db.refresh(user)
        logger.info(f"📝 Onboarding request submitted by {user.id}")
        self._publish_user(user)
        return user

    def approve_user(self, admin: User, user_id: str) -> User:
        self.require_admin(admin)
        user = self._get_user(user_id)
        if user.request_status != RequestStatus.PENDING.value:
            raise InvalidTransition(f"Cannot approve a request that is {user.request_status}")

        with atomic(self.db):
            moved = self.repo.compare_and_set(
                self.db,
                User,
                user.id,
                "request_status",
                RequestStatus.PENDING.value,
                {
                    User.request_status: RequestStatus.APPROVED.value,
                    User.is_service_provider: True,
                    User.rejection_reason: None,
                },
            )
            if not moved:
                raise Conflict("Request was already decided by another admin")

        self.db.refresh(user)
        logger.info(f"✅ User {user.id} approved as service provider by {admin.id}")
        self._publish_user(user)
        notify(self.db, user.id, "Your service provider request was approved.", hub=self.hub)
        return user

    def reject_user(self, admin: User, user_id: str, reason: Optional[str] = None) -> User:
        self.require_admin(admin)
        user = self._get_user(user_id)
        if user.request_status != RequestStatus.PENDING.value:
            raise InvalidTransition(f"Cannot reject a request that is {user.request_status}")

        with atomic(self.db):
            moved = self.repo.compare_and_set(
                self.db,
                User,
                user.id,
                "request_status",
                RequestStatus.PENDING.value,
                {
                    User.request_status: RequestStatus.REJECTED.value,
                    User.rejection_reason: reason.strip() if reason else None,
                },
            )
            if not moved:
                raise Conflict("Request was already decided by another admin")

        self.db.refresh(user)
        logger.info(f"❌ User {user.id} onboarding rejected by {admin.id}")
        self._publish_user(user)
        message = "Your service provider request was rejected."
        if user.rejection_reason:
            message = f"{message} Reason: {user.rejection_reason}"
        notify(self.db, user.id, message[:500], hub=self.hub)
        return user

    def remove_provider(self, admin: User, user_id: str) -> dict:
        """Delete a provider together with their listings; refused while they have open bookings"""
        self.require_admin(admin)
        user = self._get_user(user_id)
        if not user.is_service_provider:
            raise InvalidTransition("User is not a service provider")
        if user.is_admin:
            raise Forbidden("Admin accounts cannot be removed here")

        open_bookings = BookingRepository.count_open_for_user(self.db, user.id)
        if open_bookings:
            raise Conflict(
                f"User has {open_bookings} open booking(s) as customer or provider; "
                "they must be resolved before removal"
            )

        snapshot = UserResponse.model_validate(user).model_dump(mode="json")
        service_snapshots = [ServiceResponse.model_validate(s).model_dump(mode="json") for s in user.services]
        service_ids = [s["id"] for s in service_snapshots]
        with atomic(self.db):
            for service_id in service_ids:
                BookingRepository.detach_service(self.db, service_id)
            self.repo.delete_user(self.db, user)

        logger.info(f"🗑️ Provider {user_id} removed by {admin.id} ({len(service_ids)} listing(s))")
        self.hub.publish("users", {**snapshot, "deleted": True})
        for service_snapshot in service_snapshots:
            self.hub.publish("services", {**service_snapshot, "deleted": True})
        return {"message": "Service provider removed", "deleted_services": len(service_ids)}

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def approve_listing(self, admin: User, service_id: str) -> Service:
        self.require_admin(admin)
        service = self._get_service(service_id)
        if service.status != ServiceStatus.PENDING.value:
            raise InvalidTransition(f"Cannot approve a service that is {service.status}")
        if not service.owner or not service.owner.is_service_provider:
            raise InvalidTransition("Only listings owned by approved service providers can be approved")
        return self._move_listing(service, ServiceStatus.PENDING, ServiceStatus.APPROVED, admin)

    def suspend_listing(self, admin: User, service_id: str) -> Service:
        self.require_admin(admin)
        service = self._get_service(service_id)
        if service.status != ServiceStatus.APPROVED.value:
            raise InvalidTransition(f"Cannot suspend a service that is {service.status}")
        return self._move_listing(service, ServiceStatus.APPROVED, ServiceStatus.PENDING, admin)

    def delete_listing(self, admin: User, service_id: str) -> dict:
        self.require_admin(admin)
        return self.listings.delete_listing(service_id, admin)

    def _move_listing(
        self, service: Service, source: ServiceStatus, target: ServiceStatus, admin: User
    ) -> Service:
        before = ServiceResponse.model_validate(service).model_dump(mode="json")
        with atomic(self.db):
            moved = self.repo.compare_and_set(
                self.db, Service, service.id, "status", source.value, {Service.status: target.value}
            )
            if not moved:
                raise Conflict("Service status changed concurrently. Reload and try again.")

        self.db.refresh(service)
        logger.info(f"✅ Service {service.id}: {source.value} → {target.value} by {admin.id}")
        if source == ServiceStatus.APPROVED:
            # Approved-only watchers receive the pre-change snapshot as a removal
            self.hub.publish("services", {**before, "withdrawn": True})
        self.listings.publish(service)
        return service

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    def resolve_ticket(self, admin: User, ticket_id: str, admin_response: Optional[str] = None) -> Ticket:
        self.require_admin(admin)
        ticket = TicketRepository.get_ticket(self.db, ticket_id)
        if not ticket:
            raise NotFound("Ticket not found")
        if ticket.status != TicketStatus.OPEN.value:
            raise InvalidTransition("Ticket is already resolved")

        response = admin_response.strip() if admin_response and admin_response.strip() else None
        with atomic(self.db):
            moved = self.repo.compare_and_set(
                self.db,
                Ticket,
                ticket.id,
                "status",
                TicketStatus.OPEN.value,
                {
                    Ticket.status: TicketStatus.RESOLVED.value,
                    Ticket.admin_response: response,
                    Ticket.resolved_by: admin.id,
                    Ticket.resolved_at: utcnow(),
                },
            )
            if not moved:
                raise Conflict("Ticket was already resolved by another admin")

        self.db.refresh(ticket)
        logger.info(f"✅ Ticket {ticket.id} resolved by {admin.id}")
        self.tickets.publish(ticket)
        notify(self.db, ticket.from_id, f"Your ticket '{ticket.subject[:200]}' was resolved.", hub=self.hub)
        return ticket

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_users(
        self,
        admin: User,
        request_status: Optional[str] = None,
        is_service_provider: Optional[bool] = None,
    ) -> list[User]:
        self.require_admin(admin)
        if request_status is not None:
            try:
                request_status = RequestStatus(request_status).value
            except ValueError as e:
                raise InvalidInput(f"Unknown request status: {request_status}") from e
        return self.repo.list_users(self.db, request_status, is_service_provider)

    def list_listings(self, admin: User, status: Optional[str] = None) -> list[Service]:
        self.require_admin(admin)
        if status is not None:
            try:
                status = ServiceStatus(status).value
            except ValueError as e:
                raise InvalidInput(f"Unknown service status: {status}") from e
        return ListingRepository.list_services(self.db, status=status)

    def list_tickets(self, admin: User, status: Optional[str] = None) -> list[Ticket]:
        self.require_admin(admin)
        if status is not None:
            try:
                status = TicketStatus(status).value
            except ValueError as e:
                raise InvalidInput(f"Unknown ticket status: {status}") from e
        return TicketRepository.list_tickets(self.db, status)

    def dashboard(self, admin: User) -> DashboardResponse:
        self.require_admin(admin)
        pending_users = [
            u
            for u in self.repo.list_users(self.db, request_status=RequestStatus.PENDING.value)
            if not u.is_service_provider
        ]
        providers = self.repo.list_users(self.db, is_service_provider=True)
        pending_services = ListingRepository.list_services(self.db, status=ServiceStatus.PENDING.value)
        approved_services = ListingRepository.list_services(self.db, status=ServiceStatus.APPROVED.value)
        open_tickets = TicketRepository.list_tickets(self.db, TicketStatus.OPEN.value)
        return DashboardResponse(
            pending_users=[UserResponse.model_validate(u) for u in pending_users],
            service_providers=[UserResponse.model_validate(u) for u in providers],
            pending_services=[ServiceResponse.model_validate(s) for s in pending_services],
            approved_services=[ServiceResponse.model_validate(s) for s in approved_services],
            open_tickets=[TicketResponse.model_validate(t) for t in open_tickets],
        )

    def _get_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    def _get_service(self, service_id: str) -> Service:
        service = ListingRepository.get_service(self.db, service_id)
        if not service:
            raise NotFound("Service not found")
        return service

    def _publish_user(self, user: User) -> None:
        try:
            self.hub.publish("users", UserResponse.model_validate(user).model_dump(mode="json"))
        except Exception as e:
            logger.error(f"❌ Failed to publish user {user.id}: {e}")
