import asyncio
from datetime import date, timedelta

import pytest

from helperhive.domain.bookings.service import BookingService
from helperhive.domain.listings.schemas import ServiceCreate
from helperhive.domain.listings.service import ListingService
from helperhive.domain.moderation.service import ModerationService
from helperhive.domain.tickets.schemas import TicketCreate
from helperhive.domain.tickets.service import TicketService
from helperhive.errors import Conflict, Forbidden, InvalidInput, InvalidTransition, NotFound
from helperhive.models import Booking, BookingStatus, Notification, RequestStatus, Service, ServiceStatus, User
from helperhive.routes.live import scope_filters
from helperhive.schemas import OnboardingSubmission
from helperhive.shared.clock import utcnow
from tests.conftest import make_user


@pytest.fixture
def moderation(db, hub):
    return ModerationService(db, hub)


@pytest.fixture
def applicant(db):
    return make_user(
        db,
        "applicant",
        national_id_front_url="https://files.example.com/users/applicant/national-id-front.jpg",
        national_id_back_url="https://files.example.com/users/applicant/national-id-back.jpg",
    )


def onboarding_form(**overrides) -> OnboardingSubmission:
    fields = {
        "phone": "+92 300 1234567",
        "address": "12 Canal Road",
        "city": "Lahore",
        "date_of_birth": date(1990, 5, 17),
        "national_id_number": "35202-1234567-1",
    }
    fields.update(overrides)
    return OnboardingSubmission(**fields)


def test_onboarding_form_normalizes_fields():
    form = onboarding_form()
    assert form.phone == "+923001234567"
    assert form.national_id_number == "3520212345671"


def test_provider_onboarding_approval(moderation, db, admin, applicant):
    submitted = moderation.submit_onboarding(applicant, onboarding_form())
    assert submitted.request_status == RequestStatus.PENDING.value
    assert submitted.onboarding_submitted_at is not None
    assert submitted.date_of_birth == "1990-05-17"
    assert not submitted.is_service_provider

    approved = moderation.approve_user(admin, applicant.id)

    assert approved.request_status == RequestStatus.APPROVED.value
    assert approved.is_service_provider
    assert db.query(Notification).filter(Notification.recipient_id == applicant.id).count() == 1


def test_onboarding_requires_id_images(moderation, customer):
    with pytest.raises(InvalidInput):
        moderation.submit_onboarding(customer, onboarding_form())
    assert customer.request_status == RequestStatus.NONE.value


def test_rejected_request_can_be_resubmitted(moderation, admin, applicant):
    moderation.submit_onboarding(applicant, onboarding_form())
    rejected = moderation.reject_user(admin, applicant.id, "  ID photo is blurry ")
    assert rejected.request_status == RequestStatus.REJECTED.value
    assert rejected.rejection_reason == "ID photo is blurry"
    assert not rejected.is_service_provider

    resubmitted = moderation.submit_onboarding(applicant, onboarding_form(city="Karachi"))

    assert resubmitted.request_status == RequestStatus.PENDING.value
    assert resubmitted.rejection_reason is None
    assert resubmitted.city == "Karachi"


def test_pending_request_cannot_be_resubmitted(moderation, applicant):
    moderation.submit_onboarding(applicant, onboarding_form())
    with pytest.raises(InvalidTransition):
        moderation.submit_onboarding(applicant, onboarding_form())


def test_decisions_require_a_pending_request(moderation, admin, applicant, customer):
    with pytest.raises(InvalidTransition):
        moderation.approve_user(admin, customer.id)

    moderation.submit_onboarding(applicant, onboarding_form())
    moderation.approve_user(admin, applicant.id)
    with pytest.raises(InvalidTransition):
        moderation.approve_user(admin, applicant.id)
    with pytest.raises(InvalidTransition):
        moderation.reject_user(admin, applicant.id, "too late")


def test_non_admins_cannot_moderate(moderation, customer, provider, applicant, listing):
    moderation.submit_onboarding(applicant, onboarding_form())
    calls = [
        lambda: moderation.approve_user(customer, applicant.id),
        lambda: moderation.reject_user(provider, applicant.id, "no"),
        lambda: moderation.remove_provider(customer, provider.id),
        lambda: moderation.approve_listing(provider, listing.id),
        lambda: moderation.suspend_listing(customer, listing.id),
        lambda: moderation.delete_listing(customer, listing.id),
        lambda: moderation.list_users(customer),
        lambda: moderation.dashboard(provider),
    ]
    for call in calls:
        with pytest.raises(Forbidden):
            call()


def test_unknown_user_is_not_found(moderation, admin):
    with pytest.raises(NotFound):
        moderation.approve_user(admin, "ghost")


def test_two_admins_deciding_the_same_request(session_factory, hub, admin, applicant):
    setup = session_factory()
    try:
        ModerationService(setup, hub).submit_onboarding(setup.get(User, applicant.id), onboarding_form())
    finally:
        setup.close()

    first = session_factory()
    second = session_factory()
    try:
        first_admin = first.get(User, admin.id)
        second_admin = second.get(User, admin.id)
        # both admins hold the Pending request before either decides
        first_view = first.get(User, applicant.id)
        second_view = second.get(User, applicant.id)
        assert second_view.request_status == RequestStatus.PENDING.value

        ModerationService(first, hub).approve_user(first_admin, applicant.id)
        with pytest.raises(Conflict):
            ModerationService(second, hub).reject_user(second_admin, applicant.id, "duplicate")
        assert first_view.request_status == RequestStatus.APPROVED.value
    finally:
        first.close()
        second.close()

    check = session_factory()
    try:
        stored = check.get(User, applicant.id)
        assert stored.request_status == RequestStatus.APPROVED.value
        assert stored.is_service_provider
    finally:
        check.close()


def test_listing_approval_and_suspension(db, hub, moderation, admin, provider):
    listings = ListingService(db, hub)
    listing = listings.create_listing(
        ServiceCreate(
            name="Geyser Repair",
            category="Plumbing",
            description="Gas and electric geysers",
            price_range="Rs 1000 - 2500",
            availability="Daily",
        ),
        provider,
    )
    assert listing.status == ServiceStatus.PENDING.value
    assert listing.city == provider.city
    assert listing.id not in [s.id for s in listings.list_public()]

    moderation.approve_listing(admin, listing.id)
    assert listing.id in [s.id for s in listings.list_public(category="Plumbing")]

    with pytest.raises(InvalidTransition):
        moderation.approve_listing(admin, listing.id)

    suspended = moderation.suspend_listing(admin, listing.id)
    assert suspended.status == ServiceStatus.PENDING.value
    assert listing.id not in [s.id for s in listings.list_public()]


def test_listing_of_non_provider_cannot_be_approved(db, moderation, admin, customer):
    service = Service(
        owner_id=customer.id,
        name="Ironing",
        category="Laundry",
        description="Shirts",
        price_range="Rs 50 per item",
        availability="Weekends",
    )
    db.add(service)
    db.commit()

    with pytest.raises(InvalidTransition):
        moderation.approve_listing(admin, service.id)


def test_listing_with_open_bookings_cannot_be_deleted(db, moderation, admin, listing, make_booking):
    booking = make_booking(BookingStatus.CONFIRMED)

    with pytest.raises(Conflict):
        moderation.delete_listing(admin, listing.id)

    booking.status = BookingStatus.COMPLETED.value
    db.commit()
    moderation.delete_listing(admin, listing.id)

    db.expire_all()
    assert db.get(Service, listing.id) is None
    stored = db.get(Booking, booking.id)
    assert stored.service_id is None
    assert stored.service_name == "Deep Cleaning"


def test_owner_may_delete_but_others_may_not(db, hub, listing, provider, customer):
    listings = ListingService(db, hub)
    with pytest.raises(Forbidden):
        listings.delete_listing(listing.id, customer)
    listings.delete_listing(listing.id, provider)
    assert db.get(Service, listing.id) is None


def test_remove_provider(db, moderation, admin, provider, listing, make_booking):
    booking = make_booking(BookingStatus.PENDING)
    with pytest.raises(Conflict):
        moderation.remove_provider(admin, provider.id)

    BookingService(db, moderation.hub).transition(booking.id, provider.id, "Reject")
    result = moderation.remove_provider(admin, provider.id)

    assert result["deleted_services"] == 1
    db.expire_all()
    assert db.get(User, provider.id) is None
    assert db.get(Service, listing.id) is None
    assert db.get(Booking, booking.id).service_id is None


def test_only_providers_are_removed(moderation, admin, customer):
    with pytest.raises(InvalidTransition):
        moderation.remove_provider(admin, customer.id)


def test_ticket_resolution(db, hub, moderation, admin, customer, provider, listing):
    tickets = TicketService(db, hub)
    ticket = tickets.create_ticket(
        TicketCreate(
            against_id=provider.id,
            service_id=listing.id,
            subject="No show",
            description="Provider never arrived",
        ),
        customer,
    )
    assert [t.id for t in moderation.list_tickets(admin, "Open")] == [ticket.id]

    resolved = moderation.resolve_ticket(admin, ticket.id, "Refund issued")

    assert resolved.status == "Resolved"
    assert resolved.admin_response == "Refund issued"
    assert resolved.resolved_by == admin.id
    assert resolved.resolved_at is not None
    assert moderation.list_tickets(admin, "Open") == []

    with pytest.raises(InvalidTransition):
        moderation.resolve_ticket(admin, ticket.id, "again")


def test_ticket_validation(db, hub, customer):
    tickets = TicketService(db, hub)
    with pytest.raises(InvalidInput):
        tickets.create_ticket(TicketCreate(against_id=customer.id, subject="Me", description="Myself"), customer)
    with pytest.raises(NotFound):
        tickets.create_ticket(TicketCreate(against_id="ghost", subject="Who", description="Nobody"), customer)


def test_dashboard(moderation, admin, applicant, provider, listing):
    moderation.submit_onboarding(applicant, onboarding_form())

    dashboard = moderation.dashboard(admin)

    assert [u.id for u in dashboard.pending_users] == [applicant.id]
    assert [u.id for u in dashboard.service_providers] == [provider.id]
    assert [s.id for s in dashboard.approved_services] == [listing.id]
    assert dashboard.pending_services == []
    assert dashboard.open_tickets == []


def test_admin_filters_validate_statuses(moderation, admin):
    with pytest.raises(InvalidInput):
        moderation.list_users(admin, request_status="Maybe")
    with pytest.raises(InvalidInput):
        moderation.list_listings(admin, status="Hidden")


def test_suspension_reaches_catalogue_watchers(db, hub, moderation, admin, customer, provider, listing):
    async def scenario():
        public_feed = hub.subscribe("services", scope_filters("services", customer, {}))
        owner_feed = hub.subscribe("services", scope_filters("services", provider, {"owner_id": provider.id}))

        moderation.suspend_listing(admin, listing.id)

        withdrawn = await public_feed.get(timeout=1)
        assert withdrawn["id"] == listing.id
        assert withdrawn["withdrawn"] is True
        assert public_feed.pending() == 0

        owner_updates = [await owner_feed.get(timeout=1), await owner_feed.get(timeout=1)]
        assert owner_updates[-1]["status"] == ServiceStatus.PENDING.value

    asyncio.run(scenario())


def test_provider_with_open_booking_as_customer_is_not_removed(db, moderation, admin, provider):
    other = make_user(
        db,
        "other-provider",
        is_service_provider=True,
        request_status=RequestStatus.APPROVED.value,
    )
    other_listing = Service(
        owner_id=other.id,
        name="Sofa Cleaning",
        category="Cleaning",
        description="Fabric and leather sofas",
        price_range="Rs 1500 - 3000",
        availability="Daily",
        status=ServiceStatus.APPROVED.value,
    )
    db.add(other_listing)
    db.commit()
    booking = BookingService(db, moderation.hub).create_booking(
        provider, other_listing.id, utcnow() + timedelta(days=1)
    )

    db.add(Notification(recipient_id=provider.id, message="Your listing was viewed."))
    db.commit()

    with pytest.raises(Conflict):
        moderation.remove_provider(admin, provider.id)
    assert db.get(User, provider.id) is not None

    BookingService(db, moderation.hub).transition(booking.id, provider.id, "Cancel")
    moderation.remove_provider(admin, provider.id)

    db.expire_all()
    assert db.get(User, provider.id) is None
    stored = db.get(Booking, booking.id)
    assert stored.customer_id is None
    assert stored.status == BookingStatus.CANCELED.value
    assert db.query(Notification).filter(Notification.recipient_id == provider.id).count() == 0
