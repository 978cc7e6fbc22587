import asyncio
from datetime import timedelta

import pytest
from fastapi import HTTPException

from helperhive.domain.bookings.schemas import BookingAction
from helperhive.domain.bookings.service import BookingService
from helperhive.realtime import LiveQueryHub, matches
from helperhive.routes.live import format_event, scope_filters
from helperhive.shared.clock import utcnow


def test_matches_scalar_and_list_fields():
    document = {"status": "Pending", "participants": ["a", "b"]}
    assert matches(document, {})
    assert matches(document, {"status": "Pending", "participants": "b"})
    assert not matches(document, {"participants": "c"})
    assert not matches(document, {"status": "Confirmed"})


def test_subscription_receives_in_publish_order():
    async def scenario():
        hub = LiveQueryHub()
        feed = hub.subscribe("bookings", {"status": "Pending"})

        assert hub.publish("bookings", {"id": 1, "status": "Pending"}) == 1
        assert hub.publish("bookings", {"id": 2, "status": "Confirmed"}) == 0
        assert hub.publish("bookings", {"id": 3, "status": "Pending"}) == 1
        assert hub.publish("services", {"id": 4, "status": "Pending"}) == 0

        first = await feed.get(timeout=1)
        second = await feed.get(timeout=1)
        assert [first["id"], second["id"]] == [1, 3]

    asyncio.run(scenario())


def test_cancel_releases_and_ends_iteration():
    async def scenario():
        hub = LiveQueryHub()
        feed = hub.subscribe("messages")
        hub.publish("messages", {"id": "m1"})
        assert hub.subscriber_count("messages") == 1

        feed.cancel()
        feed.cancel()

        assert hub.subscriber_count() == 0
        assert hub.publish("messages", {"id": "m2"}) == 0
        assert [doc async for doc in feed] == []

    asyncio.run(scenario())


def test_booking_changes_reach_both_participants(db, hub, customer, provider, stranger, listing):
    async def scenario():
        customer_feed = hub.subscribe("bookings", {"participants": customer.id})
        provider_feed = hub.subscribe("bookings", {"participants": provider.id})
        stranger_feed = hub.subscribe("bookings", {"participants": stranger.id})
        notification_feed = hub.subscribe("notifications", {"recipient_id": customer.id})

        service = BookingService(db, hub)
        booking = service.create_booking(customer, listing.id, utcnow() + timedelta(days=1))
        service.transition(booking.id, provider.id, BookingAction.ACCEPT)

        for feed in (customer_feed, provider_feed):
            created = await feed.get(timeout=1)
            accepted = await feed.get(timeout=1)
            assert created["status"] == "Pending"
            assert accepted["status"] == "Confirmed"
            assert accepted["id"] == booking.id

        assert stranger_feed.pending() == 0
        note = await notification_feed.get(timeout=1)
        assert note["booking_id"] == booking.id

    asyncio.run(scenario())


def test_live_scopes_private_collections(customer, admin):
    assert scope_filters("bookings", customer, {"participants": "someone-else"}) == {
        "participants": customer.id
    }
    assert scope_filters("notifications", customer, {}) == {"recipient_id": customer.id}
    assert scope_filters("tickets", customer, {}) == {"participants": customer.id}
    assert scope_filters("tickets", admin, {"status": "Open"}) == {"status": "Open"}
    assert scope_filters("users", customer, {}) == {"id": customer.id}
    assert scope_filters("users", admin, {}) == {}


def test_live_scopes_public_catalogue(customer, provider):
    assert scope_filters("services", customer, {"category": "Cleaning"}) == {
        "category": "Cleaning",
        "status": "Approved",
    }
    assert scope_filters("services", provider, {"owner_id": provider.id}) == {"owner_id": provider.id}
    assert scope_filters("reviews", customer, {"service_id": "s1"}) == {"service_id": "s1"}


def test_live_rejects_unknown_collections(customer):
    with pytest.raises(HTTPException) as exc_info:
        scope_filters("payments", customer, {})
    assert exc_info.value.status_code == 404


def test_format_event():
    assert format_event("bookings", {"id": "b1"}) == 'event: bookings\ndata: {"id": "b1"}\n\n'
