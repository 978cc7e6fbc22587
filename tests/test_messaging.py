import asyncio
from datetime import datetime

import pytest

from helperhive.domain.messaging.service import MessagingService, conversation_key
from helperhive.errors import Conflict, InvalidInput, NotFound
from tests.conftest import make_user


@pytest.fixture
def messaging(db, hub):
    return MessagingService(db, hub)


def test_conversation_key_is_symmetric():
    assert conversation_key("alice", "bob") == conversation_key("bob", "alice") == "alice:bob"


def test_both_directions_share_a_conversation(messaging, customer, provider):
    first = messaging.send_message(customer, provider.id, "Are you free on Monday?")
    reply = messaging.send_message(provider, customer.id, "Yes, after 10am.")

    assert first.conversation_key == reply.conversation_key

    thread = messaging.get_conversation(customer, provider.id)
    assert [m.body for m in thread] == ["Are you free on Monday?", "Yes, after 10am."]
    assert [m.id for m in messaging.get_conversation(provider, customer.id)] == [m.id for m in thread]


def test_sent_at_strictly_increases_with_a_stalled_clock(messaging, monkeypatch, customer, provider):
    frozen = datetime(2030, 1, 1, 12, 0, 0)
    monkeypatch.setattr("helperhive.domain.messaging.service.utcnow", lambda: frozen)

    for i in range(5):
        sender, recipient = (customer, provider) if i % 2 == 0 else (provider, customer)
        messaging.send_message(sender, recipient.id, f"message {i}")

    thread = messaging.get_conversation(customer, provider.id)
    assert [m.body for m in thread] == [f"message {i}" for i in range(5)]
    stamps = [m.sent_at for m in thread]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)


def test_sequence_clash_is_retried(messaging, monkeypatch, customer, provider):
    messaging.send_message(customer, provider.id, "first")
    real_last_position = messaging.repo.last_position
    stale_reads = [(None, 0)]

    def last_position(db, key):
        # the first read misses a message another worker already committed
        return stale_reads.pop() if stale_reads else real_last_position(db, key)

    monkeypatch.setattr(messaging.repo, "last_position", last_position)
    reply = messaging.send_message(provider, customer.id, "second")

    thread = messaging.get_conversation(customer, provider.id)
    assert [(m.sequence, m.body) for m in thread] == [(1, "first"), (2, "second")]
    assert reply.sent_at > thread[0].sent_at


def test_conversation_busy_after_repeated_clashes(messaging, monkeypatch, customer, provider):
    messaging.send_message(customer, provider.id, "first")
    monkeypatch.setattr(messaging.repo, "last_position", lambda db, key: (None, 0))

    with pytest.raises(Conflict):
        messaging.send_message(provider, customer.id, "second")
    assert len(messaging.get_conversation(customer, provider.id)) == 1


def test_limit_keeps_latest_messages(messaging, customer, provider):
    for i in range(4):
        messaging.send_message(customer, provider.id, f"message {i}")

    latest = messaging.get_conversation(customer, provider.id, limit=2)

    assert [m.body for m in latest] == ["message 2", "message 3"]
    with pytest.raises(InvalidInput):
        messaging.get_conversation(customer, provider.id, limit=0)


@pytest.mark.parametrize("body", ["", "   ", "x" * 2001])
def test_rejects_bad_bodies(messaging, customer, provider, body):
    with pytest.raises(InvalidInput):
        messaging.send_message(customer, provider.id, body)


def test_rejects_self_and_unknown_recipients(messaging, customer):
    with pytest.raises(InvalidInput):
        messaging.send_message(customer, customer.id, "hello me")
    with pytest.raises(NotFound):
        messaging.send_message(customer, "nobody", "hello?")


def test_conversation_list(messaging, db, customer, provider):
    other = make_user(db, "plumber", is_service_provider=True, is_online=True)

    messaging.send_message(customer, provider.id, "Booking question")
    messaging.send_message(other, customer.id, "Quote for the sink")

    summaries = messaging.list_conversations(customer)

    assert [s.counterpart_id for s in summaries] == [other.id, provider.id]
    assert summaries[0].counterpart_is_online
    assert not summaries[0].is_last_message_mine
    assert summaries[1].is_last_message_mine
    assert summaries[1].last_message.body == "Booking question"


def test_participants_receive_new_messages(db, hub, customer, provider, stranger):
    async def scenario():
        messaging = MessagingService(db, hub)
        provider_feed = hub.subscribe("messages", {"participants": provider.id})
        stranger_feed = hub.subscribe("messages", {"participants": stranger.id})

        sent = messaging.send_message(customer, provider.id, "On my way")
        delivered = await provider_feed.get(timeout=1)

        assert delivered["id"] == sent.id
        assert delivered["conversation_key"] == conversation_key(customer.id, provider.id)
        assert stranger_feed.pending() == 0

        provider_feed.cancel()
        stranger_feed.cancel()

    asyncio.run(scenario())
