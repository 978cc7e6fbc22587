import asyncio

import pytest
from firebase_admin import auth as firebase_auth

from helperhive.errors import Conflict
from helperhive.models import RequestStatus, User
from helperhive.realtime import live_queries
from helperhive.services import identity_service
from helperhive.services.identity_service import IdentityProvider
from tests.conftest import as_user, make_user


@pytest.fixture
def provider_stub(monkeypatch):
    monkeypatch.setattr(identity_service, "init_firebase", lambda: None)
    return IdentityProvider(api_key="test-key")


def test_auth_state_listeners(provider_stub, monkeypatch):
    revoked = []
    monkeypatch.setattr(firebase_auth, "revoke_refresh_tokens", revoked.append)

    async def fake_toolkit_call(method, body):
        assert method == "signInWithPassword"
        return {"localId": "uid-1", "idToken": "id", "refreshToken": "refresh", "expiresIn": "3600"}

    monkeypatch.setattr(provider_stub, "_toolkit_call", fake_toolkit_call)

    seen = []
    unsubscribe = provider_stub.on_auth_state_changed(seen.append)

    session = asyncio.run(provider_stub.sign_in("ayesha@example.com", "secret1"))
    provider_stub.sign_out("uid-1")
    unsubscribe()
    provider_stub.sign_out("uid-1")

    assert session["user_id"] == "uid-1"
    assert session["expires_in"] == 3600
    assert session["email_verified"] is False
    assert seen == ["uid-1", None]
    assert revoked == ["uid-1", "uid-1"]


def test_failing_listener_does_not_break_sign_out(provider_stub, monkeypatch):
    monkeypatch.setattr(firebase_auth, "revoke_refresh_tokens", lambda uid: None)

    def broken(uid):
        raise RuntimeError("listener crashed")

    seen = []
    provider_stub.on_auth_state_changed(broken)
    provider_stub.on_auth_state_changed(seen.append)

    provider_stub.sign_out("uid-2")

    assert seen == [None]


def test_current_user_from_token(provider_stub):
    assert provider_stub.current_user({"sub": "uid-3", "email_verified": True}) == {
        "id": "uid-3",
        "email_verified": True,
    }


def test_duplicate_sign_up_is_a_conflict(provider_stub, monkeypatch):
    def create_user(**kwargs):
        raise firebase_auth.EmailAlreadyExistsError("exists", None, None)

    monkeypatch.setattr(firebase_auth, "create_user", create_user)

    with pytest.raises(Conflict):
        provider_stub.sign_up("ayesha@example.com", "secret1", "Ayesha")


def test_sign_up_creates_user_record(client, db, monkeypatch):
    monkeypatch.setattr(identity_service.identity_provider, "sign_up", lambda email, password, name: "uid-new")

    response = client.post(
        "/auth/signup",
        json={"name": "Bilal", "email": "Bilal@Example.com", "password": "secret1"},
    )

    assert response.status_code == 201
    assert response.json()["email"] == "bilal@example.com"
    stored = db.get(User, "uid-new")
    assert stored.name == "Bilal"
    assert stored.request_status == RequestStatus.NONE.value
    assert not stored.is_service_provider


def test_sign_out_marks_user_offline(client, db, monkeypatch):
    user = make_user(db, "uid-online", is_online=True)
    revoked = []
    monkeypatch.setattr(identity_service.identity_provider, "sign_out", revoked.append)
    watcher = live_queries.subscribe("users", {"id": user.id})

    try:
        response = client.post("/auth/signout", headers=as_user(user))
        assert watcher.pending() == 1
    finally:
        watcher.cancel()

    assert response.status_code == 200
    assert revoked == ["uid-online"]
    db.expire_all()
    stored = db.get(User, "uid-online")
    assert stored.is_online is False
    assert stored.last_seen is not None
