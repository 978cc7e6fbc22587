import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi import Depends, Header, HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from helperhive.auth import get_current_user
from helperhive.database import Base, build_engine, get_db
from helperhive.main import app
from helperhive.models import Booking, BookingStatus, RequestStatus, Service, ServiceStatus, User
from helperhive.realtime import LiveQueryHub
from helperhive.shared.clock import utcnow


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'helperhive-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def hub():
    return LiveQueryHub()


def make_user(db: Session, uid: str, **fields) -> User:
    user = User(id=uid, email=f"{uid}@example.com", name=uid.title(), **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    return make_user(db, "customer")


@pytest.fixture
def provider(db):
    return make_user(
        db,
        "provider",
        is_service_provider=True,
        request_status=RequestStatus.APPROVED.value,
        city="Lahore",
    )


@pytest.fixture
def admin(db):
    return make_user(db, "admin", is_admin=True)


@pytest.fixture
def stranger(db):
    return make_user(db, "stranger")


@pytest.fixture
def listing(db, provider):
    service = Service(
        owner_id=provider.id,
        name="Deep Cleaning",
        category="Cleaning",
        description="Whole-house deep clean",
        price_range="Rs 2000 - 4000",
        availability="Mon-Sat, 9am-6pm",
        city="Lahore",
        status=ServiceStatus.APPROVED.value,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def make_booking(db, customer, provider, listing):
    """Insert a booking directly in any status"""

    def _make(status: BookingStatus = BookingStatus.PENDING, **fields) -> Booking:
        booking = Booking(
            customer_id=fields.pop("customer_id", customer.id),
            provider_id=fields.pop("provider_id", provider.id),
            service_id=fields.pop("service_id", listing.id),
            service_name=fields.pop("service_name", listing.name),
            scheduled_at=fields.pop("scheduled_at", utcnow() + timedelta(days=2)),
            duration_hours=fields.pop("duration_hours", 2),
            status=status.value,
            **fields,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def client(session_factory):
    """API client; the X-User-Id header stands in for a verified Firebase token"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def override_get_current_user(
        x_user_id: str = Header(...),
        db: Session = Depends(get_db),
    ) -> User:
        user = db.query(User).filter(User.id == x_user_id).first()
        if not user:
            raise HTTPException(status_code=401, detail="Unknown test user")
        return user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    yield TestClient(app)
    app.dependency_overrides.clear()


def as_user(user: User) -> dict:
    return {"X-User-Id": user.id}
