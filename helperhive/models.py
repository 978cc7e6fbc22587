import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.clock import utcnow


def generate_id():
    """Generate a unique document ID"""
    return str(uuid.uuid4())


class RequestStatus(str, enum.Enum):
    NONE = "None"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ServiceStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"


class ServiceCategory(str, enum.Enum):
    CLEANING = "Cleaning"
    REPAIRING = "Repairing"
    PAINTING = "Painting"
    LAUNDRY = "Laundry"
    APPLIANCE = "Appliance"
    PLUMBING = "Plumbing"
    SHIFTING = "Shifting"
    BEAUTY = "Beauty"
    AC_REPAIR = "AC Repair"
    VEHICLE = "Vehicle"
    ELECTRONICS = "Electronics"
    MASSAGE = "Massage"


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"
    CANCELED = "Canceled"
    COMPLETED = "Completed"


class TicketStatus(str, enum.Enum):
    OPEN = "Open"
    RESOLVED = "Resolved"


class User(Base):
    __tablename__ = "users"

    # Firebase uid, assigned by the identity provider
    id = Column(String(128), primary_key=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    phone = Column(String(20), nullable=True)  # E.164 where the country code is known
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True, index=True)
    date_of_birth = Column(String(10), nullable=True)  # YYYY-MM-DD
    national_id_number = Column(String(20), nullable=True)
    # Roles
    is_service_provider = Column(Boolean, default=False, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    # Onboarding
    request_status = Column(String(20), default=RequestStatus.NONE.value, nullable=False, index=True)
    rejection_reason = Column(String(500), nullable=True)
    onboarding_submitted_at = Column(DateTime, nullable=True)
    # Verification artifacts (blob store object keys, resolved to URLs on read)
    avatar_url = Column(String(1000), nullable=True)
    national_id_front_url = Column(String(1000), nullable=True)
    national_id_back_url = Column(String(1000), nullable=True)
    # Presence
    is_online = Column(Boolean, default=False, nullable=False)
    last_seen = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    services = relationship("Service", back_populates="owner", cascade="all, delete-orphan")


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=False)
    price_range = Column(String(100), nullable=False)  # e.g. "Rs 1500 - 3000"
    availability = Column(String(255), nullable=False)  # e.g. "Mon-Sat, 9am-6pm"
    city = Column(String(100), nullable=True, index=True)
    status = Column(String(20), default=ServiceStatus.PENDING.value, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="services")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    provider_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True, index=True)
    # Kept on the booking so history stays readable after the listing is gone
    service_name = Column(String(255), nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    duration_hours = Column(Integer, nullable=False, default=1)
    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False, index=True)
    has_reviewed = Column(Boolean, default=False, nullable=False)
    # Optimistic concurrency: every UPDATE checks and bumps this
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}

    events = relationship(
        "BookingEvent",
        back_populates="booking",
        order_by="BookingEvent.created_at",
        cascade="all, delete-orphan",
    )

    @property
    def participants(self) -> list:
        return [uid for uid in (self.customer_id, self.provider_id) if uid]

    @property
    def is_completed(self) -> bool:
        return self.status == BookingStatus.COMPLETED.value


class BookingEvent(Base):
    """Append-only audit trail of booking status changes"""

    __tablename__ = "booking_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(20), nullable=False)  # Create, Accept, Reject, Cancel, Complete
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    actor_id = Column(String(128), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    booking = relationship("Booking", back_populates="events")


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (UniqueConstraint("conversation_key", "sequence", name="uq_message_conversation_sequence"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    sender_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    recipient_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    # Same value for A->B and B->A
    conversation_key = Column(String(257), nullable=False, index=True)
    body = Column(Text, nullable=False)
    sent_at = Column(DateTime, nullable=False, index=True)
    # Write order within the conversation, unique per conversation
    sequence = Column(Integer, nullable=False)

    @property
    def participants(self) -> list:
        return [uid for uid in (self.sender_id, self.recipient_id) if uid]


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("booking_id", "reviewer_id", name="uq_review_booking_reviewer"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False)
    reviewer_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    rating = Column(Integer, nullable=False)  # 1 to 5
    text = Column(String(1000), nullable=False)
    submitted_at = Column(DateTime, default=utcnow)

    reviewer = relationship("User")


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(String(36), primary_key=True, default=generate_id)
    from_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    against_id = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), default=TicketStatus.OPEN.value, nullable=False, index=True)
    admin_response = Column(Text, nullable=True)
    resolved_by = Column(String(128), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    recipient_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    message = Column(String(500), nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
