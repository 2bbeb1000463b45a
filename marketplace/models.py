from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"


class AgentStatus(str, Enum):
    FREE = "FREE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"


# Organization's client roster (clients it has served); membership is a set
organization_clients = Table(
    "organization_clients",
    Base.metadata,
    Column("organization_id", Integer, ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
    Column("client_id", Integer, ForeignKey("clients.id", ondelete="CASCADE"), primary_key=True),
)

# Agent capability links
agent_services = Table(
    "agent_services",
    Base.metadata,
    Column("agent_id", Integer, ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", Integer, ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class ServiceProvider(Base):
    """Provider account; owns at most one organization"""

    __tablename__ = "service_providers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="owner", uselist=False)
    agents = relationship("Agent", back_populates="service_provider")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    bookings = relationship("Booking", back_populates="client")
    reviews = relationship("Review", back_populates="client")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("service_providers.id"), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True)
    logo_url = Column(String(500), nullable=True)
    image_urls = Column(JSON, default=list, nullable=True)  # Object store URLs
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    categories = Column(JSON, default=list, nullable=True)
    business_hours = Column(JSON, nullable=True)  # {"Monday": {"start": "09:00", "end": "17:00"}, ...}
    is_verified = Column(Boolean, default=False, nullable=False)
    # Aggregate over the live review set, written only by the rating aggregator
    rating = Column(Float, default=0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("ServiceProvider", back_populates="organization")
    services = relationship("Service", back_populates="organization", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="organization")
    reviews = relationship("Review", back_populates="organization")
    clients = relationship("Client", secondary=organization_clients)


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    estimated_duration = Column(String(50), nullable=True)
    category = Column(String(100), nullable=False, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(JSON, nullable=True)  # {"street", "city", "state", "zipCode", "country"}
    tags = Column(JSON, default=list, nullable=True)
    image_urls = Column(JSON, default=list, nullable=True)
    # Semantic vector over name/description/category/tags; refreshed when any of them change
    embedding = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    organization = relationship("Organization", back_populates="services")
    agents = relationship("Agent", secondary=agent_services, back_populates="services")


class Agent(Base):
    __tablename__ = "agents"

    id = Column(Integer, primary_key=True, index=True)
    service_provider_id = Column(Integer, ForeignKey("service_providers.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    status = Column(SAEnum(AgentStatus, native_enum=False, length=20), default=AgentStatus.FREE, nullable=False)
    rating = Column(Float, default=0, nullable=False)  # Derived, read-only to callers
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    service_provider = relationship("ServiceProvider", back_populates="agents")
    services = relationship("Service", secondary=agent_services, back_populates="agents")
    bookings = relationship("Booking", back_populates="agent")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    agent_id = Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)  # Unset until assigned

    booking_date = Column(Date, nullable=False)
    booking_time = Column(String(20), nullable=False)  # Time-slot string, e.g. "10:00 AM"
    address = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Status workflow: PENDING → ASSIGNED → IN_PROGRESS → COMPLETED, CANCELLED from any non-terminal
    status = Column(
        SAEnum(BookingStatus, native_enum=False, length=20),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    payment_status = Column(
        SAEnum(PaymentStatus, native_enum=False, length=10), default=PaymentStatus.UNPAID, nullable=False
    )

    # Optimistic concurrency token, bumped on every UPDATE of the row
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    client = relationship("Client", back_populates="bookings")
    organization = relationship("Organization", back_populates="bookings")
    service = relationship("Service")
    agent = relationship("Agent", back_populates="bookings")
    extra_tasks = relationship(
        "ExtraTask",
        back_populates="booking",
        order_by="ExtraTask.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}


class ExtraTask(Base):
    """Ad-hoc priced line item added to a booking"""

    __tablename__ = "booking_extra_tasks"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    booking = relationship("Booking", back_populates="extra_tasks")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("client_id", "organization_id", "service_id", name="uq_review_client_org_service"),
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    rating = Column(Integer, nullable=False)  # 1..5
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    client = relationship("Client", back_populates="reviews")
    organization = relationship("Organization", back_populates="reviews")
    service = relationship("Service")
