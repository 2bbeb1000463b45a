"""Shared test fixtures and helpers."""

import threading
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from marketplace import models  # noqa: F401
from marketplace.cache import Cache
from marketplace.database import Base, build_session_factory
from marketplace.models import (
    Agent,
    AgentStatus,
    Booking,
    BookingStatus,
    Client,
    ExtraTask,
    Organization,
    PaymentStatus,
    Service,
    ServiceProvider,
)
from marketplace.services.notification_service import NotificationDispatcher


class FakeNotificationSender:
    """Records every message instead of delivering it."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[dict] = []
        self._lock = threading.Lock()

    def send(self, to: str, subject: str, message: str) -> bool:
        with self._lock:
            self.sent.append({"to": to, "subject": subject, "message": message})
        return self.succeed

    def recipients(self) -> set[str]:
        return {m["to"] for m in self.sent}


class FakeEmbeddingProvider:
    """Returns canned vectors by keyword; unknown text embeds to [] like a failed API call."""

    def __init__(self, vectors: Optional[dict[str, list[float]]] = None):
        self.vectors = vectors or {}
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        lowered = text.lower()
        for keyword, vector in self.vectors.items():
            if keyword in lowered:
                return list(vector)
        return []


class FakeRedis:
    """Just enough of the redis client API for Cache."""

    def __init__(self):
        self.store: dict[str, str] = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, key):
        self.store.pop(key, None)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sender():
    return FakeNotificationSender()


def run_now(func, *args, **kwargs):
    """Scheduler that delivers immediately, so tests can inspect the sender right away."""
    func(*args, **kwargs)


@pytest.fixture
def notifier(sender):
    return NotificationDispatcher(sender, run_now)


@pytest.fixture
def embedder():
    return FakeEmbeddingProvider()


@pytest.fixture
def cache():
    return Cache(client=FakeRedis())


# ============================================================================
# FACTORIES
# ============================================================================


def make_provider(db, name: str = "Sparkle Co", email: str = "owner@sparkle.test") -> ServiceProvider:
    provider = ServiceProvider(name=name, email=email)
    db.add(provider)
    db.commit()
    return provider


def make_organization(db, provider: ServiceProvider, name: str = "Sparkle Cleaning", **fields) -> Organization:
    organization = Organization(owner_id=provider.id, name=name, **fields)
    db.add(organization)
    db.commit()
    return organization


def make_client(db, name: str = "Alice", email: str = "alice@client.test") -> Client:
    client = Client(name=name, email=email)
    db.add(client)
    db.commit()
    return client


def make_service(
    db,
    organization: Organization,
    name: str = "Electrical Repair",
    base_price="100.00",
    category: str = "Electrical",
    **fields,
) -> Service:
    fields.setdefault("description", f"{name} by certified technicians")
    service = Service(
        organization_id=organization.id,
        name=name,
        base_price=Decimal(str(base_price)),
        category=category,
        **fields,
    )
    db.add(service)
    db.commit()
    return service


def make_agent(
    db,
    provider: ServiceProvider,
    name: str = "Bob",
    email: str = "bob@agent.test",
    status: AgentStatus = AgentStatus.FREE,
    phone: str = "+15550001111",
) -> Agent:
    agent = Agent(service_provider_id=provider.id, name=name, email=email, status=status, phone=phone)
    db.add(agent)
    db.commit()
    return agent


def make_booking(
    db,
    client: Client,
    service: Service,
    status: BookingStatus = BookingStatus.PENDING,
    agent: Optional[Agent] = None,
    extra_tasks: Optional[list[tuple[str, str]]] = None,
    payment_status: PaymentStatus = PaymentStatus.UNPAID,
) -> Booking:
    extras = [ExtraTask(description=d, price=Decimal(p)) for d, p in (extra_tasks or [])]
    total = Decimal(str(service.base_price)) + sum((t.price for t in extras), Decimal("0"))
    booking = Booking(
        client_id=client.id,
        organization_id=service.organization_id,
        service_id=service.id,
        agent_id=agent.id if agent else None,
        booking_date=date(2024, 1, 10),
        booking_time="10:00 AM",
        address="1 Main St",
        status=status,
        payment_status=payment_status,
        total_price=total,
    )
    booking.extra_tasks = extras
    db.add(booking)
    db.commit()
    return booking


@pytest.fixture
def world(db):
    """One provider with an organization, a service, a client and a free agent."""
    provider = make_provider(db)
    organization = make_organization(db, provider)
    service = make_service(db, organization)
    client = make_client(db)
    agent = make_agent(db, provider)
    return {
        "provider": provider,
        "organization": organization,
        "service": service,
        "client": client,
        "agent": agent,
    }
