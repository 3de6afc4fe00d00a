"""
Pytest configuration and fixtures.
Provides an in-memory database, seeded businesses and fakes for the
notification and payment collaborators.
"""

import json
import os

# Must be set before the settings module is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal
from typing import List

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ollie_invoice.core.integrations.stripe_gateway import CheckoutSession
from ollie_invoice.db.base import Base
from ollie_invoice.models import Business, Client, SubscriptionTier, TaxType
from ollie_invoice.services.notification_service import (
    DeliveryResult,
    InvoiceEmail,
    NotificationKind,
)


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeNotificationService:
    """Records deliveries instead of sending email."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.delivered: List[InvoiceEmail] = []

    async def deliver(self, kind: NotificationKind, email: InvoiceEmail) -> DeliveryResult:
        if self.fail:
            return DeliveryResult(success=False, error="provider unavailable")
        self.delivered.append(email)
        return DeliveryResult(success=True)

    async def send_invoice_created(self, invoice, client, business) -> DeliveryResult:
        return await self.deliver(NotificationKind.INVOICE_CREATED, InvoiceEmail.from_models(invoice, client, business))

    async def send_payment_thanks(self, invoice, client, business) -> DeliveryResult:
        return await self.deliver(NotificationKind.PAYMENT_THANKS, InvoiceEmail.from_models(invoice, client, business))


class FakeNotificationQueue:
    """Collects enqueued notifications synchronously."""

    def __init__(self):
        self.jobs = []

    def enqueue(self, kind, invoice, client, business):
        self.jobs.append((kind, invoice.id, client.email if client else None))
        return self.jobs[-1]

    def kinds(self, kind: NotificationKind) -> list:
        return [job for job in self.jobs if job[0] == kind]


class FakeGateway:
    """Checkout gateway that never leaves the process."""

    is_configured = True

    def __init__(self):
        self.sessions = []

    async def create_checkout_session(self, invoice, business) -> CheckoutSession:
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append((invoice.id, session_id))
        return CheckoutSession(session_id=session_id, url=f"https://checkout.test/{session_id}")

    def construct_event(self, payload: bytes, signature: str):
        if signature != "valid":
            raise ValueError("Invalid webhook signature")
        return json.loads(payload)


@pytest.fixture(scope="function")
async def test_engine():
    """
    Create a test database engine.
    Uses in-memory SQLite for fast tests.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
async def test_db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def notification_queue():
    return FakeNotificationQueue()


@pytest.fixture
def gateway():
    return FakeGateway()


async def create_business(
    session: AsyncSession,
    tier: SubscriptionTier = SubscriptionTier.FREE,
    **overrides,
) -> Business:
    values = dict(
        name="Maple Design Co",
        email="owner@maple.test",
        currency="CAD",
        subscription_tier=tier,
        payment_terms_days=30,
    )
    values.update(overrides)
    business = Business(**values)
    session.add(business)
    await session.commit()
    return business


@pytest.fixture
async def business(test_db_session):
    return await create_business(test_db_session)


@pytest.fixture
async def pro_business(test_db_session):
    return await create_business(test_db_session, SubscriptionTier.PRO, name="Pro Studio")


@pytest.fixture
async def client(test_db_session, business):
    client = Client(
        business_id=business.id,
        name="Jordan Lee",
        company_name="Lee Consulting",
        email="jordan@lee.test",
    )
    test_db_session.add(client)
    await test_db_session.commit()
    return client


@pytest.fixture
async def gst(test_db_session, business):
    tax_type = TaxType(business_id=business.id, name="GST", rate=Decimal("5.00"), is_default=True)
    test_db_session.add(tax_type)
    await test_db_session.commit()
    return tax_type


def line_item(description: str = "Design work", quantity="2", rate="50.00", tax_type_id=None) -> dict:
    return {
        "description": description,
        "quantity": Decimal(quantity),
        "rate": Decimal(rate),
        "tax_type_id": tax_type_id,
    }
