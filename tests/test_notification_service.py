"""
Notification tests: email content, failure reporting and queue retries.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from ollie_invoice.core.exceptions import ExternalServiceError
from ollie_invoice.core.integrations.email_client import ResendEmailClient
from ollie_invoice.services.notification_service import (
    DeliveryStatus,
    NotificationKind,
    NotificationQueue,
    NotificationService,
)


class RecordingEmailClient:
    """Fails the first ``failures`` sends, then records every message."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.sent = []

    async def send_email(self, to, subject, html, cc=None, reply_to=None):
        if self.failures:
            self.failures -= 1
            raise ExternalServiceError("resend", "rate limited")
        self.sent.append({"to": to, "subject": subject, "html": html, "cc": cc, "reply_to": reply_to})
        return f"msg_{len(self.sent)}"


def make_models(**business_overrides):
    invoice = SimpleNamespace(
        id=uuid4(),
        invoice_number="0007",
        total=Decimal("105.00"),
        amount_paid=Decimal("5.00"),
        due_date=datetime(2025, 4, 30),
        share_token="tok_abc",
        payment_link=None,
    )
    client = SimpleNamespace(name="Jordan <Lee>", email="jordan@lee.test")
    business = SimpleNamespace(
        name="Maple Design Co",
        email="owner@maple.test",
        currency="CAD",
        send_invoice_copy=False,
        invoice_copy_email=None,
        thank_you_message=None,
    )
    for key, value in business_overrides.items():
        setattr(business, key, value)
    return invoice, client, business


async def wait_for_status(job, status, timeout: float = 1.0):
    async def poll():
        while job.status != status:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_invoice_email_links_to_public_view():
    email_client = RecordingEmailClient()
    service = NotificationService(email_client, "https://app.ollie.test/")

    result = await service.send_invoice_created(*make_models())

    assert result.success
    message = email_client.sent[0]
    assert message["to"] == "jordan@lee.test"
    assert message["subject"] == "Invoice #0007 from Maple Design Co"
    assert "https://app.ollie.test/pay/tok_abc" in message["html"]
    assert "CAD 100.00" in message["html"]
    assert "Jordan &lt;Lee&gt;" in message["html"]
    assert message["reply_to"] == "owner@maple.test"
    assert message["cc"] is None


@pytest.mark.asyncio
async def test_invoice_copy_goes_to_business():
    email_client = RecordingEmailClient()
    service = NotificationService(email_client, "https://app.ollie.test")

    await service.send_invoice_created(*make_models(send_invoice_copy=True, invoice_copy_email="books@maple.test"))

    assert email_client.sent[0]["cc"] == ["books@maple.test"]


@pytest.mark.asyncio
async def test_thank_you_uses_business_message():
    email_client = RecordingEmailClient()
    service = NotificationService(email_client, "https://app.ollie.test")

    await service.send_payment_thanks(*make_models(thank_you_message="Much appreciated!"))

    message = email_client.sent[0]
    assert message["subject"] == "Payment received for invoice #0007"
    assert "Much appreciated!" in message["html"]


@pytest.mark.asyncio
async def test_unconfigured_provider_reports_failure():
    service = NotificationService(ResendEmailClient(api_key=None, from_email=None), "https://app.ollie.test")

    result = await service.send_invoice_created(*make_models())

    assert not result.success
    assert "not configured" in result.error


@pytest.mark.asyncio
async def test_queue_retries_until_delivered():
    email_client = RecordingEmailClient(failures=2)
    queue = NotificationQueue(NotificationService(email_client, "https://app.ollie.test"), retry_delay=0)
    queue.start()
    try:
        job = queue.enqueue(NotificationKind.INVOICE_CREATED, *make_models())
        await wait_for_status(job, DeliveryStatus.DELIVERED)
    finally:
        await queue.stop()

    assert job.attempts == 3
    assert job.last_error is None
    assert queue.delivered == 1
    assert len(email_client.sent) == 1


@pytest.mark.asyncio
async def test_queue_gives_up_after_max_attempts():
    email_client = RecordingEmailClient(failures=10)
    queue = NotificationQueue(
        NotificationService(email_client, "https://app.ollie.test"),
        max_attempts=2,
        retry_delay=0,
    )
    queue.start()
    try:
        job = queue.enqueue(NotificationKind.PAYMENT_THANKS, *make_models())
        await wait_for_status(job, DeliveryStatus.FAILED)
    finally:
        await queue.stop()

    assert job.attempts == 2
    assert "rate limited" in job.last_error
    assert queue.failed == 1
    assert email_client.sent == []


@pytest.mark.asyncio
async def test_queue_skips_clients_without_email():
    queue = NotificationQueue(NotificationService(RecordingEmailClient(), "https://app.ollie.test"))
    invoice, client, business = make_models()
    client.email = None

    assert queue.enqueue(NotificationKind.INVOICE_CREATED, invoice, client, business) is None
    assert list(queue.history) == []
