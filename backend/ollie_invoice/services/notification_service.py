"""
Invoice notifications.

NotificationService sends one email and reports the outcome instead of
raising. NotificationQueue runs deliveries in a background worker with a
bounded retry policy and keeps a record of every outcome.
"""

import asyncio
import enum
import html
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Deque, List, Optional

from ollie_invoice.core.exceptions import ExternalServiceError
from ollie_invoice.core.integrations.email_client import ResendEmailClient
from ollie_invoice.services.financial_calculator import balance_due, to_decimal
from ollie_invoice.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class InvoiceEmail:
    """Everything an invoice email needs, detached from the database session."""
    invoice_id: str
    invoice_number: str
    total: Decimal
    balance_due: Decimal
    due_date: datetime
    share_token: str
    payment_link: Optional[str]
    client_name: str
    client_email: str
    business_name: str
    business_email: Optional[str]
    currency: str
    copy_to: Optional[str]
    thank_you_message: Optional[str]

    @classmethod
    def from_models(cls, invoice, client, business) -> "InvoiceEmail":
        copy_to = None
        if business.send_invoice_copy:
            copy_to = business.invoice_copy_email or business.email
        return cls(
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            total=to_decimal(invoice.total),
            balance_due=balance_due(invoice.total, invoice.amount_paid),
            due_date=invoice.due_date,
            share_token=invoice.share_token,
            payment_link=invoice.payment_link,
            client_name=client.name,
            client_email=client.email,
            business_name=business.name or "Your Business",
            business_email=business.email,
            currency=business.currency or "USD",
            copy_to=copy_to,
            thank_you_message=business.thank_you_message,
        )


class NotificationKind(str, enum.Enum):
    INVOICE_CREATED = "invoice_created"
    PAYMENT_THANKS = "payment_thanks"


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass
class DeliveryJob:
    kind: NotificationKind
    email: InvoiceEmail
    attempts: int = 0
    status: DeliveryStatus = DeliveryStatus.PENDING
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


def _money(amount: Decimal, currency: str) -> str:
    return f"{currency} {amount:,.2f}"


class NotificationService:
    """Builds and sends invoice emails."""

    def __init__(self, email_client: ResendEmailClient, public_base_url: str):
        self.email_client = email_client
        self.public_base_url = public_base_url.rstrip("/")

    def invoice_url(self, share_token: str) -> str:
        return f"{self.public_base_url}/pay/{share_token}"

    async def send_invoice_created(self, invoice, client, business) -> DeliveryResult:
        return await self.deliver(NotificationKind.INVOICE_CREATED, InvoiceEmail.from_models(invoice, client, business))

    async def send_payment_thanks(self, invoice, client, business) -> DeliveryResult:
        return await self.deliver(NotificationKind.PAYMENT_THANKS, InvoiceEmail.from_models(invoice, client, business))

    async def deliver(self, kind: NotificationKind, email: InvoiceEmail) -> DeliveryResult:
        if kind == NotificationKind.INVOICE_CREATED:
            subject, body, cc = self._invoice_created(email)
        else:
            subject, body, cc = self._payment_thanks(email)

        try:
            await self.email_client.send_email(
                to=email.client_email,
                subject=subject,
                html=body,
                cc=cc,
                reply_to=email.business_email,
            )
        except ExternalServiceError as e:
            logger.warning(
                "Notification delivery failed",
                extra={"kind": kind.value, "invoice_id": email.invoice_id, "error": e.message},
            )
            return DeliveryResult(success=False, error=e.message)
        return DeliveryResult(success=True)

    def _invoice_created(self, email: InvoiceEmail):
        business = html.escape(email.business_name)
        link = email.payment_link or self.invoice_url(email.share_token)
        subject = f"Invoice #{email.invoice_number} from {email.business_name}"
        body = (
            f"<p>Hi {html.escape(email.client_name)},</p>"
            f"<p>{business} has sent you invoice #{html.escape(email.invoice_number)} "
            f"for {_money(email.balance_due, email.currency)}, "
            f"due {email.due_date:%B %d, %Y}.</p>"
            f'<p><a href="{html.escape(link)}">View and pay invoice</a></p>'
        )
        cc = [email.copy_to] if email.copy_to else None
        return subject, body, cc

    def _payment_thanks(self, email: InvoiceEmail):
        message = email.thank_you_message or "Thank you for your payment!"
        subject = f"Payment received for invoice #{email.invoice_number}"
        body = (
            f"<p>Hi {html.escape(email.client_name)},</p>"
            f"<p>{html.escape(message)}</p>"
            f"<p>Invoice #{html.escape(email.invoice_number)} "
            f"({_money(email.total, email.currency)}) is now paid in full.</p>"
            f"<p>{html.escape(email.business_name)}</p>"
        )
        return subject, body, None


class NotificationQueue:
    """Background delivery with retries and an observable outcome log."""

    def __init__(
        self,
        service: NotificationService,
        max_attempts: int = 3,
        retry_delay: float = 30.0,
        history_size: int = 200,
    ):
        self.service = service
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.history: Deque[DeliveryJob] = deque(maxlen=history_size)
        self.delivered = 0
        self.failed = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._retries: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if not self.is_running:
            self._worker = asyncio.create_task(self._run(), name="notification-queue")
            logger.info("Notification queue started")

    async def stop(self) -> None:
        tasks = [task for task in [self._worker, *self._retries] if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._worker = None
        self._retries = []
        logger.info(
            "Notification queue stopped",
            extra={"pending": self._queue.qsize(), "delivered": self.delivered, "failed": self.failed},
        )

    def enqueue(self, kind: NotificationKind, invoice, client, business) -> Optional[DeliveryJob]:
        """Queue a notification; clients without an email address are skipped."""
        if client is None or not client.email:
            logger.info(
                "Skipping notification, client has no email",
                extra={"kind": kind.value, "invoice_id": str(invoice.id)},
            )
            return None
        job = DeliveryJob(kind=kind, email=InvoiceEmail.from_models(invoice, client, business))
        self.history.append(job)
        self._queue.put_nowait(job)
        return job

    async def join(self) -> None:
        """Wait until every queued job has been attempted at least once."""
        await self._queue.join()

    async def process(self, job: DeliveryJob) -> DeliveryResult:
        job.attempts += 1
        result = await self.service.deliver(job.kind, job.email)
        if result.success:
            job.status = DeliveryStatus.DELIVERED
            job.last_error = None
            self.delivered += 1
            return result

        job.last_error = result.error
        if job.attempts >= self.max_attempts:
            job.status = DeliveryStatus.FAILED
            self.failed += 1
            logger.error(
                "Notification permanently failed",
                extra={
                    "kind": job.kind.value,
                    "invoice_id": job.email.invoice_id,
                    "attempts": job.attempts,
                    "error": result.error,
                },
            )
        else:
            self._retries.append(asyncio.create_task(self._retry_later(job)))
        return result

    async def _retry_later(self, job: DeliveryJob) -> None:
        await asyncio.sleep(self.retry_delay)
        self._queue.put_nowait(job)

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process(job)
            except Exception:
                logger.exception("Unexpected error delivering notification", extra={"kind": job.kind.value})
            finally:
                self._queue.task_done()
                self._retries = [task for task in self._retries if not task.done()]
