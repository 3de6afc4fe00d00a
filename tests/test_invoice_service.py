"""
Invoice service tests: drafting, sending, payments and the public view.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from conftest import create_business, line_item
from ollie_invoice.core.exceptions import NotFoundError, QuotaExceededError, ValidationError
from ollie_invoice.models import Client
from ollie_invoice.models.invoice import DiscountType, InvoiceStatus, PaymentMethod
from ollie_invoice.schemas.invoice import (
    CreateInvoiceCommand,
    RecordPaymentCommand,
    TotalsPreviewRequest,
    UpdateInvoiceCommand,
)
from ollie_invoice.services.invoice_service import InvoiceService
from ollie_invoice.services.notification_service import NotificationKind
from ollie_invoice.services.usage_service import UsageService
from ollie_invoice.utils.time import utcnow


@pytest.fixture
def service(test_db_session, notification_queue, gateway):
    return InvoiceService(
        test_db_session,
        notification_queue,
        gateway,
        usage_service=UsageService(test_db_session, free_tier_limit=3),
    )


async def create_draft(service, business, client=None, items=None, **fields):
    command = CreateInvoiceCommand(
        client_id=client.id if client else None,
        items=items if items is not None else [line_item()],
        **fields,
    )
    return await service.create_invoice(business, command)


async def usage_count(session, business) -> int:
    return (await UsageService(session).get_monthly_usage(business)).count


@pytest.mark.asyncio
async def test_create_computes_totals_and_defaults(service, business, client, gst):
    invoice = await create_draft(
        service,
        business,
        client,
        items=[line_item(tax_type_id=gst.id), line_item("Hosting", "1", "25")],
        shipping=Decimal("10"),
        discount_type=DiscountType.PERCENT,
        discount_value=Decimal("10"),
    )

    assert invoice.invoice_number == "0001"
    assert invoice.status == InvoiceStatus.DRAFT
    assert invoice.subtotal == Decimal("125.00")
    assert invoice.tax_amount == Decimal("5.00")
    assert invoice.discount_amount == Decimal("12.50")
    assert invoice.total == Decimal("127.50")
    assert invoice.balance_due == Decimal("127.50")
    assert invoice.due_date == invoice.issue_date + timedelta(days=30)
    assert [item.tax_amount for item in invoice.line_items] == [Decimal("5.00"), Decimal("0.00")]
    assert invoice.client.name == "Jordan Lee"


@pytest.mark.asyncio
async def test_preview_matches_persisted_totals(service, business, client, gst):
    items = [line_item(tax_type_id=gst.id), line_item("Hosting", "3", "19.99", gst.id)]
    preview = await service.preview_totals(
        business,
        TotalsPreviewRequest(items=items, shipping=Decimal("4.50")),
    )
    invoice = await create_draft(service, business, client, items=items, shipping=Decimal("4.50"))

    assert preview.total == invoice.total
    assert preview.tax_amount == invoice.tax_amount
    assert preview.tax_breakdown[0].name == "GST"
    assert preview.tax_breakdown[0].amount == Decimal("8.00")


@pytest.mark.asyncio
async def test_foreign_tax_type_is_rejected(service, business, client):
    from uuid import uuid4

    with pytest.raises(ValidationError):
        await create_draft(service, business, client, items=[line_item(tax_type_id=uuid4())])


@pytest.mark.asyncio
async def test_send_without_client_is_rejected(service, test_db_session, business):
    invoice = await create_draft(service, business)

    with pytest.raises(ValidationError) as exc_info:
        await service.send_invoice(invoice.id, business)

    assert "A client is required" in exc_info.value.details["problems"]
    assert (await service.get_invoice(invoice.id, business)).status == InvoiceStatus.DRAFT
    assert await usage_count(test_db_session, business) == 0


@pytest.mark.asyncio
async def test_send_creates_checkout_and_queues_email(
    service, test_db_session, business, client, notification_queue, gateway
):
    business.stripe_account_id = "acct_test"
    await test_db_session.commit()
    invoice = await create_draft(service, business, client)

    sent = await service.send_invoice(invoice.id, business)

    assert sent.status == InvoiceStatus.SENT
    assert sent.sent_at is not None
    assert sent.payment_link == "https://checkout.test/cs_test_1"
    assert notification_queue.kinds(NotificationKind.INVOICE_CREATED) == [
        (NotificationKind.INVOICE_CREATED, invoice.id, "jordan@lee.test")
    ]
    assert await usage_count(test_db_session, business) == 1


@pytest.mark.asyncio
async def test_etransfer_invoice_gets_no_checkout(service, test_db_session, business, client, gateway):
    business.stripe_account_id = "acct_test"
    await test_db_session.commit()
    invoice = await create_draft(service, business, client, payment_method=PaymentMethod.ETRANSFER)

    sent = await service.send_invoice(invoice.id, business)

    assert sent.payment_link is None
    assert gateway.sessions == []


@pytest.mark.asyncio
async def test_fourth_send_in_a_month_hits_the_free_quota(service, test_db_session, business, client):
    drafts = [await create_draft(service, business, client) for _ in range(4)]
    for invoice in drafts[:3]:
        await service.send_invoice(invoice.id, business)

    with pytest.raises(QuotaExceededError) as exc_info:
        await service.send_invoice(drafts[3].id, business)

    assert exc_info.value.details == {"count": 3, "limit": 3}
    assert (await service.get_invoice(drafts[3].id, business)).status == InvoiceStatus.DRAFT
    assert await usage_count(test_db_session, business) == 3


@pytest.mark.asyncio
async def test_pro_business_sends_without_limit(test_db_session, pro_business, notification_queue):
    service = InvoiceService(test_db_session, notification_queue, usage_service=UsageService(test_db_session, 3))
    client = Client(business_id=pro_business.id, name="Sam", email="sam@example.test")
    test_db_session.add(client)
    await test_db_session.commit()

    for _ in range(5):
        invoice = await create_draft(service, pro_business, client)
        await service.send_invoice(invoice.id, pro_business)

    assert await usage_count(test_db_session, pro_business) == 5


@pytest.mark.asyncio
async def test_second_send_is_rejected_without_counting(service, test_db_session, business, client):
    invoice = await create_draft(service, business, client)
    await service.send_invoice(invoice.id, business)

    with pytest.raises(ValidationError):
        await service.send_invoice(invoice.id, business)
    assert await usage_count(test_db_session, business) == 1


@pytest.mark.asyncio
async def test_recurring_template_cannot_be_sent(service, business, client):
    template = await create_draft(
        service, business, client, is_recurring=True, recurring_frequency="monthly", recurring_day=1
    )
    assert template.next_recurring_date is not None

    with pytest.raises(ValidationError):
        await service.send_invoice(template.id, business)


@pytest.mark.asyncio
async def test_partial_then_full_payment(service, business, client, gst):
    invoice = await create_draft(service, business, client, items=[line_item(tax_type_id=gst.id)])
    await service.send_invoice(invoice.id, business)

    await service.record_payment(invoice.id, business, RecordPaymentCommand(amount=Decimal("50"), method="cash"))
    partial = await service.get_invoice(invoice.id, business)
    assert partial.status == InvoiceStatus.PARTIALLY_PAID
    assert partial.amount_paid == Decimal("50.00")
    assert partial.balance_due == Decimal("55.00")

    await service.record_payment(invoice.id, business, RecordPaymentCommand(amount=Decimal("55")))
    paid = await service.get_invoice(invoice.id, business)
    assert paid.status == InvoiceStatus.PAID
    assert paid.amount_paid == Decimal("105.00")
    assert paid.paid_at is not None

    with pytest.raises(ValidationError):
        await service.record_payment(invoice.id, business, RecordPaymentCommand(amount=Decimal("1")))
    assert len(await service.list_payments(invoice.id, business)) == 2


@pytest.mark.asyncio
async def test_overpayment_and_draft_payment_are_rejected(service, business, client):
    draft = await create_draft(service, business, client)
    with pytest.raises(ValidationError):
        await service.record_payment(draft.id, business, RecordPaymentCommand(amount=Decimal("10")))

    await service.send_invoice(draft.id, business)
    with pytest.raises(ValidationError):
        await service.record_payment(draft.id, business, RecordPaymentCommand(amount=Decimal("100.02")))
    assert await service.list_payments(draft.id, business) == []


@pytest.mark.asyncio
async def test_mark_paid_is_idempotent_for_thank_you(service, test_db_session, business, client, notification_queue):
    business.thank_you_enabled = True
    business.thank_you_message = "Thanks for your business!"
    await test_db_session.commit()
    invoice = await create_draft(service, business, client)
    await service.send_invoice(invoice.id, business)

    first = await service.mark_paid(invoice.id, business)
    second = await service.mark_paid(invoice.id, business)

    assert first.status == InvoiceStatus.PAID
    assert second.status == InvoiceStatus.PAID
    assert second.amount_paid == Decimal("100.00")
    assert len(notification_queue.kinds(NotificationKind.PAYMENT_THANKS)) == 1
    payments = await service.list_payments(invoice.id, business)
    assert [payment.method for payment in payments] == ["manual"]


@pytest.mark.asyncio
async def test_mark_paid_on_draft_is_rejected(service, business, client):
    invoice = await create_draft(service, business, client)
    with pytest.raises(ValidationError):
        await service.mark_paid(invoice.id, business)


@pytest.mark.asyncio
async def test_resend_does_not_touch_usage(service, test_db_session, business, client, notification_queue):
    invoice = await create_draft(service, business, client)
    await service.send_invoice(invoice.id, business)

    response = await service.resend_invoice(invoice.id, business)

    assert response.invoice.status == InvoiceStatus.SENT
    assert len(notification_queue.kinds(NotificationKind.INVOICE_CREATED)) == 2
    assert await usage_count(test_db_session, business) == 1


@pytest.mark.asyncio
async def test_resend_of_draft_is_rejected(service, business, client):
    invoice = await create_draft(service, business, client)
    with pytest.raises(ValidationError):
        await service.resend_invoice(invoice.id, business)


@pytest.mark.asyncio
async def test_invoice_numbers_are_not_reused_after_delete(service, business, client):
    await create_draft(service, business, client)
    second = await create_draft(service, business, client)
    await service.delete_invoice(second.id, business)

    third = await create_draft(service, business, client)

    assert third.invoice_number == "0003"
    with pytest.raises(NotFoundError):
        await service.get_invoice(second.id, business)


@pytest.mark.asyncio
async def test_update_replaces_items_and_recalculates(service, business, client, gst):
    invoice = await create_draft(service, business, client)

    updated = await service.update_invoice(
        invoice.id,
        business,
        UpdateInvoiceCommand(items=[line_item("Retainer", "1", "200", gst.id)], notes="Net 30"),
    )

    assert updated.invoice_number == invoice.invoice_number
    assert [item.description for item in updated.line_items] == ["Retainer"]
    assert updated.total == Decimal("210.00")
    assert updated.notes == "Net 30"


@pytest.mark.asyncio
async def test_sent_invoice_is_not_editable(service, business, client):
    invoice = await create_draft(service, business, client)
    await service.send_invoice(invoice.id, business)

    with pytest.raises(ValidationError):
        await service.update_invoice(invoice.id, business, UpdateInvoiceCommand(notes="late edit"))


@pytest.mark.asyncio
async def test_overdue_is_derived_from_due_date(service, business, client):
    now = utcnow()
    invoice = await create_draft(
        service,
        business,
        client,
        issue_date=now - timedelta(days=40),
        due_date=now - timedelta(days=10),
    )
    await service.send_invoice(invoice.id, business)

    fetched = await service.get_invoice(invoice.id, business)
    assert fetched.status == InvoiceStatus.SENT
    assert fetched.display_status == InvoiceStatus.OVERDUE

    overdue = await service.list_invoices(business, status=InvoiceStatus.OVERDUE)
    assert [item.id for item in overdue.items] == [invoice.id]
    assert overdue.total == 1


@pytest.mark.asyncio
async def test_gateway_confirmation_is_idempotent(service, business, client):
    invoice = await create_draft(service, business, client)
    await service.send_invoice(invoice.id, business)

    assert await service.confirm_gateway_payment(invoice.id, "cs_test_42", Decimal("100.00"))
    assert not await service.confirm_gateway_payment(invoice.id, "cs_test_42", Decimal("100.00"))

    paid = await service.get_invoice(invoice.id, business)
    assert paid.status == InvoiceStatus.PAID
    assert [payment.reference for payment in paid.payments] == ["cs_test_42"]


@pytest.mark.asyncio
async def test_public_view_is_sanitized(service, business, client, gst):
    invoice = await create_draft(service, business, client, items=[line_item(tax_type_id=gst.id)])

    public = await service.get_public_invoice(invoice.share_token)

    assert public.invoice.invoice_number == "0001"
    assert public.invoice.balance_due == Decimal("105.00")
    assert public.business.name == "Maple Design Co"
    assert public.client.email == "jordan@lee.test"
    dumped = public.model_dump()
    assert "business_id" not in dumped["invoice"]
    assert "tax_type_id" not in dumped["invoice"]["items"][0]

    with pytest.raises(NotFoundError):
        await service.get_public_invoice("missing-token")


@pytest.mark.asyncio
async def test_delete_is_allowed_after_send(service, business, client):
    invoice = await create_draft(service, business, client)
    await service.send_invoice(invoice.id, business)

    await service.delete_invoice(invoice.id, business)

    listing = await service.list_invoices(business)
    assert listing.total == 0


@pytest.mark.asyncio
async def test_zero_payment_terms_mean_due_on_receipt(test_db_session, notification_queue):
    business = await create_business(test_db_session, payment_terms_days=0)
    service = InvoiceService(test_db_session, notification_queue)

    invoice = await service.create_invoice(
        business, CreateInvoiceCommand(items=[line_item()]), now=datetime(2025, 3, 1)
    )

    assert invoice.due_date == datetime(2025, 3, 1)


@pytest.mark.asyncio
async def test_recurring_template_needs_client_and_items(service, business, client):
    with pytest.raises(ValidationError) as exc_info:
        await create_draft(service, business, is_recurring=True, recurring_frequency="monthly")
    assert "A client is required" in exc_info.value.details["problems"]

    with pytest.raises(ValidationError):
        await create_draft(service, business, client, items=[], is_recurring=True, recurring_frequency="monthly")

    draft = await create_draft(service, business, client, items=[])
    with pytest.raises(ValidationError):
        await service.update_invoice(
            draft.id, business, UpdateInvoiceCommand(is_recurring=True, recurring_frequency="monthly")
        )
