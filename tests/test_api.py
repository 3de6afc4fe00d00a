"""
HTTP API tests: authentication, error bodies and the unauthenticated surfaces.
"""

import json

import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient

from conftest import FakeNotificationService, line_item
from ollie_invoice.core.config import settings
from ollie_invoice.core.security import create_access_token
from ollie_invoice.db.session import get_db
from ollie_invoice.deps import di_container
from ollie_invoice.deps.di_container import Container, config_from_settings
from ollie_invoice.main import app


def auth_headers(business) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'business_id': str(business.id)})}"}


def invoice_payload(client, **fields) -> dict:
    items = [{key: str(value) if value is not None else None for key, value in line_item().items()}]
    return {"client_id": str(client.id), "items": items, **fields}


@pytest.fixture
async def api_client(session_maker, notification_queue, gateway):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    container = Container()
    container.config.from_dict(config_from_settings(settings))
    container.session_factory.override(providers.Object(session_maker))
    container.notification_queue.override(providers.Object(notification_queue))
    container.notification_service.override(providers.Object(FakeNotificationService()))
    container.gateway.override(providers.Object(gateway))

    previous = di_container._container
    di_container._container = container
    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_db, None)
        di_container._container = previous


async def create_and_send(api_client, business, client) -> dict:
    created = await api_client.post("/api/v1/invoices", json=invoice_payload(client), headers=auth_headers(business))
    assert created.status_code == 201
    sent = await api_client.post(f"/api/v1/invoices/{created.json()['id']}/send", headers=auth_headers(business))
    assert sent.status_code == 200
    return created.json()


@pytest.mark.asyncio
async def test_create_and_send_invoice(api_client, business, client, notification_queue):
    created = await api_client.post("/api/v1/invoices", json=invoice_payload(client), headers=auth_headers(business))

    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "draft"
    assert body["invoice_number"] == "0001"
    assert body["total"] == "100.00"
    assert body["line_items"][0]["description"] == "Design work"

    sent = await api_client.post(f"/api/v1/invoices/{body['id']}/send", headers=auth_headers(business))
    assert sent.status_code == 200
    assert sent.json()["status"] == "sent"
    assert len(notification_queue.jobs) == 1

    usage = await api_client.get("/api/v1/usage", headers=auth_headers(business))
    assert usage.json()["count"] == 1
    assert usage.json()["limit"] == settings.FREE_TIER_MONTHLY_INVOICE_LIMIT


@pytest.mark.asyncio
async def test_quota_error_body(api_client, business, client, monkeypatch):
    monkeypatch.setattr(settings, "FREE_TIER_MONTHLY_INVOICE_LIMIT", 1)
    await create_and_send(api_client, business, client)
    created = await api_client.post("/api/v1/invoices", json=invoice_payload(client), headers=auth_headers(business))

    response = await api_client.post(f"/api/v1/invoices/{created.json()['id']}/send", headers=auth_headers(business))

    assert response.status_code == 402
    error = response.json()["error"]
    assert error["code"] == "quota_exceeded"
    assert error["details"] == {"count": 1, "limit": 1}


@pytest.mark.asyncio
async def test_validation_error_body(api_client, business):
    response = await api_client.post("/api/v1/invoices", json={"items": []}, headers=auth_headers(business))
    created_id = response.json()["id"]

    send = await api_client.post(f"/api/v1/invoices/{created_id}/send", headers=auth_headers(business))

    assert send.status_code == 400
    assert send.json()["error"]["code"] == "validation_error"
    assert "A client is required" in send.json()["error"]["details"]["problems"]


@pytest.mark.asyncio
async def test_business_routes_require_a_token(api_client, business):
    missing = await api_client.get("/api/v1/invoices")
    assert missing.status_code in (401, 403)

    invalid = await api_client.get("/api/v1/invoices", headers={"Authorization": "Bearer not-a-token"})
    assert invalid.status_code == 401
    assert invalid.json()["error"]["code"] == "http_error"


@pytest.mark.asyncio
async def test_invoices_are_scoped_to_the_token_business(api_client, business, pro_business, client):
    created = await api_client.post("/api/v1/invoices", json=invoice_payload(client), headers=auth_headers(business))

    response = await api_client.get(f"/api/v1/invoices/{created.json()['id']}", headers=auth_headers(pro_business))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_public_invoice_by_share_token(api_client, business, client):
    created = await api_client.post("/api/v1/invoices", json=invoice_payload(client), headers=auth_headers(business))

    response = await api_client.get(f"/api/v1/public/invoices/{created.json()['share_token']}")

    assert response.status_code == 200
    body = response.json()
    assert body["invoice"]["invoice_number"] == "0001"
    assert body["business"]["name"] == "Maple Design Co"
    assert "business_id" not in body["invoice"]

    missing = await api_client.get("/api/v1/public/invoices/no-such-token")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_cron_requires_secret(api_client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "cron-secret")

    wrong = await api_client.post("/api/v1/cron/recurring-invoices", headers={"X-Cron-Secret": "nope"})
    assert wrong.status_code == 401

    response = await api_client.post("/api/v1/cron/recurring-invoices", headers={"X-Cron-Secret": "cron-secret"})
    assert response.status_code == 200
    assert response.json()["processed"] == 0
    assert response.json()["errors"] == []

    status = await api_client.get("/api/v1/cron/recurring-invoices/status", headers={"X-Cron-Secret": "cron-secret"})
    assert status.status_code == 200
    assert status.json()["last_run"]["processed"] == 0
    assert status.json()["scheduler_running"] is False


@pytest.mark.asyncio
async def test_cron_disabled_without_secret(api_client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)

    response = await api_client.post("/api/v1/cron/recurring-invoices", headers={"X-Cron-Secret": ""})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_checkout_webhook_is_applied_once(api_client, business, client):
    invoice = await create_and_send(api_client, business, client)
    event = json.dumps({
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_webhook",
                "amount_total": 10000,
                "metadata": {"invoice_id": invoice["id"]},
            }
        },
    })

    first = await api_client.post("/api/v1/webhooks/stripe", content=event, headers={"Stripe-Signature": "valid"})
    second = await api_client.post("/api/v1/webhooks/stripe", content=event, headers={"Stripe-Signature": "valid"})

    assert first.json() == {"received": True, "handled": True}
    assert second.json() == {"received": True, "handled": False}

    fetched = await api_client.get(f"/api/v1/invoices/{invoice['id']}", headers=auth_headers(business))
    assert fetched.json()["status"] == "paid"
    assert [payment["reference"] for payment in fetched.json()["payments"]] == ["cs_test_webhook"]


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature(api_client):
    response = await api_client.post(
        "/api/v1/webhooks/stripe",
        content=json.dumps({"type": "checkout.session.completed"}),
        headers={"Stripe-Signature": "forged"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_other_webhook_events_are_acknowledged(api_client):
    response = await api_client.post(
        "/api/v1/webhooks/stripe",
        content=json.dumps({"type": "invoice.created", "data": {"object": {}}}),
        headers={"Stripe-Signature": "valid"},
    )

    assert response.json() == {"received": True, "handled": False}


@pytest.mark.asyncio
async def test_tax_types_and_dashboard(api_client, business):
    created = await api_client.post(
        "/api/v1/tax-types",
        json={"name": "HST", "rate": "13", "is_default": True},
        headers=auth_headers(business),
    )
    assert created.status_code == 201

    listing = await api_client.get("/api/v1/tax-types", headers=auth_headers(business))
    assert [tax_type["name"] for tax_type in listing.json()["items"]] == ["HST"]

    stats = await api_client.get("/api/v1/dashboard/stats", headers=auth_headers(business))
    assert stats.status_code == 200
    assert stats.json()["recent_invoices"] == []
