"""
Tests for admin maintenance endpoints.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from ticketing.db.base import utcnow
from ticketing.models.webhook_event import WebhookEvent
from ticketing.services import webhook_ledger


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"X-Admin-Secret": "wrong"}])
async def test_admin_requires_secret(client: AsyncClient, completed_booking, headers):
    booking = await completed_booking()
    response = await client.post(f"/api/v1/admin/bookings/{booking.id}/resend-email", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "unauthorized"


@pytest.mark.asyncio
async def test_resend_email(client: AsyncClient, completed_booking, notifier, admin_headers):
    """Manual resend goes out even if the ticket was already emailed."""
    booking = await completed_booking()
    for _ in range(2):
        response = await client.post(
            f"/api/v1/admin/bookings/{booking.id}/resend-email", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["success"] is True
    assert notifier.sent == [booking.id, booking.id]


@pytest.mark.asyncio
async def test_resend_email_reports_failure(client: AsyncClient, completed_booking, notifier, admin_headers):
    notifier.result = False
    booking = await completed_booking()
    response = await client.post(f"/api/v1/admin/bookings/{booking.id}/resend-email", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_resend_email_pending_booking(client: AsyncClient, make_booking, notifier, admin_headers):
    booking = await make_booking()
    response = await client.post(f"/api/v1/admin/bookings/{booking.id}/resend-email", headers=admin_headers)
    assert response.status_code == 409
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_resend_email_unknown_booking(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/admin/bookings/TXN0/resend-email", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_sync_mirror(client: AsyncClient, completed_booking, mirror, admin_headers):
    booking = await completed_booking()
    response = await client.post(f"/api/v1/admin/bookings/{booking.id}/sync-mirror", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert mirror.upserts == ["G1-A-1"]


@pytest.mark.asyncio
async def test_prune_webhook_ledger(client: AsyncClient, db_session, admin_headers):
    """Entries past the retention window are deleted; recent ones stay."""
    db_session.add_all([
        WebhookEvent(id="evt_old", event_type="T", payload="{}", processed_at=utcnow() - timedelta(days=45)),
        WebhookEvent(id="evt_new", event_type="T", payload="{}", processed_at=utcnow() - timedelta(days=1)),
    ])
    await db_session.commit()

    response = await client.post("/api/v1/admin/webhooks/prune", json={}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["deleted"] == 1
    assert await webhook_ledger.is_processed(db_session, "evt_new") is True
    assert await webhook_ledger.is_processed(db_session, "evt_old") is False


@pytest.mark.asyncio
async def test_prune_with_explicit_window(client: AsyncClient, db_session, admin_headers):
    db_session.add(WebhookEvent(id="evt_a", event_type="T", payload="{}", processed_at=utcnow() - timedelta(days=3)))
    await db_session.commit()
    response = await client.post(
        "/api/v1/admin/webhooks/prune", json={"older_than_days": 2}, headers=admin_headers
    )
    assert response.json()["deleted"] == 1


@pytest.mark.asyncio
async def test_roster_refresh(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/admin/roster/refresh", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["database"] == "ok"
    assert health.json()["cache"] == {"status": "disabled"}

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "payment_transitions_total" in metrics.text
