"""
Tests for booking endpoints: creation against an invite code, reads, status.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, update

from ticketing.db.base import utcnow
from ticketing.models.booking import Booking


def booking_json(**overrides):
    data = {
        "invite_code": "G1-A-1",
        "customer_name": "Asha  Rao",
        "customer_email": "Asha@Example.com",
        "customer_phone": "+91 98765 43210",
        "ticket_type": "Ultimate",
        "ticket_count": 1,
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, gateway):
    """A valid invite code gets a pending booking and a gateway payment session."""
    response = await client.post("/api/v1/bookings/", json=booking_json())
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    booking = data["booking"]
    assert booking["payment_status"] == "pending"
    assert booking["invite_code"] == "G1-A-1"
    assert booking["customer_name"] == "Asha Rao"
    assert booking["customer_email"] == "asha@example.com"
    assert booking["customer_phone"] == "9876543210"
    assert booking["reference_number"].startswith("DIW")
    assert Decimal(str(booking["total_amount"])) == Decimal("1737.06")
    assert data["payment_session_id"] == f"session_{booking['order_id']}"

    order_id, amount, customer = gateway.created[0]
    assert order_id == booking["id"]
    assert amount == Decimal("1737.06")
    assert customer.email == "asha@example.com"


@pytest.mark.asyncio
async def test_create_booking_for_other_event(client: AsyncClient):
    response = await client.post("/api/v1/bookings/", json=booking_json(event="luau"))
    assert response.status_code == 201
    assert response.json()["booking"]["reference_number"].startswith("LUAU")


@pytest.mark.asyncio
async def test_create_booking_unknown_code(client: AsyncClient, gateway):
    response = await client.post("/api/v1/bookings/", json=booking_json(invite_code="NOPE-1"))
    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "invalid_code"
    assert gateway.created == []


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["", "   ", "X" * 80])
async def test_create_booking_blank_or_overlong_code(client: AsyncClient, gateway, code):
    """Empty and overlong codes are reported by the invite check, not field validation."""
    response = await client.post("/api/v1/bookings/", json=booking_json(invite_code=code))
    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "invalid_code"
    assert gateway.created == []


@pytest.mark.asyncio
async def test_create_booking_redeemed_code(client: AsyncClient, completed_booking):
    """A code with a completed booking cannot start another one."""
    await completed_booking("G1-A-1")
    response = await client.post("/api/v1/bookings/", json=booking_json())
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "duplicate_redemption"


@pytest.mark.asyncio
async def test_pending_attempt_does_not_block_retry(client: AsyncClient):
    first = await client.post("/api/v1/bookings/", json=booking_json())
    second = await client.post("/api/v1/bookings/", json=booking_json())
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["booking"]["id"] != second.json()["booking"]["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"customer_phone": "12345"},
        {"customer_phone": "5876543210"},
        {"customer_email": "not-an-email"},
        {"customer_name": "R2-D2"},
        {"ticket_count": 0},
        {"ticket_count": 11},
    ],
)
async def test_create_booking_invalid_fields(client: AsyncClient, overrides):
    """Field validation failures come back as invalid_input with 400."""
    response = await client.post("/api/v1/bookings/", json=booking_json(**overrides))
    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "invalid_input"


@pytest.mark.asyncio
async def test_create_booking_over_ticket_limit(client: AsyncClient):
    response = await client.post("/api/v1/bookings/", json=booking_json(ticket_count=2))
    assert response.status_code == 400
    assert "Maximum" in response.json()["error"]["detail"]


@pytest.mark.asyncio
async def test_create_booking_unknown_ticket_type_or_event(client: AsyncClient):
    response = await client.post("/api/v1/bookings/", json=booking_json(ticket_type="vip"))
    assert response.status_code == 400
    response = await client.post("/api/v1/bookings/", json=booking_json(event="nope"))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_malformed_json(client: AsyncClient):
    response = await client.post(
        "/api/v1/bookings/",
        content=b"not json at all",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "invalid_input"


@pytest.mark.asyncio
async def test_gateway_unavailable(client: AsyncClient, gateway, db_session):
    """Gateway failure is a retryable 503; the pending row stays behind without redeeming the code."""
    gateway.fail = True
    response = await client.post("/api/v1/bookings/", json=booking_json())
    assert response.status_code == 503
    error = response.json()["error"]
    assert error["kind"] == "upstream_unavailable"
    assert error["retryable"] is True

    count = await db_session.execute(select(func.count()).select_from(Booking))
    assert count.scalar_one() == 1

    gateway.fail = False
    retry = await client.post("/api/v1/bookings/", json=booking_json())
    assert retry.status_code == 201


@pytest.mark.asyncio
async def test_get_booking(client: AsyncClient):
    created = (await client.post("/api/v1/bookings/", json=booking_json())).json()["booking"]
    response = await client.get(f"/api/v1/bookings/{created['id']}")
    assert response.status_code == 200
    assert response.json()["reference_number"] == created["reference_number"]


@pytest.mark.asyncio
async def test_get_booking_not_found(client: AsyncClient):
    response = await client.get("/api/v1/bookings/TXN000")
    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "not_found"


@pytest.mark.asyncio
async def test_booking_status_by_reference(client: AsyncClient, completed_booking):
    booking = await completed_booking()
    response = await client.get(f"/api/v1/bookings/reference/{booking.reference_number.lower()}")
    assert response.status_code == 200
    data = response.json()
    assert data["found"] is True
    assert data["payment_status"] == "completed"
    assert data["expired"] is False
    assert data["checked_in"] is False


@pytest.mark.asyncio
async def test_booking_status_reports_expired_hold(client: AsyncClient, make_booking, db_session):
    booking = await make_booking()
    reference = booking.reference_number
    await db_session.execute(
        update(Booking)
        .where(Booking.id == booking.id)
        .values(expires_at=utcnow() - timedelta(minutes=1))
    )
    await db_session.commit()

    response = await client.get(f"/api/v1/bookings/reference/{reference}")
    data = response.json()
    assert data["payment_status"] == "pending"
    assert data["expired"] is True
