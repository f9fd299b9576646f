"""
Tests for booking persistence and its payment-status transitions,
including the one-completed-booking-per-invite-code guarantee.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ticketing.core.errors import (
    AlreadyCheckedIn,
    DuplicateRedemption,
    InvalidInput,
    InvalidTransition,
    NotEligible,
    NotFound,
)
from ticketing.db.base import Base, utcnow
from ticketing.models.booking import Booking, COMPLETED, FAILED, PENDING
from ticketing.services import booking_store


async def completed_count(db, code):
    result = await db.execute(
        select(func.count())
        .select_from(Booking)
        .where(Booking.invite_code == code, Booking.payment_status == COMPLETED)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_pending_booking(db_session, make_booking):
    """New bookings are pending, carry a hold expiry, and use the booking id as order id."""
    booking = await make_booking("g1-a-1")
    assert booking.payment_status == PENDING
    assert booking.invite_code == "G1-A-1"
    assert booking.order_id == booking.id
    assert booking.reference_number.startswith("DIW")
    assert booking.email_sent is False
    assert booking.checked_in is False
    assert booking.expires_at is not None


@pytest.mark.asyncio
async def test_complete_then_replay_is_noop(db_session, make_booking):
    """Only the first pending -> completed call reports changed."""
    booking = await make_booking()
    first = await booking_store.update_payment_status(db_session, booking.order_id, COMPLETED, payment_id="pay_1")
    assert first.changed is True
    assert first.booking.payment_status == COMPLETED
    assert first.booking.payment_id == "pay_1"

    second = await booking_store.update_payment_status(db_session, booking.order_id, COMPLETED)
    assert second.changed is False
    assert second.booking.payment_status == COMPLETED


@pytest.mark.asyncio
async def test_failed_replay_is_noop(db_session, make_booking):
    booking = await make_booking()
    assert (await booking_store.update_payment_status(db_session, booking.order_id, FAILED)).changed
    assert not (await booking_store.update_payment_status(db_session, booking.order_id, FAILED)).changed


@pytest.mark.asyncio
async def test_completed_cannot_become_failed(db_session, completed_booking):
    booking = await completed_booking()
    with pytest.raises(InvalidTransition):
        await booking_store.update_payment_status(db_session, booking.order_id, FAILED)
    assert (await booking_store.get_by_id(db_session, booking.id)).payment_status == COMPLETED


@pytest.mark.asyncio
async def test_failed_cannot_become_completed(db_session, make_booking):
    booking = await make_booking(status=FAILED)
    with pytest.raises(InvalidTransition):
        await booking_store.update_payment_status(db_session, booking.order_id, COMPLETED)


@pytest.mark.asyncio
async def test_pending_is_not_a_transition_target(db_session, make_booking):
    booking = await make_booking()
    with pytest.raises(InvalidInput):
        await booking_store.update_payment_status(db_session, booking.order_id, PENDING)


@pytest.mark.asyncio
async def test_unknown_order(db_session):
    with pytest.raises(NotFound):
        await booking_store.update_payment_status(db_session, "TXN-missing", COMPLETED)


@pytest.mark.asyncio
async def test_second_completion_for_code_is_rejected(db_session, make_booking):
    """Two paid attempts for one code: the partial unique index rejects the second."""
    first = await make_booking("G1-A-2")
    second = await make_booking("G1-A-2")
    first_order, second_id = first.order_id, second.id

    await booking_store.update_payment_status(db_session, first_order, COMPLETED)
    with pytest.raises(DuplicateRedemption):
        await booking_store.update_payment_status(db_session, second.order_id, COMPLETED)

    reloaded = await booking_store.get_by_id(db_session, second_id)
    assert reloaded.payment_status == PENDING
    assert await completed_count(db_session, "G1-A-2") == 1


@pytest.mark.asyncio
async def test_many_attempts_single_redemption(db_session, make_booking):
    """Of N pending attempts confirmed in turn, exactly one completes."""
    orders = [(await make_booking("G2-B-1")).order_id for _ in range(5)]

    outcomes = []
    for order_id in orders:
        try:
            await booking_store.update_payment_status(db_session, order_id, COMPLETED)
            outcomes.append("completed")
        except DuplicateRedemption:
            outcomes.append("duplicate")

    assert outcomes.count("completed") == 1
    assert outcomes.count("duplicate") == 4
    assert await completed_count(db_session, "G2-B-1") == 1


@pytest.mark.asyncio
async def test_concurrent_completions_single_redemption(tmp_path):
    """Completions racing on separate connections still leave one completed booking."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as setup:
        orders = []
        for _ in range(5):
            booking = await booking_store.create_booking(
                setup,
                invite_code="G2-B-1",
                customer_name="Meera Iyer",
                customer_email="meera@example.com",
                customer_phone="9876543210",
                ticket_type="ultimate",
                ticket_count=1,
                total_amount=Decimal("1737.06"),
                event_name="Slanup's BYOB Diwali Party 2025",
                event_date=utcnow(),
                reference_prefix="DIW",
                pending_ttl_minutes=15,
            )
            orders.append(booking.order_id)

    async def attempt(order_id):
        async with session_factory() as session:
            try:
                await booking_store.update_payment_status(session, order_id, COMPLETED)
                return "completed"
            except DuplicateRedemption:
                return "duplicate"

    try:
        outcomes = await asyncio.gather(*(attempt(order_id) for order_id in orders))

        assert sorted(outcomes) == ["completed"] + ["duplicate"] * 4
        async with session_factory() as check:
            assert await completed_count(check, "G2-B-1") == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_create_rejects_redeemed_code(db_session, completed_booking, make_booking):
    await completed_booking("G1-A-1")
    with pytest.raises(DuplicateRedemption):
        await make_booking("G1-A-1")


@pytest.mark.asyncio
async def test_pending_and_failed_do_not_block_new_attempts(db_session, make_booking):
    await make_booking("G1-A-1")
    await make_booking("G1-A-1", status=FAILED)
    retry = await make_booking("G1-A-1")
    assert retry.payment_status == PENDING


@pytest.mark.asyncio
async def test_get_by_reference_accepts_scanned_code(db_session, completed_booking):
    booking = await completed_booking()
    found = await booking_store.get_by_reference(
        db_session, f"SLANUP-DIWALI-{booking.reference_number.lower()}-Asha", ["SLANUP-DIWALI-"]
    )
    assert found.id == booking.id

    with pytest.raises(NotFound):
        await booking_store.get_by_reference(db_session, "DIW000000ZZZZ")


@pytest.mark.asyncio
async def test_mark_email_sent_requires_completed(db_session, make_booking, completed_booking):
    pending = await make_booking("G1-A-1")
    assert await booking_store.mark_email_sent(db_session, pending.id) is False

    done = await completed_booking("G1-A-2")
    assert await booking_store.mark_email_sent(db_session, done.id) is True


@pytest.mark.asyncio
async def test_check_in_once(db_session, completed_booking):
    booking = await completed_booking()
    checked = await booking_store.mark_checked_in(db_session, booking.id, booking.reference_number)
    assert checked.checked_in is True
    stamped = checked.checked_in_at
    assert stamped is not None

    with pytest.raises(AlreadyCheckedIn):
        await booking_store.mark_checked_in(db_session, booking.id, booking.reference_number)
    assert (await booking_store.get_by_id(db_session, booking.id)).checked_in_at == stamped


@pytest.mark.asyncio
async def test_check_in_requires_matching_reference(db_session, completed_booking):
    booking = await completed_booking()
    with pytest.raises(NotEligible):
        await booking_store.mark_checked_in(db_session, booking.id, "DIW000000ZZZZ")


@pytest.mark.asyncio
async def test_check_in_requires_completed(db_session, make_booking):
    booking = await make_booking()
    with pytest.raises(NotEligible):
        await booking_store.mark_checked_in(db_session, booking.id, booking.reference_number)


@pytest.mark.asyncio
async def test_is_expired(db_session, make_booking):
    booking = await make_booking()
    assert booking_store.is_expired(booking) is False
    assert booking_store.is_expired(booking, now=utcnow() + timedelta(hours=1)) is True

    booking.payment_status = COMPLETED
    assert booking_store.is_expired(booking, now=utcnow() + timedelta(hours=1)) is False
