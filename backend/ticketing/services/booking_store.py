"""
Booking persistence with concurrency-safe status transitions.

CONCURRENCY STRATEGY: Conditional UPDATE + partial unique index
===============================================================

Problem:
  Two payment attempts for the same invite code both reach the gateway and
  both get paid, or one payment confirmation is delivered twice (webhook
  retry, webhook racing a manual poll). Read-then-write in the application
  would let both requests see "pending" and both "complete" the booking.

Solution:
  1. Every transition is a single UPDATE guarded by the expected current state:
       UPDATE bookings SET payment_status = :new
       WHERE order_id = :order_id AND payment_status = 'pending'
     rowcount == 1 means *this* call performed the transition; it alone
     fires side effects (ticket email, mirror update).
  2. rowcount == 0 means somebody else got there first, or the booking is
     already terminal. We re-read: same status is an idempotent no-op,
     the other terminal status is an InvalidTransition.
  3. The partial unique index uq_bookings_invite_code_completed makes the
     database reject a second completed row for one invite code. That
     IntegrityError becomes DuplicateRedemption. The invite pre-check done
     at creation time is only an optimization.

  Check-in uses the same shape: UPDATE ... WHERE checked_in = false, so two
  scans of the same ticket cannot both stamp checked_in_at.

Transitions are committed before returning so that callers can run
best-effort side effects knowing the primary state is durable.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, NamedTuple, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.errors import (
    AlreadyCheckedIn,
    DuplicateRedemption,
    InvalidInput,
    InvalidTransition,
    NotEligible,
    NotFound,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import duplicate_redemptions
from ticketing.db.base import utcnow
from ticketing.models.booking import Booking, COMPLETED, FAILED, PENDING
from ticketing.services.reference import (
    generate_order_id,
    generate_reference_number,
    normalize,
    reference_candidates,
)

logger = get_logger(__name__)

MAX_REFERENCE_ATTEMPTS = 5
TERMINAL_STATUSES = (COMPLETED, FAILED)


class TransitionResult(NamedTuple):
    booking: Booking
    changed: bool  # True only for the call that moved the booking out of pending


async def _load_one(db: AsyncSession, *criteria) -> Optional[Booking]:
    # populate_existing: conditional UPDATEs bypass the identity map
    result = await db.execute(
        select(Booking)
        .where(*criteria)
        .order_by(Booking.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_by_id(db: AsyncSession, booking_id: str) -> Booking:
    booking = await _load_one(db, Booking.id == booking_id)
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


async def get_by_order_id(db: AsyncSession, order_id: str) -> Booking:
    booking = await _load_one(db, Booking.order_id == order_id)
    if booking is None:
        raise NotFound(f"No booking for order {order_id}")
    return booking


async def get_by_reference(
    db: AsyncSession,
    code: str,
    prefix_tokens: Iterable[str] = (),
) -> Booking:
    """
    Case-insensitive lookup by reference number.
    Accepts a bare reference or a longer scanned code; candidates are tried
    in order (parsed reference, then the raw normalized input).
    """
    for candidate in reference_candidates(code, prefix_tokens):
        booking = await _load_one(db, func.upper(Booking.reference_number) == candidate)
        if booking is not None:
            return booking
    raise NotFound("No booking found for that reference number")


async def find_completed_for_code(db: AsyncSession, invite_code: str) -> Optional[Booking]:
    return await _load_one(
        db,
        Booking.invite_code == normalize(invite_code),
        Booking.payment_status == COMPLETED,
    )


async def latest_pending_for_code(db: AsyncSession, invite_code: str) -> Optional[Booking]:
    return await _load_one(
        db,
        Booking.invite_code == normalize(invite_code),
        Booking.payment_status == PENDING,
    )


async def _reference_taken(db: AsyncSession, reference_number: str) -> bool:
    result = await db.execute(
        select(Booking.id).where(Booking.reference_number == reference_number).limit(1)
    )
    return result.first() is not None


async def create_booking(
    db: AsyncSession,
    *,
    invite_code: str,
    customer_name: str,
    customer_email: str,
    customer_phone: str,
    ticket_type: str,
    ticket_count: int,
    total_amount: Decimal,
    event_name: str,
    event_date: datetime,
    reference_prefix: str,
    pending_ttl_minutes: int,
    payment_method: str = "cashfree",
) -> Booking:
    """
    Insert a pending booking. The order id is the booking id.
    Raises DuplicateRedemption if the code already has a completed booking.
    """
    code = normalize(invite_code)
    existing = await find_completed_for_code(db, code)
    if existing is not None:
        raise DuplicateRedemption(
            "Invite code already used", invite_code=code, booking_id=existing.id
        )

    for attempt in range(1, MAX_REFERENCE_ATTEMPTS + 1):
        reference_number = generate_reference_number(reference_prefix)
        if await _reference_taken(db, reference_number):
            logger.info("reference_collision", attempt=attempt, source="precheck")
            continue

        booking_id = generate_order_id()
        now = utcnow()
        booking = Booking(
            id=booking_id,
            invite_code=code,
            reference_number=reference_number,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            ticket_type=ticket_type,
            ticket_count=ticket_count,
            total_amount=total_amount,
            event_name=event_name,
            event_date=event_date,
            payment_status=PENDING,
            payment_method=payment_method,
            order_id=booking_id,
            email_sent=False,
            checked_in=False,
            expires_at=now + timedelta(minutes=pending_ttl_minutes),
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race for the reference number
            await db.rollback()
            logger.info("reference_collision", attempt=attempt, source="insert")
            continue

        logger.info(
            "booking_created",
            booking_id=booking.id,
            invite_code=code,
            reference_number=reference_number,
            amount=str(total_amount),
            attempt=attempt,
        )
        return booking

    raise InvalidInput("Could not allocate a unique reference number, please retry")


async def update_payment_status(
    db: AsyncSession,
    order_id: str,
    status: str,
    payment_id: Optional[str] = None,
    gateway_order_ref: Optional[str] = None,
) -> TransitionResult:
    """
    Move a booking from pending to completed or failed.

    - pending -> completed|failed: applied, committed, changed=True
    - completed -> completed, failed -> failed: no-op, changed=False
    - completed <-> failed: InvalidTransition
    - second completed booking for an invite code: DuplicateRedemption
    """
    if status not in TERMINAL_STATUSES:
        raise InvalidInput(f"Cannot transition a booking to '{status}'")

    values = {"payment_status": status, "updated_at": utcnow()}
    if payment_id:
        values["payment_id"] = payment_id
    if gateway_order_ref:
        values["gateway_order_ref"] = gateway_order_ref

    try:
        result = await db.execute(
            update(Booking)
            .where(Booking.order_id == order_id, Booking.payment_status == PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
    except IntegrityError:
        await db.rollback()
        duplicate_redemptions.inc()
        logger.warning("duplicate_redemption_rejected", order_id=order_id)
        raise DuplicateRedemption(
            "Invite code already has a completed booking", order_id=order_id
        )

    if result.rowcount:
        await db.commit()
        booking = await get_by_order_id(db, order_id)
        logger.info(
            "payment_status_updated",
            booking_id=booking.id,
            order_id=order_id,
            status=status,
            invite_code=booking.invite_code,
        )
        return TransitionResult(booking, True)

    booking = await _load_one(db, Booking.order_id == order_id)
    if booking is None:
        raise NotFound(f"No booking for order {order_id}")

    if booking.payment_status == status:
        logger.info("payment_status_unchanged", order_id=order_id, status=status)
        return TransitionResult(booking, False)

    logger.warning(
        "payment_transition_rejected",
        order_id=order_id,
        current=booking.payment_status,
        requested=status,
    )
    raise InvalidTransition(
        f"Booking is already {booking.payment_status}; cannot mark it {status}",
        order_id=order_id,
    )


async def mark_email_sent(db: AsyncSession, booking_id: str) -> bool:
    """Flag the ticket email as delivered. Only completed bookings can carry the flag."""
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.payment_status == COMPLETED)
        .values(email_sent=True, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return False
    await db.commit()
    logger.info("email_marked_sent", booking_id=booking_id)
    return True


async def mark_checked_in(db: AsyncSession, booking_id: str, reference_number: str) -> Booking:
    """
    One-way not-checked-in -> checked-in transition.
    Raises NotEligible (missing, reference mismatch, unpaid) or AlreadyCheckedIn.
    """
    reference = normalize(reference_number)
    now = utcnow()
    result = await db.execute(
        update(Booking)
        .where(
            Booking.id == booking_id,
            func.upper(Booking.reference_number) == reference,
            Booking.payment_status == COMPLETED,
            Booking.checked_in.is_(False),
        )
        .values(checked_in=True, checked_in_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        await db.commit()
        return await get_by_id(db, booking_id)

    booking = await _load_one(db, Booking.id == booking_id)
    if booking is None or normalize(booking.reference_number) != reference:
        raise NotEligible("Booking not found or invalid", booking_id=booking_id)
    if booking.payment_status != COMPLETED:
        raise NotEligible("Payment not completed for this booking", booking_id=booking_id)
    if booking.checked_in:
        raise AlreadyCheckedIn(
            "Guest already checked in",
            booking_id=booking_id,
            checked_in_at=booking.checked_in_at,
        )
    raise NotEligible("Booking could not be checked in", booking_id=booking_id)


def is_expired(booking: Booking, now: Optional[datetime] = None) -> bool:
    """A pending booking past expires_at no longer holds its invite code."""
    if booking.payment_status != PENDING or booking.expires_at is None:
        return False
    expires_at = booking.expires_at
    now = now or utcnow()
    if expires_at.tzinfo is None:
        now = now.replace(tzinfo=None)
    return expires_at <= now
