"""
Booking creation: validate the invite, price the tickets, open a gateway order.

Order of operations:
  1. Invite pre-check (roster + redemption). Fast rejection for the common
     "already booked" case; the partial unique index stays authoritative.
  2. Price from the event catalog, plus gateway charges.
  3. Insert the pending booking and commit it.
  4. Create the gateway order keyed by the booking id.

If step 4 fails the pending booking is left behind. It never redeems the
code, it expires after PENDING_BOOKING_TTL_MINUTES, and the guest can retry
with a fresh attempt.
"""

from typing import NamedTuple, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.config import Settings
from ticketing.core.errors import DuplicateRedemption, InvalidInput, UpstreamUnavailable
from ticketing.core.logging import get_logger
from ticketing.core.metrics import bookings_created
from ticketing.models.booking import Booking
from ticketing.schemas.booking import BookingCreate
from ticketing.services import booking_store
from ticketing.services.event_catalog import calculate_total, get_event_config
from ticketing.services.interfaces.gateway import CustomerDetails, PaymentGateway
from ticketing.services.invite_registry import InviteRegistry

logger = get_logger(__name__)


class StartedBooking(NamedTuple):
    booking: Booking
    payment_session_id: Optional[str]


async def start_booking(
    db: AsyncSession,
    data: BookingCreate,
    registry: InviteRegistry,
    gateway: PaymentGateway,
    settings: Settings,
) -> StartedBooking:
    event = get_event_config(data.event or settings.DEFAULT_EVENT)
    if event is None:
        raise InvalidInput(f"Unknown event '{data.event}'")

    invite = await registry.require_valid(db, data.invite_code)
    if invite.redeemed:
        logger.info("booking_rejected_redeemed", invite_code=invite.code)
        raise DuplicateRedemption("Invite code already used", invite_code=invite.code)

    ticket_type = event.ticket_type(data.ticket_type)
    if ticket_type is None or not ticket_type.available:
        raise InvalidInput(f"Invalid ticket type '{data.ticket_type}'")
    if data.ticket_count > ticket_type.max_quantity:
        raise InvalidInput(f"Maximum {ticket_type.max_quantity} tickets allowed for this type")

    total_amount = calculate_total(ticket_type, data.ticket_count, settings.GATEWAY_FEE_PERCENT)

    booking = await booking_store.create_booking(
        db,
        invite_code=invite.code,
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        customer_phone=data.customer_phone,
        ticket_type=ticket_type.id,
        ticket_count=data.ticket_count,
        total_amount=total_amount,
        event_name=event.name,
        event_date=event.date,
        reference_prefix=event.reference_prefix,
        pending_ttl_minutes=settings.PENDING_BOOKING_TTL_MINUTES,
    )
    bookings_created.labels(event=event.id).inc()

    try:
        order = await gateway.create_order(
            booking.order_id,
            total_amount,
            CustomerDetails(
                customer_id=booking.id,
                name=booking.customer_name,
                email=booking.customer_email,
                phone=booking.customer_phone,
            ),
        )
    except UpstreamUnavailable:
        logger.error("gateway_order_failed", booking_id=booking.id, order_id=booking.order_id)
        raise

    if order.gateway_order_ref:
        booking.gateway_order_ref = order.gateway_order_ref
        await db.commit()

    logger.info(
        "booking_started",
        booking_id=booking.id,
        order_id=booking.order_id,
        event_id=event.id,
        ticket_count=data.ticket_count,
    )
    return StartedBooking(booking, order.payment_session_id)
