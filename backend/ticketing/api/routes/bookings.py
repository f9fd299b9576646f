"""
Booking endpoints: start a paid booking for an invite code, read it back.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.api.deps import collaborators
from ticketing.db.session import get_db
from ticketing.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingResponse,
    BookingStatusResponse,
)
from ticketing.services import booking_store
from ticketing.services.booking_service import start_booking
from ticketing.services.collaborators import Collaborators

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """
    Create a pending booking and open a gateway order for it.

    The invite code is only redeemed once payment completes; until then the
    booking is a hold that expires after PENDING_BOOKING_TTL_MINUTES.
    Returns 409 if the code already has a completed booking.
    """
    started = await start_booking(db, booking_data, deps.registry, deps.gateway, deps.settings)
    return BookingCreatedResponse(
        booking=BookingResponse.model_validate(started.booking),
        payment_session_id=started.payment_session_id,
    )


@router.get("/reference/{reference_number}", response_model=BookingStatusResponse)
async def booking_status(reference_number: str, db: AsyncSession = Depends(get_db)):
    """Status read for the payment result page. Pending holds past expires_at report expired."""
    booking = await booking_store.get_by_reference(db, reference_number)
    return BookingStatusResponse(
        reference_number=booking.reference_number,
        payment_status=booking.payment_status,
        expired=booking_store.is_expired(booking),
        checked_in=booking.checked_in,
        event_name=booking.event_name,
        updated_at=booking.updated_at,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    return await booking_store.get_by_id(db, booking_id)
