"""
Door check-in endpoints used by the scanner page.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.api.deps import collaborators
from ticketing.db.session import get_db
from ticketing.schemas.booking import BookingResponse
from ticketing.schemas.checkin import (
    CheckinApproveRequest,
    CheckinApproveResponse,
    CheckinVerifyRequest,
    CheckinVerifyResponse,
)
from ticketing.services.collaborators import Collaborators

router = APIRouter(prefix="/checkin", tags=["Check-in"])


@router.post("/verify", response_model=CheckinVerifyResponse)
async def verify_code(
    body: CheckinVerifyRequest,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """Resolve a scanned QR payload or typed reference to a paid booking."""
    booking = await deps.checkin.lookup(db, body.code)
    return CheckinVerifyResponse(
        booking=BookingResponse.model_validate(booking),
        checked_in=booking.checked_in,
    )


@router.post("/approve", response_model=CheckinApproveResponse)
async def approve_checkin(
    body: CheckinApproveRequest,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """Check the guest in. A second approval for the same booking returns 409."""
    booking = await deps.checkin.approve(db, body.booking_id, body.reference_number)
    return CheckinApproveResponse(checked_in_at=booking.checked_in_at)
