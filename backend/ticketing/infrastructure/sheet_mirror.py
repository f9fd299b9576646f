"""
Spreadsheet mirror via an Apps Script web app.

The script upserts the row whose invite code matches and overwrites every
column it is sent, so a check-in update resends the full booking row with
checkedIn set rather than a single field.
"""

from typing import Optional

import httpx

from ticketing.core.config import Settings
from ticketing.core.logging import get_logger
from ticketing.infrastructure.http import build_client
from ticketing.models.booking import Booking
from ticketing.services.interfaces.mirror import Mirror

logger = get_logger(__name__)


def booking_row(booking: Booking, checked_in: Optional[bool] = None) -> dict:
    checked_in = booking.checked_in if checked_in is None else checked_in
    return {
        "inviteCode": booking.invite_code,
        "email": booking.customer_email,
        "phone": booking.customer_phone,
        "booked": "Yes" if booking.payment_status == "completed" else "No",
        "paymentStatus": booking.payment_status,
        "referenceNumber": booking.reference_number,
        "transactionId": booking.id,
        "bookingDate": booking.created_at.isoformat() if booking.created_at else "",
        "checkedIn": "Yes" if checked_in else "No",
    }


class SheetMirror(Mirror):
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = settings.MIRROR_URL
        self.client = build_client(settings, transport=transport)

    async def _post(self, row: dict) -> bool:
        try:
            response = await self.client.post(self.url, json=row)
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("mirror_request_failed", invite_code=row.get("inviteCode"), error=repr(e))
            return False

        if not result.get("success"):
            logger.warning("mirror_rejected", invite_code=row.get("inviteCode"), error=result.get("error"))
            return False
        return True

    async def upsert_booking_row(self, booking: Booking) -> bool:
        return await self._post(booking_row(booking))

    async def set_checked_in(self, booking: Booking) -> bool:
        return await self._post(booking_row(booking, checked_in=True))

    async def aclose(self) -> None:
        await self.client.aclose()
