"""
Ticket email notifier backed by the Resend HTTP API.

Only the delivery contract lives here: template content is a plain-text
summary of the booking. send() reports failure by returning False.
"""

from typing import Optional

import httpx

from ticketing.core.config import Settings
from ticketing.core.logging import get_logger
from ticketing.infrastructure.http import build_client
from ticketing.models.booking import Booking
from ticketing.services.interfaces.notifier import Notifier

logger = get_logger(__name__)

RESEND_BASE_URL = "https://api.resend.com"


def render_ticket_text(booking: Booking) -> str:
    return "\n".join(
        [
            f"Hi {booking.customer_name},",
            "",
            f"Your booking for {booking.event_name} is confirmed.",
            f"Reference number: {booking.reference_number}",
            f"Tickets: {booking.ticket_count} x {booking.ticket_type}",
            f"Amount paid: INR {booking.total_amount}",
            "",
            "Show this reference number (or the QR code) at the door.",
        ]
    )


class ResendNotifier(Notifier):
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.sender = settings.RESEND_FROM
        self.reply_to = settings.RESEND_REPLY_TO
        self.client = build_client(
            settings,
            base_url=RESEND_BASE_URL,
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            transport=transport,
        )

    async def send(self, booking: Booking) -> bool:
        body = {
            "from": self.sender,
            "to": [booking.customer_email],
            "subject": f"Your {booking.event_name} Ticket - {booking.reference_number}",
            "text": render_ticket_text(booking),
            "headers": {"X-Entity-Ref-ID": booking.reference_number},
            "tags": [{"name": "category", "value": "ticket-confirmation"}],
        }
        if self.reply_to:
            body["reply_to"] = self.reply_to

        try:
            response = await self.client.post("/emails", json=body)
        except httpx.HTTPError as e:
            logger.error("email_provider_unreachable", booking_id=booking.id, error=repr(e))
            return False

        if response.is_error:
            logger.error(
                "email_provider_rejected",
                booking_id=booking.id,
                status_code=response.status_code,
                body=response.text[:500],
            )
            return False
        return True

    async def aclose(self) -> None:
        await self.client.aclose()
