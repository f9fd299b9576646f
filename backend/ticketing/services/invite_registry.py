"""
Invite registry: is a submitted code issued, and has it been redeemed?

Issued codes come from the external roster (cached in Redis). Redemption
comes from the bookings table: a code is redeemed once any booking for it
reaches completed. Pending and failed attempts never redeem a code.
"""

import re
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.errors import InvalidCode
from ticketing.core.logging import get_logger, mask_email, mask_phone
from ticketing.models.booking import Booking
from ticketing.schemas.booking import BookingSummary
from ticketing.schemas.invite import InviteStatusResponse
from ticketing.services import booking_store
from ticketing.services.cache_service import get_cached_roster, set_cached_roster
from ticketing.services.interfaces.roster import RosterEntry, RosterSource

logger = get_logger(__name__)

MAX_CODE_LENGTH = 50
_CODE_PATTERN = re.compile(r"^[A-Z0-9-]+$")


def normalize_invite_code(code: Optional[str]) -> str:
    """Trim and upper-case; reject empty, overlong or malformed input before any I/O."""
    normalized = (code or "").strip().upper()
    if not normalized:
        raise InvalidCode("Invite code is required")
    if len(normalized) > MAX_CODE_LENGTH:
        raise InvalidCode("Invite code too long")
    if not _CODE_PATTERN.match(normalized):
        raise InvalidCode("Invite code must contain only letters, numbers, and hyphens")
    return normalized


def summarize(booking: Booking) -> BookingSummary:
    """Masked booking view for 'already booked' screens."""
    first, _, rest = booking.customer_name.partition(" ")
    return BookingSummary(
        reference_number=booking.reference_number,
        customer_name=f"{first} {rest[:1]}.".strip() if rest else first,
        customer_email=mask_email(booking.customer_email),
        customer_phone=mask_phone(booking.customer_phone),
        ticket_type=booking.ticket_type,
        ticket_count=booking.ticket_count,
        event_name=booking.event_name,
        payment_status=booking.payment_status,
    )


class InviteRegistry:
    def __init__(self, roster: RosterSource, use_cache: bool = True, cache_ttl: Optional[int] = None):
        self.roster = roster
        self.use_cache = use_cache
        self.cache_ttl = cache_ttl

    async def _entries(self) -> dict[str, RosterEntry]:
        if self.use_cache:
            cached = await get_cached_roster()
            if cached is not None:
                return {row["code"]: RosterEntry(**row) for row in cached}

        entries = await self.roster.list_entries()
        logger.info("roster_loaded", codes=len(entries))
        if self.use_cache:
            await set_cached_roster([e.model_dump() for e in entries], self.cache_ttl)
        return {entry.code: entry for entry in entries}

    async def details(self, code: str) -> Optional[RosterEntry]:
        normalized = normalize_invite_code(code)
        return (await self._entries()).get(normalized)

    async def status(self, db: AsyncSession, code: str) -> InviteStatusResponse:
        normalized = normalize_invite_code(code)
        entry = (await self._entries()).get(normalized)
        if entry is None:
            logger.info("invite_code_unknown", invite_code=normalized)
            return InviteStatusResponse(code=normalized, exists=False, redeemed=False)

        completed = await booking_store.find_completed_for_code(db, normalized)
        if completed is not None:
            return InviteStatusResponse(
                code=normalized,
                exists=True,
                redeemed=True,
                booking=summarize(completed),
                group=entry.group or None,
            )

        held_until = None
        pending = await booking_store.latest_pending_for_code(db, normalized)
        if pending is not None and not booking_store.is_expired(pending):
            held_until = pending.expires_at

        return InviteStatusResponse(
            code=normalized,
            exists=True,
            redeemed=False,
            held_until=held_until,
            group=entry.group or None,
        )

    async def require_valid(self, db: AsyncSession, code: str) -> InviteStatusResponse:
        """Status for booking creation: unknown codes raise InvalidCode."""
        status = await self.status(db, code)
        if not status.exists:
            raise InvalidCode("Invalid invite code", invite_code=status.code)
        return status
