"""
Door check-in.

States: not-checked-in -> checked-in (terminal, one-way). The transition
itself is the conditional UPDATE in booking_store.mark_checked_in; this
module adds the scanner lookup, metrics, and the best-effort mirror update.
"""

import asyncio
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.errors import AlreadyCheckedIn, NotEligible
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_checkin, record_fanout_failure
from ticketing.models.booking import Booking, COMPLETED
from ticketing.services import booking_store
from ticketing.services.interfaces.mirror import Mirror

logger = get_logger(__name__)


class CheckinService:
    def __init__(self, mirror: Mirror, prefix_tokens: Iterable[str] = (), mirror_timeout: float = 10.0):
        self.mirror = mirror
        self.prefix_tokens = list(prefix_tokens)
        self.mirror_timeout = mirror_timeout

    async def lookup(self, db: AsyncSession, code: str) -> Booking:
        """
        Resolve a scanned code to a paid booking.
        Raises NotFound when no candidate matches, NotEligible when unpaid.
        """
        booking = await booking_store.get_by_reference(db, code, self.prefix_tokens)
        if booking.payment_status != COMPLETED:
            record_checkin("not_eligible")
            raise NotEligible("Payment not completed for this booking", booking_id=booking.id)
        logger.info(
            "checkin_lookup",
            booking_id=booking.id,
            reference_number=booking.reference_number,
            checked_in=booking.checked_in,
        )
        return booking

    async def approve(self, db: AsyncSession, booking_id: str, reference_number: str) -> Booking:
        try:
            booking = await booking_store.mark_checked_in(db, booking_id, reference_number)
        except AlreadyCheckedIn:
            record_checkin("already_checked_in")
            logger.info("checkin_repeat", booking_id=booking_id)
            raise
        except NotEligible:
            record_checkin("not_eligible")
            logger.info("checkin_not_eligible", booking_id=booking_id)
            raise

        record_checkin("checked_in")
        logger.info(
            "guest_checked_in",
            booking_id=booking.id,
            invite_code=booking.invite_code,
            checked_in_at=booking.checked_in_at.isoformat() if booking.checked_in_at else None,
        )
        await self._mirror_checkin(booking)
        return booking

    async def _mirror_checkin(self, booking: Booking) -> None:
        try:
            ok = await asyncio.wait_for(self.mirror.set_checked_in(booking), timeout=self.mirror_timeout)
        except Exception as e:
            record_fanout_failure("mirror")
            logger.error("mirror_checkin_failed", booking_id=booking.id, error=repr(e))
            return
        if not ok:
            record_fanout_failure("mirror")
            logger.warning("mirror_checkin_unsuccessful", booking_id=booking.id)
