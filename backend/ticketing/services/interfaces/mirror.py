"""
Mirror interface: a non-authoritative copy of bookings (the event spreadsheet).
"""

from abc import ABC, abstractmethod

from ticketing.models.booking import Booking


class Mirror(ABC):
    """
    Best-effort external mirror.

    Both calls are advisory: they return False on failure and never roll
    back the booking state that triggered them.
    """

    @abstractmethod
    async def upsert_booking_row(self, booking: Booking) -> bool:
        pass

    @abstractmethod
    async def set_checked_in(self, booking: Booking) -> bool:
        """Flag the row for booking.invite_code as checked in."""
        pass


class NullMirror(Mirror):
    """No mirror configured - nothing to keep in sync."""

    async def upsert_booking_row(self, booking: Booking) -> bool:
        return True

    async def set_checked_in(self, booking: Booking) -> bool:
        return True
