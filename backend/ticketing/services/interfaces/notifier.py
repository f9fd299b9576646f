"""
Notifier interface: delivers the ticket to the customer once payment completes.
"""

from abc import ABC, abstractmethod

from ticketing.models.booking import Booking


class Notifier(ABC):
    """
    Side-effecting notifier with a boolean success contract.

    send() must not raise for delivery failures: it returns False, and the
    caller logs and surfaces that. There is no retry contract.
    """

    @abstractmethod
    async def send(self, booking: Booking) -> bool:
        pass


class NullNotifier(Notifier):
    """Used when no email provider is configured. Reports failure so email_sent stays false."""

    async def send(self, booking: Booking) -> bool:
        return False
