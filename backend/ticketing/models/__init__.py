from ticketing.models.booking import Booking
from ticketing.models.webhook_event import WebhookEvent

__all__ = ["Booking", "WebhookEvent"]
