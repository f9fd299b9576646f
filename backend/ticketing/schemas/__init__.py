from ticketing.schemas.booking import (
    BookingCreate, BookingResponse, BookingCreatedResponse, BookingSummary, BookingStatusResponse,
)
from ticketing.schemas.invite import InviteCheckRequest, InviteStatusResponse
from ticketing.schemas.payment import (
    WebhookPayload, WebhookAck, PaymentVerifyRequest, PaymentStatusResponse,
)
from ticketing.schemas.checkin import (
    CheckinVerifyRequest, CheckinVerifyResponse, CheckinApproveRequest, CheckinApproveResponse,
)

__all__ = [
    "BookingCreate", "BookingResponse", "BookingCreatedResponse", "BookingSummary",
    "BookingStatusResponse",
    "InviteCheckRequest", "InviteStatusResponse",
    "WebhookPayload", "WebhookAck", "PaymentVerifyRequest", "PaymentStatusResponse",
    "CheckinVerifyRequest", "CheckinVerifyResponse", "CheckinApproveRequest", "CheckinApproveResponse",
]
