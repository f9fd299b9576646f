"""
Domain error taxonomy.

Every failure a caller can trigger is a TicketingError with a stable `kind`
and a human-readable `detail`. The API layer maps each kind to an HTTP
status (see ticketing.api.exceptions); services never raise HTTPException.
"""

from typing import Any, Optional

from starlette import status


class TicketingError(Exception):
    """Base class for all expected, caller-visible failures."""

    kind: str = "error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"kind": self.kind, "detail": self.detail}
        if self.retryable:
            body["retryable"] = True
        return body


class InvalidInput(TicketingError):
    kind = "invalid_input"


class InvalidCode(TicketingError):
    kind = "invalid_code"


class NotFound(TicketingError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateRedemption(TicketingError):
    kind = "duplicate_redemption"
    status_code = status.HTTP_409_CONFLICT


class InvalidTransition(TicketingError):
    kind = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class NotEligible(TicketingError):
    kind = "not_eligible"
    status_code = status.HTTP_409_CONFLICT


class AlreadyCheckedIn(TicketingError):
    kind = "already_checked_in"
    status_code = status.HTTP_409_CONFLICT


class InvalidSignature(TicketingError):
    kind = "invalid_signature"
    status_code = status.HTTP_401_UNAUTHORIZED


class Unauthorized(TicketingError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class UpstreamUnavailable(TicketingError):
    """A gateway, mirror, notifier or roster call failed or timed out."""

    kind = "upstream_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, detail: str, upstream: Optional[str] = None, **context: Any):
        super().__init__(detail, upstream=upstream, **context)
        self.upstream = upstream
