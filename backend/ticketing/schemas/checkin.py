"""
Pydantic schemas for door check-in.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ticketing.schemas.booking import BookingResponse


class CheckinVerifyRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=512)


class CheckinVerifyResponse(BaseModel):
    booking: BookingResponse
    checked_in: bool


class CheckinApproveRequest(BaseModel):
    booking_id: str = Field(..., min_length=1, max_length=64)
    reference_number: str = Field(..., min_length=1, max_length=64)


class CheckinApproveResponse(BaseModel):
    success: bool = True
    message: str = "Guest checked in successfully"
    checked_in_at: datetime
