"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class BookingCreate(BaseModel):
    invite_code: str
    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_email: EmailStr
    customer_phone: str
    ticket_type: str = Field(..., min_length=1, max_length=50)
    ticket_count: int = Field(default=1, ge=1, le=10)
    event: Optional[str] = Field(default=None, max_length=50)

    @field_validator("customer_name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if len(v) < 2 or not all(ch.isalpha() or ch in " .'-" for ch in v):
            raise ValueError("Name contains invalid characters")
        return v

    @field_validator("customer_email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("customer_phone")
    @classmethod
    def indian_mobile(cls, v: str) -> str:
        digits = v.strip().replace(" ", "")
        if digits.startswith("+91"):
            digits = digits[3:]
        if len(digits) != 10 or not digits.isdigit() or digits[0] not in "6789":
            raise ValueError("Phone must be 10 digits starting with 6-9")
        return digits

    @field_validator("ticket_type")
    @classmethod
    def lower_ticket_type(cls, v: str) -> str:
        return v.strip().lower()


class BookingResponse(BaseModel):
    id: str
    invite_code: str
    reference_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    ticket_type: str
    ticket_count: int
    total_amount: Decimal
    event_name: str
    event_date: datetime
    payment_status: str
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    email_sent: bool
    checked_in: bool
    checked_in_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingCreatedResponse(BaseModel):
    success: bool = True
    booking: BookingResponse
    payment_session_id: Optional[str] = None


class BookingSummary(BaseModel):
    """Masked view of a booking, safe to show to whoever holds the invite code."""

    reference_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    ticket_type: str
    ticket_count: int
    event_name: str
    payment_status: str


class BookingStatusResponse(BaseModel):
    found: bool = True
    reference_number: str
    payment_status: str
    expired: bool = False
    checked_in: bool
    event_name: str
    updated_at: datetime
