"""
Pydantic schemas for gateway webhooks and payment verification.
"""

from typing import Optional

from pydantic import BaseModel, Field


class WebhookData(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=255)
    status: str = Field(..., min_length=1, max_length=50)
    payment_id: Optional[str] = None
    gateway_order_ref: Optional[str] = None
    amount: Optional[str] = None


class WebhookPayload(BaseModel):
    event_id: str = Field(..., min_length=1, max_length=255)
    event_type: str = Field(..., min_length=1, max_length=100)
    data: WebhookData


class WebhookAck(BaseModel):
    success: bool = True
    outcome: str  # processed, duplicate, ignored
    payment_status: Optional[str] = None


class PaymentVerifyRequest(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=255)


class PaymentStatusResponse(BaseModel):
    success: bool = True
    order_id: str
    status: str
    message: str
