"""
Payment reconciliation endpoints: gateway webhook and client-triggered poll.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.api.deps import collaborators
from ticketing.db.session import get_db
from ticketing.schemas.payment import PaymentStatusResponse, PaymentVerifyRequest, WebhookAck
from ticketing.services.collaborators import Collaborators

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    x_webhook_signature: Optional[str] = Header(default=None),
    x_webhook_timestamp: str = Header(default=""),
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """
    Gateway webhook. The signature covers the raw body, so the body is read
    as bytes and only parsed after verification. Replayed deliveries are
    acknowledged with outcome "duplicate" and change nothing.
    """
    raw_body = await request.body()
    return await deps.reconciler.handle_webhook(
        db, raw_body, x_webhook_signature, x_webhook_timestamp
    )


@router.post("/verify", response_model=PaymentStatusResponse)
async def verify_payment(
    body: PaymentVerifyRequest,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """Ask the gateway for the order's status and apply it. Safe to repeat."""
    return await deps.reconciler.poll(db, body.order_id)
