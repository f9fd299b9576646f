"""
Payment reconciliation: turn gateway webhooks and polls into booking transitions.

Webhook path
  1. Verify the HMAC signature over the raw body. Mismatch: InvalidSignature,
     nothing is read or written.
  2. Ledger check. A delivery we already processed is acknowledged as a
     duplicate without re-applying anything (no second ticket email).
  3. Map the claimed status: PAID/SUCCESS -> completed, terminal failure
     codes -> failed, anything else is acknowledged and ignored.
  4. Conditional status update (see booking_store).
  5. Record the delivery in the ledger. This happens after the transition:
     a crash between 4 and 5 means the gateway retries and step 4 absorbs
     the replay as a no-op, instead of a confirmation being silently lost.
  6. Fan-out (ticket email + mirror row) only for the call that actually
     moved the booking into completed.

Poll path
  Ask the gateway for the order. PAID drives the same completed transition,
  ACTIVE is reported as pending with no write, anything else drives failed.
  Polls are not delivery events, so the ledger is not involved.

Fan-out is best-effort: it runs after the transition is committed, each call
is bounded by a timeout, and failures are logged and counted, never raised.
"""

import asyncio
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.config import Settings
from ticketing.core.errors import InvalidInput, InvalidSignature, NotEligible
from ticketing.core.logging import get_logger
from ticketing.core.metrics import (
    ledger_errors,
    record_fanout_failure,
    record_transition,
    record_webhook,
)
from ticketing.core.security import verify_signature
from ticketing.models.booking import Booking, COMPLETED, FAILED, PENDING
from ticketing.schemas.payment import PaymentStatusResponse, WebhookAck, WebhookPayload
from ticketing.services import booking_store, webhook_ledger
from ticketing.services.booking_store import TransitionResult
from ticketing.services.interfaces.gateway import ACTIVE, PAID, PaymentGateway
from ticketing.services.interfaces.mirror import Mirror
from ticketing.services.interfaces.notifier import Notifier

logger = get_logger(__name__)

SUCCESS_STATUSES = frozenset({"PAID", "SUCCESS"})
FAILURE_STATUSES = frozenset(
    {"FAILED", "FAILURE", "CANCELLED", "USER_DROPPED", "EXPIRED", "TERMINATED", "VOID"}
)


def map_claimed_status(claimed: str) -> Optional[str]:
    """Gateway status -> internal terminal status, or None for non-terminal events."""
    normalized = (claimed or "").strip().upper()
    if normalized in SUCCESS_STATUSES:
        return COMPLETED
    if normalized in FAILURE_STATUSES:
        return FAILED
    return None


class PaymentReconciler:
    def __init__(
        self,
        gateway: PaymentGateway,
        notifier: Notifier,
        mirror: Mirror,
        settings: Settings,
    ):
        self.gateway = gateway
        self.notifier = notifier
        self.mirror = mirror
        self.webhook_secret = settings.WEBHOOK_SECRET
        self.fanout_timeout = settings.HTTP_TIMEOUT_SECONDS

    async def handle_webhook(
        self,
        db: AsyncSession,
        raw_body: bytes,
        signature: Optional[str],
        timestamp: str = "",
    ) -> WebhookAck:
        if not verify_signature(self.webhook_secret, raw_body, signature, timestamp):
            record_webhook("invalid_signature")
            logger.warning("webhook_invalid_signature")
            raise InvalidSignature("Invalid webhook signature")

        try:
            payload = WebhookPayload.model_validate_json(raw_body)
        except ValidationError as e:
            raise InvalidInput("Malformed webhook payload", errors=e.errors())

        event_id = payload.event_id
        order_id = payload.data.order_id
        log = logger.bind(event_id=event_id, order_id=order_id, event_type=payload.event_type)

        if await webhook_ledger.is_processed(db, event_id):
            record_webhook("duplicate")
            log.info("webhook_duplicate")
            return WebhookAck(outcome="duplicate")

        status = map_claimed_status(payload.data.status)
        if status is None:
            record_webhook("ignored")
            log.info("webhook_ignored", claimed_status=payload.data.status)
            await self._record(db, payload, signature, raw_body)
            return WebhookAck(outcome="ignored")

        result = await self._transition(
            db,
            order_id,
            status,
            source="webhook",
            payment_id=payload.data.payment_id,
            gateway_order_ref=payload.data.gateway_order_ref,
        )
        await self._record(db, payload, signature, raw_body)
        record_webhook("processed")

        if result.changed and status == COMPLETED:
            await self.fan_out_completion(db, result.booking)

        return WebhookAck(outcome="processed", payment_status=result.booking.payment_status)

    async def poll(self, db: AsyncSession, order_id: str) -> PaymentStatusResponse:
        booking = await booking_store.get_by_order_id(db, order_id)
        order = await self.gateway.get_order(order_id)
        log = logger.bind(order_id=order_id, gateway_status=order.status)

        if order.status == PAID:
            result = await self._transition(
                db,
                order_id,
                COMPLETED,
                source="poll",
                payment_id=order.gateway_payment_ref,
                gateway_order_ref=order.gateway_order_ref,
            )
            if result.changed:
                await self.fan_out_completion(db, result.booking)
            return PaymentStatusResponse(
                order_id=order_id,
                status=COMPLETED,
                message="Payment verified and booking updated",
            )

        if order.status == ACTIVE:
            log.info("payment_still_pending")
            if booking.payment_status != PENDING:
                message = f"Gateway order still active; booking is {booking.payment_status}"
                return PaymentStatusResponse(
                    order_id=order_id, status=booking.payment_status, message=message
                )
            message = "Payment still pending"
            if booking_store.is_expired(booking):
                message = "Payment still pending; booking hold has expired"
            return PaymentStatusResponse(order_id=order_id, status=PENDING, message=message)

        await self._transition(
            db,
            order_id,
            FAILED,
            source="poll",
            gateway_order_ref=order.gateway_order_ref,
        )
        return PaymentStatusResponse(order_id=order_id, status=FAILED, message="Payment failed")

    async def _transition(
        self,
        db: AsyncSession,
        order_id: str,
        status: str,
        source: str,
        payment_id: Optional[str] = None,
        gateway_order_ref: Optional[str] = None,
    ) -> TransitionResult:
        try:
            result = await booking_store.update_payment_status(
                db, order_id, status, payment_id=payment_id, gateway_order_ref=gateway_order_ref
            )
        except Exception:
            record_transition(status, source, "rejected")
            raise
        record_transition(status, source, "applied" if result.changed else "noop")
        return result

    async def _record(
        self,
        db: AsyncSession,
        payload: WebhookPayload,
        signature: Optional[str],
        raw_body: bytes,
    ) -> None:
        try:
            await webhook_ledger.mark_processed(
                db,
                payload.event_id,
                payload.event_type,
                payload.data.order_id,
                signature,
                raw_body,
            )
        except SQLAlchemyError as e:
            # The transition is committed; a replay will be absorbed as a no-op
            ledger_errors.labels(operation="record").inc()
            logger.error("webhook_record_failed", event_id=payload.event_id, error=str(e))
            await db.rollback()

    async def fan_out_completion(self, db: AsyncSession, booking: Booking) -> None:
        """Ticket email + mirror row after a booking first becomes completed."""
        if not booking.email_sent:
            await self.send_ticket(db, booking)
        await self.push_mirror(booking)

    async def send_ticket(self, db: AsyncSession, booking: Booking) -> bool:
        try:
            sent = await asyncio.wait_for(self.notifier.send(booking), timeout=self.fanout_timeout)
        except Exception as e:
            record_fanout_failure("notifier")
            logger.error("notifier_failed", booking_id=booking.id, error=repr(e))
            return False

        if not sent:
            record_fanout_failure("notifier")
            logger.warning("notifier_unsuccessful", booking_id=booking.id)
            return False

        try:
            await booking_store.mark_email_sent(db, booking.id)
            booking.email_sent = True
        except SQLAlchemyError as e:
            logger.error("email_flag_update_failed", booking_id=booking.id, error=str(e))
            await db.rollback()
        logger.info("ticket_email_sent", booking_id=booking.id, customer_email=booking.customer_email)
        return True

    async def push_mirror(self, booking: Booking) -> bool:
        try:
            ok = await asyncio.wait_for(
                self.mirror.upsert_booking_row(booking), timeout=self.fanout_timeout
            )
        except Exception as e:
            record_fanout_failure("mirror")
            logger.error("mirror_update_failed", booking_id=booking.id, error=repr(e))
            return False
        if not ok:
            record_fanout_failure("mirror")
            logger.warning("mirror_update_unsuccessful", booking_id=booking.id)
        return ok

    async def resend_ticket(self, db: AsyncSession, booking_id: str) -> bool:
        """Admin retry of the ticket email, bypassing the email_sent guard."""
        booking = await booking_store.get_by_id(db, booking_id)
        if booking.payment_status != COMPLETED:
            raise NotEligible("Tickets are only sent for completed payments", booking_id=booking_id)
        return await self.send_ticket(db, booking)

    async def resync_mirror(self, db: AsyncSession, booking_id: str) -> bool:
        booking = await booking_store.get_by_id(db, booking_id)
        return await self.push_mirror(booking)
