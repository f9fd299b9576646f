"""
Idempotency ledger for gateway webhook deliveries.

Failure policy: the existence check fails open. If the ledger cannot be read
we treat the delivery as new and let it through: a payment confirmation
must not be lost because the ledger is unavailable, and every downstream
status transition is idempotent, so a rare reprocess is harmless.

Recording is insert-or-ignore (ON CONFLICT DO NOTHING), so concurrent
duplicate deliveries never error and never produce two rows.
"""

import json
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.logging import get_logger
from ticketing.core.metrics import ledger_errors
from ticketing.db.base import utcnow
from ticketing.models.webhook_event import WebhookEvent

logger = get_logger(__name__)


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"insert-or-ignore not supported for dialect {dialect}")


def _serialize(payload: Any) -> str:
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, default=str)


async def is_processed(db: AsyncSession, event_id: str) -> bool:
    try:
        result = await db.execute(
            select(WebhookEvent.id).where(WebhookEvent.id == event_id).limit(1)
        )
        return result.first() is not None
    except SQLAlchemyError as e:
        ledger_errors.labels(operation="check").inc()
        logger.error("webhook_ledger_check_failed", event_id=event_id, error=str(e))
        await db.rollback()
        return False


async def mark_processed(
    db: AsyncSession,
    event_id: str,
    event_type: str,
    order_id: Optional[str],
    signature: Optional[str],
    payload: Any,
) -> bool:
    """
    Record a delivery. Returns True if this call inserted the row, False if
    it was already recorded.
    """
    insert = _insert_for(db)
    stmt = (
        insert(WebhookEvent)
        .values(
            id=event_id,
            event_type=event_type,
            order_id=order_id,
            signature=signature,
            payload=_serialize(payload),
            processed_at=utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["id"])
    )
    result = await db.execute(stmt)
    await db.commit()
    inserted = bool(result.rowcount)
    logger.info("webhook_recorded", event_id=event_id, event_type=event_type, inserted=inserted)
    return inserted


async def prune(db: AsyncSession, older_than_days: int) -> int:
    """Delete ledger rows older than the retention window. Advisory maintenance only."""
    cutoff = utcnow() - timedelta(days=older_than_days)
    result = await db.execute(delete(WebhookEvent).where(WebhookEvent.processed_at < cutoff))
    await db.commit()
    deleted = result.rowcount or 0
    logger.info("webhook_ledger_pruned", deleted=deleted, older_than_days=older_than_days)
    return deleted
