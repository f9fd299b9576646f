"""
Admin maintenance endpoints. All require the X-Admin-Secret header.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.api.deps import collaborators, require_admin
from ticketing.core.logging import get_logger
from ticketing.db.session import get_db
from ticketing.schemas.admin import AdminActionResponse, PruneRequest, PruneResponse
from ticketing.services import webhook_ledger
from ticketing.services.cache_service import invalidate_roster_cache
from ticketing.services.collaborators import Collaborators

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.post("/bookings/{booking_id}/resend-email", response_model=AdminActionResponse)
async def resend_email(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """Retry the ticket email for a completed booking."""
    sent = await deps.reconciler.resend_ticket(db, booking_id)
    logger.info("admin_resend_email", booking_id=booking_id, sent=sent)
    return AdminActionResponse(
        success=sent,
        message="Ticket email sent" if sent else "Ticket email could not be sent",
        booking_id=booking_id,
    )


@router.post("/bookings/{booking_id}/sync-mirror", response_model=AdminActionResponse)
async def sync_mirror(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """Re-push the booking row to the spreadsheet mirror."""
    ok = await deps.reconciler.resync_mirror(db, booking_id)
    logger.info("admin_sync_mirror", booking_id=booking_id, synced=ok)
    return AdminActionResponse(
        success=ok,
        message="Mirror updated" if ok else "Mirror update failed",
        booking_id=booking_id,
    )


@router.post("/webhooks/prune", response_model=PruneResponse)
async def prune_webhooks(
    body: PruneRequest,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """Delete ledger entries older than the retention window."""
    days = body.older_than_days or deps.settings.WEBHOOK_RETENTION_DAYS
    deleted = await webhook_ledger.prune(db, days)
    return PruneResponse(deleted=deleted)


@router.post("/roster/refresh", response_model=AdminActionResponse)
async def refresh_roster():
    """Drop the cached roster so the next invite check re-reads the sheet."""
    removed = await invalidate_roster_cache()
    message = "Roster cache cleared" if removed else "No cached roster to clear"
    return AdminActionResponse(success=True, message=message)
