"""
Invite code lookup for the landing page.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.api.deps import collaborators
from ticketing.db.session import get_db
from ticketing.schemas.invite import InviteCheckRequest, InviteStatusResponse
from ticketing.services.collaborators import Collaborators

router = APIRouter(prefix="/invites", tags=["Invites"])


@router.post("/check", response_model=InviteStatusResponse)
async def check_invite(
    body: InviteCheckRequest,
    db: AsyncSession = Depends(get_db),
    deps: Collaborators = Depends(collaborators),
):
    """
    Report whether a code was issued and whether it has been redeemed.
    Redeemed codes come back with a masked summary of the booking.
    """
    return await deps.registry.status(db, body.invite_code)
