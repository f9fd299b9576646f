"""
Pydantic schemas for invite-code checks.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ticketing.schemas.booking import BookingSummary


class InviteCheckRequest(BaseModel):
    invite_code: str = Field(..., max_length=256)


class InviteStatusResponse(BaseModel):
    code: str
    exists: bool
    redeemed: bool
    booking: Optional[BookingSummary] = None
    held_until: Optional[datetime] = None
    group: Optional[str] = None
