"""
Pydantic schemas for admin maintenance endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field


class AdminActionResponse(BaseModel):
    success: bool
    message: str
    booking_id: Optional[str] = None


class PruneRequest(BaseModel):
    older_than_days: Optional[int] = Field(default=None, ge=1, le=3650)


class PruneResponse(BaseModel):
    success: bool = True
    deleted: int
