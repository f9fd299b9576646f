"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from ticketing.api.routes import admin, bookings, checkin, invites, payments

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(invites.router)
api_router.include_router(bookings.router)
api_router.include_router(payments.router)
api_router.include_router(checkin.router)
api_router.include_router(admin.router)
