"""Shared API dependencies: single import point for all routers.

Re-exports the database session and authentication dependencies, and builds
the per-request service objects on top of the request's session::

    from propman.api.deps import get_booking_service, require_admin
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from propman.auth.dependencies import (
    get_current_active_user,
    get_current_user,
    get_village_scope,
    require_admin,
)
from propman.database import get_db
from propman.services.booking_queries import BookingQueryService
from propman.services.booking_service import BookingService
from propman.services.occupancy import OccupancyService

__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "get_village_scope",
    "require_admin",
    "get_booking_service",
    "get_booking_queries",
    "get_occupancy_service",
]


async def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(db)


async def get_booking_queries(db: AsyncSession = Depends(get_db)) -> BookingQueryService:
    return BookingQueryService(db)


async def get_occupancy_service(db: AsyncSession = Depends(get_db)) -> OccupancyService:
    return OccupancyService(db)
