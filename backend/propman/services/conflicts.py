"""Booking conflict detection.

Rules:

- A booking cannot overlap another non-cancelled booking on the same apartment.
- Overlap is ``existing.arrival < new.leaving AND existing.leaving > new.arrival``
  on UTC calendar dates, so a booking may start on the day another one ends.
"""

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propman.models.apartment import Apartment
from propman.models.booking import STATUS_CANCELLED, Booking
from propman.services.dates import to_utc_date
from propman.services.errors import BookingConflictError

logger = logging.getLogger(__name__)


class ConflictChecker:
    """Decides whether an apartment is free for a date range."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_conflicts(
        self,
        apartment_id: int,
        arrival_date: date | datetime | str,
        leaving_date: date | datetime | str,
        exclude_booking_id: int | None = None,
    ) -> list[Booking]:
        """Return the active bookings that overlap the candidate range."""
        arrival = to_utc_date(arrival_date, "arrival date")
        leaving = to_utc_date(leaving_date, "leaving date")

        query = select(Booking).where(
            Booking.apartment_id == apartment_id,
            Booking.status != STATUS_CANCELLED,
            Booking.arrival_date < leaving,
            Booking.leaving_date > arrival,
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)

        result = await self.db.execute(query.order_by(Booking.arrival_date, Booking.id))
        return list(result.scalars().all())

    async def check(
        self,
        apartment_id: int,
        arrival_date: date | datetime | str,
        leaving_date: date | datetime | str,
        exclude_booking_id: int | None = None,
    ) -> None:
        """Raise ``BookingConflictError`` if the range overlaps an active booking.

        The apartment row is locked first so that concurrent writers for the
        same apartment serialize on it until the surrounding transaction ends.
        Dialects without row locks (SQLite) render no ``FOR UPDATE`` clause.
        """
        await self.db.execute(
            select(Apartment.id).where(Apartment.id == apartment_id).with_for_update()
        )

        conflicts = await self.find_conflicts(apartment_id, arrival_date, leaving_date, exclude_booking_id)
        if conflicts:
            logger.info(
                "Rejected booking on apartment %s: overlaps bookings %s",
                apartment_id,
                [b.id for b in conflicts],
            )
            raise BookingConflictError(conflicts)
