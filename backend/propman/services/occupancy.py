"""Availability and occupancy: utilization of the apartment inventory over a period."""

import logging
from collections import defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from propman.models.apartment import Apartment
from propman.models.booking import (
    BOOKING_STATUSES,
    OCCUPYING_STATUSES,
    STATUS_BOOKED,
    STATUS_CHECKED_IN,
    STATUS_CHECKED_OUT,
    USER_TYPES,
    Booking,
)
from propman.schemas.booking import BookingStatsResponse
from propman.schemas.occupancy import ApartmentOccupancy, OccupancyReport
from propman.services.dates import to_utc_date, utc_today
from propman.services.errors import DateOrderError

logger = logging.getLogger(__name__)

Interval = tuple[date, date]


def merge_intervals(intervals: list[Interval]) -> list[Interval]:
    """Merge overlapping or touching inclusive date intervals.

    Intervals are sorted by start; the next interval extends the current one
    when it starts on or before the current end.
    """
    merged: list[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def count_booked_days(intervals: list[Interval], period_start: date, period_end: date) -> int:
    """Count the distinct days of ``[period_start, period_end]`` covered by the intervals.

    Each interval is clipped to the period first; both ends are inclusive.
    """
    clipped = []
    for start, end in intervals:
        start = max(start, period_start)
        end = min(end, period_end)
        if start <= end:
            clipped.append((start, end))
    return sum((end - start).days + 1 for start, end in merge_intervals(clipped))


def inclusive_day_count(start_date: date, end_date: date) -> int:
    """Number of calendar days in ``[start_date, end_date]``."""
    return (end_date - start_date).days + 1


def _percent(part: int, whole: int) -> Decimal:
    if whole <= 0:
        return Decimal("0.00")
    rate = Decimal(part * 100) / Decimal(whole)
    return rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class OccupancyService:
    """Occupancy rates, live occupancy counts and booking statistics."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_occupancy_rate(
        self,
        start_date: date | datetime | str,
        end_date: date | datetime | str,
        village_id: int | None = None,
    ) -> OccupancyReport:
        """Occupancy of every apartment (optionally one village's) between two dates.

        Only ``Booked`` and ``Checked In`` bookings count. Overlapping bookings
        on one apartment are merged so no day is counted twice. Rates are
        percentages and are not clamped.

        Raises:
            InvalidDateError: A date cannot be parsed.
            DateOrderError: ``start_date`` is after ``end_date``.
        """
        start = to_utc_date(start_date, "start date")
        end = to_utc_date(end_date, "end date")
        if start > end:
            raise DateOrderError("Start date must be before or equal to end date")

        total_days = inclusive_day_count(start, end)

        apartments_query = (
            select(Apartment)
            .order_by(Apartment.name, Apartment.id)
            .execution_options(populate_existing=True)
        )
        if village_id is not None:
            apartments_query = apartments_query.where(Apartment.village_id == village_id)
        apartments = list((await self.db.execute(apartments_query)).scalars().all())

        if not apartments:
            return OccupancyReport(
                start_date=start,
                end_date=end,
                total_days_in_period=total_days,
                total_apartments=0,
                occupancy_rate=Decimal("0.00"),
                by_apartment=[],
            )

        bookings_query = (
            select(Booking.apartment_id, Booking.arrival_date, Booking.leaving_date)
            .join(Apartment, Booking.apartment_id == Apartment.id)
            .where(
                Booking.status.in_(OCCUPYING_STATUSES),
                Booking.arrival_date <= end,
                Booking.leaving_date >= start,
            )
        )
        if village_id is not None:
            bookings_query = bookings_query.where(Apartment.village_id == village_id)

        intervals_by_apartment: dict[int, list[Interval]] = defaultdict(list)
        for apartment_id, arrival, leaving in (await self.db.execute(bookings_query)).all():
            intervals_by_apartment[apartment_id].append((arrival, leaving))

        by_apartment: list[ApartmentOccupancy] = []
        total_booked = 0
        for apartment in apartments:
            booked_days = count_booked_days(intervals_by_apartment.get(apartment.id, []), start, end)
            total_booked += booked_days
            by_apartment.append(
                ApartmentOccupancy(
                    apartment_id=apartment.id,
                    apartment_name=apartment.name,
                    village_name=apartment.village.name if apartment.village is not None else None,
                    booked_days=booked_days,
                    total_days=total_days,
                    occupancy_rate=_percent(booked_days, total_days),
                )
            )

        logger.debug(
            "Occupancy %s..%s (village %s): %s apartments, %s booked days",
            start,
            end,
            village_id,
            len(apartments),
            total_booked,
        )
        return OccupancyReport(
            start_date=start,
            end_date=end,
            total_days_in_period=total_days,
            total_apartments=len(apartments),
            total_booked_days=total_booked,
            occupancy_rate=_percent(total_booked, len(apartments) * total_days),
            by_apartment=by_apartment,
        )

    async def get_currently_occupied_count(self, village_id: int | None = None) -> int:
        """Number of distinct apartments with an active booking covering today."""
        today = utc_today()
        query = (
            select(func.count(distinct(Booking.apartment_id)))
            .select_from(Booking)
            .join(Apartment, Booking.apartment_id == Apartment.id)
            .where(
                Booking.status.in_(OCCUPYING_STATUSES),
                Booking.arrival_date <= today,
                Booking.leaving_date >= today,
            )
        )
        if village_id is not None:
            query = query.where(Apartment.village_id == village_id)
        return (await self.db.execute(query)).scalar_one()

    async def get_booking_stats(self) -> BookingStatsResponse:
        """Booking counts by status and user type, plus current/upcoming/past totals."""
        by_status = dict.fromkeys(BOOKING_STATUSES, 0)
        rows = await self.db.execute(select(Booking.status, func.count(Booking.id)).group_by(Booking.status))
        for status, count in rows.all():
            by_status[status] = count

        by_user_type = dict.fromkeys(USER_TYPES, 0)
        rows = await self.db.execute(
            select(Booking.user_type, func.count(Booking.id)).group_by(Booking.user_type)
        )
        for user_type, count in rows.all():
            by_user_type[user_type] = count

        upcoming = await self.db.execute(
            select(func.count(Booking.id)).where(
                Booking.status == STATUS_BOOKED,
                Booking.arrival_date > utc_today(),
            )
        )

        return BookingStatsResponse(
            total_bookings=sum(by_status.values()),
            current_bookings=by_status[STATUS_CHECKED_IN],
            upcoming_bookings=upcoming.scalar_one(),
            past_bookings=by_status[STATUS_CHECKED_OUT],
            by_status=by_status,
            by_user_type=by_user_type,
        )
