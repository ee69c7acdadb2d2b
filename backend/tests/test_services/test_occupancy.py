"""Tests for occupancy rates, live occupancy and booking statistics."""

from datetime import date
from decimal import Decimal

import pytest
from factories import days_from_today, make_booking
from sqlalchemy.ext.asyncio import AsyncSession

from propman.models.apartment import Apartment
from propman.models.booking import STATUS_CANCELLED, STATUS_CHECKED_IN, STATUS_CHECKED_OUT
from propman.models.user import User
from propman.models.village import Village
from propman.services.errors import DateOrderError, InvalidDateError
from propman.services.occupancy import (
    OccupancyService,
    count_booked_days,
    inclusive_day_count,
    merge_intervals,
)


def d(day: int) -> date:
    return date(2024, 3, day)


# ---------------------------------------------------------------------------
# Interval math
# ---------------------------------------------------------------------------


class TestMergeIntervals:
    """Pure interval merging."""

    def test_empty(self) -> None:
        assert merge_intervals([]) == []

    def test_overlapping_are_merged(self) -> None:
        assert merge_intervals([(d(3), d(8)), (d(1), d(5))]) == [(d(1), d(8))]

    def test_touching_are_merged(self) -> None:
        assert merge_intervals([(d(1), d(5)), (d(5), d(9))]) == [(d(1), d(9))]

    def test_contained_interval_absorbed(self) -> None:
        assert merge_intervals([(d(1), d(20)), (d(3), d(4))]) == [(d(1), d(20))]

    def test_disjoint_kept_apart(self) -> None:
        assert merge_intervals([(d(10), d(12)), (d(1), d(3))]) == [(d(1), d(3)), (d(10), d(12))]


class TestCountBookedDays:
    """Inclusive day counting after clipping to the period."""

    def test_overlap_counted_once(self) -> None:
        # [1,5] and [3,8] cover days 1..8, not 5 + 6
        assert count_booked_days([(d(1), d(5)), (d(3), d(8))], d(1), d(31)) == 8

    def test_clipped_to_period(self) -> None:
        assert count_booked_days([(date(2024, 2, 25), d(3))], d(1), d(31)) == 3
        assert count_booked_days([(d(28), date(2024, 4, 5))], d(1), d(31)) == 4

    def test_outside_period_ignored(self) -> None:
        assert count_booked_days([(date(2024, 4, 1), date(2024, 4, 5))], d(1), d(31)) == 0

    def test_inclusive_day_count(self) -> None:
        assert inclusive_day_count(d(1), d(1)) == 1
        assert inclusive_day_count(d(1), d(31)) == 31


# ---------------------------------------------------------------------------
# get_occupancy_rate
# ---------------------------------------------------------------------------


class TestOccupancyRate:
    """Per-apartment and aggregate occupancy."""

    async def test_overlapping_bookings_not_double_counted(
        self, db_session: AsyncSession, apartment: Apartment, renter: User, owner: User
    ) -> None:
        await make_booking(db_session, apartment, renter, d(1), d(5))
        await make_booking(db_session, apartment, owner, d(3), d(8))

        report = await OccupancyService(db_session).get_occupancy_rate(d(1), d(10))

        assert report.total_days_in_period == 10
        assert report.total_apartments == 1
        assert report.by_apartment[0].booked_days == 8
        assert report.by_apartment[0].occupancy_rate == Decimal("80.00")
        assert report.occupancy_rate == Decimal("80.00")

    async def test_aggregate_over_apartments(
        self,
        db_session: AsyncSession,
        apartment: Apartment,
        second_apartment: Apartment,
        renter: User,
    ) -> None:
        await make_booking(db_session, apartment, renter, d(1), d(10))

        report = await OccupancyService(db_session).get_occupancy_rate(d(1), d(10))

        by_name = {row.apartment_name: row for row in report.by_apartment}
        assert by_name["A-101"].booked_days == 10
        assert by_name["A-101"].village_name == "Sunrise Bay"
        assert by_name["B-202"].booked_days == 0
        assert report.total_booked_days == 10
        assert report.occupancy_rate == Decimal("50.00")

    async def test_only_booked_and_checked_in_count(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        await make_booking(db_session, apartment, renter, d(1), d(3), status=STATUS_CANCELLED)
        await make_booking(db_session, apartment, renter, d(4), d(6), status=STATUS_CHECKED_OUT)
        await make_booking(db_session, apartment, renter, d(7), d(8), status=STATUS_CHECKED_IN)

        report = await OccupancyService(db_session).get_occupancy_rate(d(1), d(10))
        assert report.by_apartment[0].booked_days == 2

    async def test_village_scope(
        self,
        db_session: AsyncSession,
        apartment: Apartment,
        remote_apartment: Apartment,
        renter: User,
        other_village: Village,
    ) -> None:
        await make_booking(db_session, apartment, renter, d(1), d(10))
        await make_booking(db_session, remote_apartment, renter, d(1), d(5))

        report = await OccupancyService(db_session).get_occupancy_rate(d(1), d(10), village_id=other_village.id)

        assert report.total_apartments == 1
        assert report.by_apartment[0].apartment_name == "P-7"
        assert report.total_booked_days == 5

    async def test_zero_apartments(self, db_session: AsyncSession, other_village: Village) -> None:
        report = await OccupancyService(db_session).get_occupancy_rate(d(1), d(10), village_id=other_village.id)

        assert report.total_apartments == 0
        assert report.occupancy_rate == Decimal("0")
        assert report.by_apartment == []

    async def test_string_dates_accepted(self, db_session: AsyncSession, apartment: Apartment) -> None:
        report = await OccupancyService(db_session).get_occupancy_rate("2024-03-01", "2024-03-01T23:00:00Z")
        assert report.total_days_in_period == 1

    async def test_start_after_end_rejected(self, db_session: AsyncSession) -> None:
        with pytest.raises(DateOrderError):
            await OccupancyService(db_session).get_occupancy_rate(d(10), d(1))

    async def test_invalid_date_rejected(self, db_session: AsyncSession) -> None:
        with pytest.raises(InvalidDateError):
            await OccupancyService(db_session).get_occupancy_rate("yesterday", d(1))


# ---------------------------------------------------------------------------
# Live occupancy and stats
# ---------------------------------------------------------------------------


class TestCurrentlyOccupied:
    async def test_counts_distinct_apartments(
        self,
        db_session: AsyncSession,
        apartment: Apartment,
        second_apartment: Apartment,
        remote_apartment: Apartment,
        renter: User,
        village: Village,
    ) -> None:
        await make_booking(db_session, apartment, renter, days_from_today(-3), days_from_today(2))
        await make_booking(
            db_session, second_apartment, renter, days_from_today(-1), days_from_today(1), status=STATUS_CHECKED_IN
        )
        await make_booking(db_session, remote_apartment, renter, days_from_today(0), days_from_today(4))
        # Not counted: cancelled, and in the future
        await make_booking(
            db_session, apartment, renter, days_from_today(-3), days_from_today(2), status=STATUS_CANCELLED
        )
        await make_booking(db_session, second_apartment, renter, days_from_today(5), days_from_today(9))

        service = OccupancyService(db_session)
        assert await service.get_currently_occupied_count() == 3
        assert await service.get_currently_occupied_count(village.id) == 2


class TestBookingStats:
    async def test_counts(self, db_session: AsyncSession, apartment: Apartment, renter: User, owner: User) -> None:
        await make_booking(db_session, apartment, renter, days_from_today(10), days_from_today(12))
        await make_booking(db_session, apartment, owner, days_from_today(-1), days_from_today(1), status=STATUS_CHECKED_IN)
        await make_booking(
            db_session, apartment, renter, days_from_today(-20), days_from_today(-15), status=STATUS_CHECKED_OUT
        )
        await make_booking(
            db_session, apartment, renter, days_from_today(30), days_from_today(35), status=STATUS_CANCELLED
        )

        stats = await OccupancyService(db_session).get_booking_stats()

        assert stats.total_bookings == 4
        assert stats.current_bookings == 1
        assert stats.upcoming_bookings == 1
        assert stats.past_bookings == 1
        assert stats.by_status == {"Booked": 1, "Checked In": 1, "Checked Out": 1, "Cancelled": 1}
        assert stats.by_user_type == {"owner": 1, "renter": 3}

    async def test_empty(self, db_session: AsyncSession) -> None:
        stats = await OccupancyService(db_session).get_booking_stats()
        assert stats.total_bookings == 0
        assert stats.by_user_type == {"owner": 0, "renter": 0}
