"""Tests for booking conflict detection."""

from datetime import date, datetime, timedelta, timezone

import pytest
from factories import make_booking
from sqlalchemy.ext.asyncio import AsyncSession

from propman.models.apartment import Apartment
from propman.models.booking import STATUS_CANCELLED, STATUS_CHECKED_IN, STATUS_CHECKED_OUT
from propman.models.user import User
from propman.services.conflicts import ConflictChecker
from propman.services.errors import BookingConflictError, InvalidDateError

pytestmark = pytest.mark.asyncio

MARCH_1 = date(2024, 3, 1)
MARCH_5 = date(2024, 3, 5)


class TestFindConflicts:
    """Overlap is strict on both ends: touching ranges do not conflict."""

    async def test_no_bookings_no_conflicts(self, db_session: AsyncSession, apartment: Apartment) -> None:
        checker = ConflictChecker(db_session)
        assert await checker.find_conflicts(apartment.id, MARCH_1, MARCH_5) == []

    async def test_same_range_conflicts(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        existing = await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5)
        conflicts = await ConflictChecker(db_session).find_conflicts(apartment.id, MARCH_1, MARCH_5)
        assert [b.id for b in conflicts] == [existing.id]

    @pytest.mark.parametrize(
        ("arrival", "leaving"),
        [
            (date(2024, 2, 28), date(2024, 3, 2)),  # overlaps the start
            (date(2024, 3, 4), date(2024, 3, 8)),  # overlaps the end
            (date(2024, 3, 2), date(2024, 3, 3)),  # inside
            (date(2024, 2, 20), date(2024, 3, 20)),  # encloses
        ],
    )
    async def test_partial_overlaps_conflict(
        self,
        db_session: AsyncSession,
        apartment: Apartment,
        renter: User,
        arrival: date,
        leaving: date,
    ) -> None:
        await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5)
        conflicts = await ConflictChecker(db_session).find_conflicts(apartment.id, arrival, leaving)
        assert len(conflicts) == 1

    async def test_back_to_back_allowed(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        """A stay may start on the day another ends, and end on the day another starts."""
        await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5)
        checker = ConflictChecker(db_session)
        assert await checker.find_conflicts(apartment.id, MARCH_5, date(2024, 3, 10)) == []
        assert await checker.find_conflicts(apartment.id, date(2024, 2, 25), MARCH_1) == []

    async def test_cancelled_bookings_ignored(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5, status=STATUS_CANCELLED)
        assert await ConflictChecker(db_session).find_conflicts(apartment.id, MARCH_1, MARCH_5) == []

    @pytest.mark.parametrize("status", [STATUS_CHECKED_IN, STATUS_CHECKED_OUT])
    async def test_non_cancelled_statuses_block(
        self, db_session: AsyncSession, apartment: Apartment, renter: User, status: str
    ) -> None:
        await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5, status=status)
        conflicts = await ConflictChecker(db_session).find_conflicts(apartment.id, MARCH_1, MARCH_5)
        assert len(conflicts) == 1

    async def test_other_apartment_ignored(
        self,
        db_session: AsyncSession,
        apartment: Apartment,
        second_apartment: Apartment,
        renter: User,
    ) -> None:
        await make_booking(db_session, second_apartment, renter, MARCH_1, MARCH_5)
        assert await ConflictChecker(db_session).find_conflicts(apartment.id, MARCH_1, MARCH_5) == []

    async def test_excluded_booking_ignored(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        existing = await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5)
        conflicts = await ConflictChecker(db_session).find_conflicts(
            apartment.id, MARCH_1, MARCH_5 + timedelta(days=2), exclude_booking_id=existing.id
        )
        assert conflicts == []

    async def test_datetimes_compared_as_utc_dates(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        """21:00 on Mar 4 in UTC-05:00 is Mar 5 in UTC, so this range touches, not overlaps."""
        await make_booking(db_session, apartment, renter, MARCH_5, date(2024, 3, 9))
        leaving = datetime(2024, 3, 4, 21, 0, tzinfo=timezone(timedelta(hours=-5)))
        conflicts = await ConflictChecker(db_session).find_conflicts(apartment.id, MARCH_1, leaving)
        assert conflicts == []

    async def test_iso_strings_accepted(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5)
        conflicts = await ConflictChecker(db_session).find_conflicts(
            apartment.id, "2024-03-04T10:00:00Z", "2024-03-06"
        )
        assert len(conflicts) == 1

    async def test_invalid_date_rejected(self, db_session: AsyncSession, apartment: Apartment) -> None:
        with pytest.raises(InvalidDateError):
            await ConflictChecker(db_session).find_conflicts(apartment.id, "not-a-date", MARCH_5)


class TestCheck:
    """``check`` raises with the conflicting bookings attached."""

    async def test_free_range_passes(self, db_session: AsyncSession, apartment: Apartment) -> None:
        await ConflictChecker(db_session).check(apartment.id, MARCH_1, MARCH_5)

    async def test_conflict_raises_with_details(
        self, db_session: AsyncSession, apartment: Apartment, renter: User
    ) -> None:
        existing = await make_booking(db_session, apartment, renter, MARCH_1, MARCH_5)

        with pytest.raises(BookingConflictError) as exc_info:
            await ConflictChecker(db_session).check(apartment.id, date(2024, 3, 3), date(2024, 3, 7))

        error = exc_info.value
        assert error.status_code == 409
        assert [b.id for b in error.conflicts] == [existing.id]
        assert f"Booking ID {existing.id}" in error.message
        assert "Fri Mar 01 2024" in error.message
        assert "back-to-back" in error.message

        body = error.to_dict()
        assert body["error"] == "BookingConflict"
        assert body["conflicts"][0]["arrival_date"] == "2024-03-01"
