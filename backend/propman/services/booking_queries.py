"""Booking listing and export: filters, search, sorting and pagination.

Listing and export share one filtered statement; the total count is taken
from that same statement wrapped in a subquery, so ``total`` always matches
the rows the filters select.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from propman.config import settings
from propman.models.apartment import Apartment
from propman.models.booking import Booking
from propman.models.user import User
from propman.models.village import Village
from propman.schemas.booking import BookingFilters, BookingQueryOptions
from propman.services.errors import ExportLimitExceededError, InvalidLimitError, InvalidPageError

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "arrival_date": Booking.arrival_date,
    "leaving_date": Booking.leaving_date,
    "status": Booking.status,
    "user_type": Booking.user_type,
    "created_at": Booking.created_at,
    "apartment_name": Apartment.name,
    "user_name": User.name,
}
DEFAULT_SORT = "arrival_date"


@dataclass
class BookingPage:
    bookings: list[Booking]
    total: int
    page: int
    limit: int
    total_pages: int


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class BookingQueryService:
    """Read-side queries over bookings joined with users, apartments and villages."""

    def __init__(
        self,
        db: AsyncSession,
        max_limit: int | None = None,
        export_max_rows: int | None = None,
    ) -> None:
        self.db = db
        self.max_limit = settings.max_page_limit if max_limit is None else max_limit
        self.export_max_rows = settings.export_max_rows if export_max_rows is None else export_max_rows

    def filtered_query(self, filters: BookingFilters, village_scope: int | None = None) -> Select:
        """Build the filtered (unsorted, unpaginated) booking statement."""
        query = (
            select(Booking)
            .outerjoin(User, Booking.user_id == User.id)
            .outerjoin(Apartment, Booking.apartment_id == Apartment.id)
            .outerjoin(Village, Apartment.village_id == Village.id)
        )

        if filters.apartment_id is not None:
            query = query.where(Booking.apartment_id == filters.apartment_id)
        if filters.user_id is not None:
            query = query.where(Booking.user_id == filters.user_id)
        if filters.user_type is not None:
            query = query.where(Booking.user_type == filters.user_type)
        if filters.village_id is not None:
            query = query.where(Apartment.village_id == filters.village_id)
            # Phase numbers are per village, so the phase filter needs a village
            if filters.phase is not None:
                query = query.where(Apartment.phase == filters.phase)
        if filters.status is not None:
            query = query.where(Booking.status == filters.status)
        if filters.arrival_date_start is not None:
            query = query.where(Booking.arrival_date >= filters.arrival_date_start)
        if filters.arrival_date_end is not None:
            query = query.where(Booking.arrival_date <= filters.arrival_date_end)
        if filters.leaving_date_start is not None:
            query = query.where(Booking.leaving_date >= filters.leaving_date_start)
        if filters.leaving_date_end is not None:
            query = query.where(Booking.leaving_date <= filters.leaving_date_end)
        if filters.search and filters.search.strip():
            pattern = _like_pattern(filters.search.strip())
            query = query.where(
                or_(
                    User.name.ilike(pattern, escape="\\"),
                    Apartment.name.ilike(pattern, escape="\\"),
                    Village.name.ilike(pattern, escape="\\"),
                    Booking.notes.ilike(pattern, escape="\\"),
                    Booking.person_name.ilike(pattern, escape="\\"),
                )
            )
        if village_scope is not None:
            query = query.where(Apartment.village_id == village_scope)

        return query

    async def count(self, query: Select) -> int:
        result = await self.db.execute(select(func.count()).select_from(query.subquery()))
        return result.scalar_one()

    @staticmethod
    def apply_sort(query: Select, options: BookingQueryOptions) -> Select:
        """Order by an allow-listed field; unknown fields fall back to ``arrival_date``."""
        column = SORT_COLUMNS.get(options.sort_by, SORT_COLUMNS[DEFAULT_SORT])
        if options.sort_order.lower() == "asc":
            return query.order_by(column.asc(), Booking.id.asc())
        return query.order_by(column.desc(), Booking.id.desc())

    async def list(
        self,
        filters: BookingFilters | None = None,
        options: BookingQueryOptions | None = None,
        village_scope: int | None = None,
    ) -> BookingPage:
        """Return one page of bookings plus the total number matching the filters.

        Raises:
            InvalidPageError: If ``page`` is lower than 1.
            InvalidLimitError: If ``limit`` is outside ``[1, max_limit]``.
        """
        filters = filters or BookingFilters()
        options = options or BookingQueryOptions()

        if options.page < 1:
            raise InvalidPageError("Page must be greater than 0")
        if not 1 <= options.limit <= self.max_limit:
            raise InvalidLimitError(f"Limit must be between 1 and {self.max_limit}")

        query = self.filtered_query(filters, village_scope)
        total = await self.count(query)

        page_query = (
            self.apply_sort(query, options)
            .offset((options.page - 1) * options.limit)
            .limit(options.limit)
        )
        result = await self.db.execute(page_query.execution_options(populate_existing=True))
        bookings = list(result.scalars().all())

        return BookingPage(
            bookings=bookings,
            total=total,
            page=options.page,
            limit=options.limit,
            total_pages=math.ceil(total / options.limit),
        )

    async def export(
        self,
        filters: BookingFilters | None = None,
        options: BookingQueryOptions | None = None,
        village_scope: int | None = None,
    ) -> list[Booking]:
        """Return every booking matching the filters, unpaginated.

        Raises:
            ExportLimitExceededError: If more than ``export_max_rows`` rows match.
        """
        filters = filters or BookingFilters()
        options = options or BookingQueryOptions()

        query = self.filtered_query(filters, village_scope)
        total = await self.count(query)
        if total > self.export_max_rows:
            logger.info("Refused export of %s bookings (limit %s)", total, self.export_max_rows)
            raise ExportLimitExceededError(total, self.export_max_rows)

        result = await self.db.execute(
            self.apply_sort(query, options).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
