"""Bookings API router.

Access rules: admins manage every booking (a plain admin with a responsible
village only sees that village in listings and exports); owners and renters
can only read their own bookings. Service errors are rendered by the
``ServiceError`` handler in ``propman.main``.
"""

import csv
import io
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from propman.api.deps import (
    get_booking_queries,
    get_booking_service,
    get_current_active_user,
    get_occupancy_service,
    get_village_scope,
    require_admin,
)
from propman.models.booking import Booking
from propman.models.user import User
from propman.schemas.auth import MessageResponse
from propman.schemas.booking import (
    BookingCreate,
    BookingExportRow,
    BookingFilters,
    BookingListResponse,
    BookingQueryOptions,
    BookingRelatedResponse,
    BookingResponse,
    BookingStatsResponse,
    BookingStatus,
    BookingStatusUpdate,
    BookingUpdate,
    OccupiedCountResponse,
    UserType,
)
from propman.schemas.occupancy import OccupancyReport
from propman.services.booking_queries import BookingQueryService
from propman.services.booking_service import BookingService
from propman.services.dates import utc_today
from propman.services.occupancy import OccupancyService

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])

EXPORT_COLUMNS = [
    ("ID", "id"),
    ("Apartment", "apartment"),
    ("Village", "village"),
    ("Phase", "phase"),
    ("User", "user"),
    ("User Type", "user_type"),
    ("People", "number_of_people"),
    ("Arrival Date", "arrival_date"),
    ("Leaving Date", "leaving_date"),
    ("Reservation Date", "reservation_date"),
    ("Status", "status"),
    ("Notes", "notes"),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _booking_filters(
    apartment_id: int | None = Query(None, description="Filter by apartment"),
    user_id: int | None = Query(None, description="Filter by occupant"),
    user_type: UserType | None = Query(None, description="Filter by owner/renter"),
    village_id: int | None = Query(None, description="Filter by village"),
    phase: int | None = Query(None, description="Filter by phase (requires village_id)"),
    status_filter: BookingStatus | None = Query(None, alias="status", description="Filter by booking status"),
    arrival_date_start: date | None = Query(None, description="arrival_date >= this date"),
    arrival_date_end: date | None = Query(None, description="arrival_date <= this date"),
    leaving_date_start: date | None = Query(None, description="leaving_date >= this date"),
    leaving_date_end: date | None = Query(None, description="leaving_date <= this date"),
    search: str | None = Query(None, description="Case-insensitive search over names and notes"),
) -> BookingFilters:
    return BookingFilters(
        apartment_id=apartment_id,
        user_id=user_id,
        user_type=user_type,
        village_id=village_id,
        phase=phase,
        status=status_filter,
        arrival_date_start=arrival_date_start,
        arrival_date_end=arrival_date_end,
        leaving_date_start=leaving_date_start,
        leaving_date_end=leaving_date_end,
        search=search,
    )


def _query_options(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: int | None = Query(None, description="Page size (defaults to the configured page limit)"),
    sort_by: str = Query("arrival_date", description="Sort field"),
    sort_order: str = Query("desc", description="asc or desc"),
) -> BookingQueryOptions:
    options = BookingQueryOptions(page=page, sort_by=sort_by, sort_order=sort_order)
    if limit is not None:
        options.limit = limit
    return options


def _ensure_can_read(booking: Booking | None, current_user: User) -> Booking:
    """404 when the booking is missing or belongs to someone else (non-admins)."""
    if booking is None or (not current_user.is_admin and booking.user_id != current_user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


def _render_csv(rows: list[BookingExportRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([header for header, _ in EXPORT_COLUMNS])
    for row in rows:
        data = row.model_dump()
        writer.writerow(["" if data[field] is None else data[field] for _, field in EXPORT_COLUMNS])
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List bookings",
)
async def list_bookings(
    filters: BookingFilters = Depends(_booking_filters),
    options: BookingQueryOptions = Depends(_query_options),
    queries: BookingQueryService = Depends(get_booking_queries),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    """Return a page of bookings plus the total number matching the filters.

    Owners and renters only ever see their own bookings.
    """
    if not current_user.is_admin:
        if filters.user_id is not None and filters.user_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only access your own bookings",
            )
        filters.user_id = current_user.id

    page = await queries.list(filters, options, village_scope=get_village_scope(current_user))
    return {
        "bookings": page.bookings,
        "total": page.total,
        "page": page.page,
        "limit": page.limit,
        "total_pages": page.total_pages,
    }


@router.get("/export", summary="Export all filtered bookings as CSV or JSON")
async def export_bookings(
    export_format: Literal["csv", "json"] = Query("csv", alias="format"),
    filters: BookingFilters = Depends(_booking_filters),
    sort_by: str = Query("arrival_date"),
    sort_order: str = Query("desc"),
    queries: BookingQueryService = Depends(get_booking_queries),
    current_user: User = Depends(require_admin),
) -> Response:
    """Export every booking matching the filters, without pagination.

    Fails with 413 instead of truncating when too many rows match.
    """
    bookings = await queries.export(
        filters,
        BookingQueryOptions(sort_by=sort_by, sort_order=sort_order),
        village_scope=get_village_scope(current_user),
    )
    rows = [BookingExportRow.from_booking(b) for b in bookings]

    if export_format == "json":
        payload = "[" + ",".join(row.model_dump_json() for row in rows) + "]"
        return Response(content=payload, media_type="application/json")

    return Response(
        content=_render_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="bookings.csv"'},
    )


@router.get("/stats", response_model=BookingStatsResponse, summary="Booking statistics")
async def booking_stats(
    occupancy: OccupancyService = Depends(get_occupancy_service),
    current_user: User = Depends(require_admin),
) -> BookingStatsResponse:
    return await occupancy.get_booking_stats()


@router.get("/occupancy", response_model=OccupancyReport, summary="Occupancy rate for a date range")
async def occupancy_rate(
    start_date: str | None = Query(None, description="Start of the period (defaults to today)"),
    end_date: str | None = Query(None, description="End of the period (defaults to today)"),
    village_id: int | None = Query(None, description="Limit to one village"),
    occupancy: OccupancyService = Depends(get_occupancy_service),
    current_user: User = Depends(require_admin),
) -> OccupancyReport:
    """Occupancy per apartment and overall; overlapping bookings are counted once."""
    today = utc_today()
    scope = get_village_scope(current_user)
    return await occupancy.get_occupancy_rate(
        start_date or today,
        end_date or today,
        village_id=scope if scope is not None else village_id,
    )


@router.get(
    "/currently-occupied",
    response_model=OccupiedCountResponse,
    summary="Number of apartments occupied today",
)
async def currently_occupied(
    village_id: int | None = Query(None, description="Limit to one village"),
    occupancy: OccupancyService = Depends(get_occupancy_service),
    current_user: User = Depends(require_admin),
) -> OccupiedCountResponse:
    scope = get_village_scope(current_user)
    count = await occupancy.get_currently_occupied_count(scope if scope is not None else village_id)
    return OccupiedCountResponse(occupied_count=count)


@router.get(
    "/apartment/{apartment_id}",
    response_model=list[BookingResponse],
    summary="Bookings for an apartment",
)
async def apartment_bookings(
    apartment_id: int,
    options: BookingQueryOptions = Depends(_query_options),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> list[Booking]:
    return await service.get_by_apartment(apartment_id, options)


@router.get(
    "/apartment/{apartment_id}/current",
    response_model=BookingResponse | None,
    summary="The booking covering today, if any",
)
async def apartment_current_booking(
    apartment_id: int,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> Booking | None:
    return await service.get_current_for_apartment(apartment_id)


@router.get(
    "/user/{user_id}",
    response_model=list[BookingResponse],
    summary="Bookings for a user",
)
async def user_bookings(
    user_id: int,
    options: BookingQueryOptions = Depends(_query_options),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> list[Booking]:
    if not current_user.is_admin and current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own bookings",
        )
    return await service.get_by_user(user_id, options)


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
)
async def create_booking(
    body: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_admin),
) -> Booking:
    """Create a booking for an existing user or a walk-in renter.

    Validates that:
    - The apartment and user exist.
    - ``user_type`` (if given) matches apartment ownership.
    - The dates do not overlap another active booking.
    """
    return await service.create(body, created_by=current_user.id)


# ---------------------------------------------------------------------------
# Item endpoints
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get a booking")
async def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    return _ensure_can_read(await service.get_by_id(booking_id), current_user)


@router.get(
    "/{booking_id}/related",
    response_model=BookingRelatedResponse,
    summary="Payments, service requests, emails and utility readings of a booking",
)
async def get_booking_related(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    _ensure_can_read(await service.get_by_id(booking_id), current_user)
    return await service.get_related_records(booking_id)


@router.put("/{booking_id}", response_model=BookingResponse, summary="Update a booking")
async def update_booking(
    booking_id: int,
    body: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_admin),
) -> Booking:
    """Partially update a booking; re-checks conflicts when the apartment or dates change."""
    return await service.update(booking_id, body, updated_by=current_user.id)


@router.post("/{booking_id}/status", response_model=BookingResponse, summary="Change booking status")
async def change_booking_status(
    booking_id: int,
    body: BookingStatusUpdate,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_admin),
) -> Booking:
    return await service.set_status(booking_id, body.status, updated_by=current_user.id)


@router.delete("/{booking_id}", response_model=MessageResponse, summary="Delete a booking")
async def delete_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(require_admin),
) -> dict:
    """Delete a booking that has no payments, service requests, emails or utility readings."""
    await service.delete(booking_id)
    return {"message": "Booking deleted"}
