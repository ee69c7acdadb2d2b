"""Pydantic v2 request/response schemas for booking endpoints."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from propman.config import settings

BookingStatus = Literal["Booked", "Checked In", "Checked Out", "Cancelled"]
UserType = Literal["owner", "renter"]

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for creating a new booking.

    Presence and date checks are done by ``BookingService`` so that every
    client gets the same error kinds. The occupant is given either as an
    existing ``user_id`` or as a free-text ``user_name`` for walk-in renters.
    """

    apartment_id: int | None = None
    user_id: int | None = None
    user_name: str | None = Field(None, max_length=255)
    user_type: UserType | None = None
    number_of_people: int = Field(1, ge=1)
    arrival_date: date | str | None = None
    leaving_date: date | str | None = None
    status: BookingStatus = "Booked"
    notes: str | None = None
    person_name: str | None = Field(None, max_length=255)


class BookingUpdate(BaseModel):
    """Schema for partially updating a booking. Only fields that are set are applied."""

    apartment_id: int | None = None
    user_id: int | None = None
    user_type: UserType | None = None
    number_of_people: int | None = Field(None, ge=1)
    arrival_date: date | str | None = None
    leaving_date: date | str | None = None
    status: BookingStatus | None = None
    notes: str | None = None
    person_name: str | None = Field(None, max_length=255)


class BookingStatusUpdate(BaseModel):
    """Schema for an explicit status transition (check-in, check-out, cancel)."""

    status: BookingStatus


class BookingFilters(BaseModel):
    """Optional filters shared by listing and export."""

    apartment_id: int | None = None
    user_id: int | None = None
    user_type: UserType | None = None
    village_id: int | None = None
    phase: int | None = None  # only honoured together with village_id
    status: BookingStatus | None = None
    arrival_date_start: date | None = None
    arrival_date_end: date | None = None
    leaving_date_start: date | None = None
    leaving_date_end: date | None = None
    search: str | None = None


class BookingQueryOptions(BaseModel):
    """Pagination and sorting. Bounds are enforced by the query service."""

    page: int = 1
    limit: int = Field(default_factory=lambda: settings.default_page_limit)
    sort_by: str = "arrival_date"
    sort_order: str = "desc"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    phone_number: str | None = None
    role: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class VillageSummary(BaseModel):
    id: int
    name: str
    phases: int

    model_config = ConfigDict(from_attributes=True)


class ApartmentSummary(BaseModel):
    id: int
    name: str
    village_id: int
    phase: int
    owner_id: int
    paying_status: str | None = None
    sales_status: str
    village: VillageSummary | None = None

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    """Booking with the occupant, apartment (and its village) and creator joined in."""

    id: int
    apartment_id: int
    user_id: int
    user_type: str
    number_of_people: int
    arrival_date: date
    leaving_date: date
    status: str
    notes: str | None = None
    person_name: str | None = None
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime

    user: UserSummary | None = None
    apartment: ApartmentSummary | None = None
    creator: UserSummary | None = None

    model_config = ConfigDict(from_attributes=True)


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    bookings: list[BookingResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class BookingExportRow(BaseModel):
    """Flat booking row used by JSON and CSV exports."""

    id: int
    apartment: str | None = None
    village: str | None = None
    phase: int | None = None
    user: str | None = None
    user_type: str
    number_of_people: int
    arrival_date: date
    leaving_date: date
    reservation_date: datetime
    status: str
    notes: str | None = None

    @classmethod
    def from_booking(cls, booking) -> "BookingExportRow":
        apartment = booking.apartment
        village = apartment.village if apartment is not None else None
        return cls(
            id=booking.id,
            apartment=apartment.name if apartment is not None else None,
            village=village.name if village is not None else None,
            phase=apartment.phase if apartment is not None else None,
            user=booking.person_name or (booking.user.name if booking.user is not None else None),
            user_type=booking.user_type,
            number_of_people=booking.number_of_people,
            arrival_date=booking.arrival_date,
            leaving_date=booking.leaving_date,
            reservation_date=booking.created_at,
            status=booking.status,
            notes=booking.notes,
        )


class BookingStatsResponse(BaseModel):
    """Aggregate booking counts."""

    total_bookings: int
    current_bookings: int
    upcoming_bookings: int
    past_bookings: int
    by_status: dict[str, int]
    by_user_type: dict[str, int]


class OccupiedCountResponse(BaseModel):
    occupied_count: int


# ---------------------------------------------------------------------------
# Related records
# ---------------------------------------------------------------------------


class PaymentSummary(BaseModel):
    id: int
    amount: float
    currency: str
    payment_date: date
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ServiceRequestSummary(BaseModel):
    id: int
    description: str
    status: str
    date_created: datetime

    model_config = ConfigDict(from_attributes=True)


class EmailSummary(BaseModel):
    id: int
    sent_date: date
    from_address: str
    to_address: str
    subject: str

    model_config = ConfigDict(from_attributes=True)


class UtilityReadingSummary(BaseModel):
    id: int
    start_date: date
    end_date: date | None = None
    water_start_reading: float | None = None
    water_end_reading: float | None = None
    electricity_start_reading: float | None = None
    electricity_end_reading: float | None = None

    model_config = ConfigDict(from_attributes=True)


class BookingRelatedResponse(BaseModel):
    """Records that reference a booking and block its deletion."""

    payments: list[PaymentSummary]
    service_requests: list[ServiceRequestSummary]
    emails: list[EmailSummary]
    utility_readings: list[UtilityReadingSummary]
