"""Booking lifecycle: create, update, delete and read bookings.

Every write validates its input, checks the apartment's calendar through
``ConflictChecker`` as the last gate, flushes, and then asks the apartment
status view to refresh. Errors abort the whole operation; only the view
refresh is allowed to fail softly.
"""

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from propman.models.apartment import Apartment
from propman.models.booking import (
    STATUS_BOOKED,
    STATUS_CANCELLED,
    STATUS_CHECKED_OUT,
    USER_TYPE_OWNER,
    USER_TYPE_RENTER,
    Booking,
)
from propman.models.email import Email
from propman.models.payment import Payment
from propman.models.service_request import ServiceRequest
from propman.models.user import User
from propman.models.utility_reading import UtilityReading
from propman.schemas.booking import (
    BookingCreate,
    BookingFilters,
    BookingQueryOptions,
    BookingUpdate,
)
from propman.services.apartment_status import ApartmentStatusView
from propman.services.booking_queries import BookingQueryService
from propman.services.conflicts import ConflictChecker
from propman.services.dates import to_utc_date, utc_today
from propman.services.errors import (
    DateOrderError,
    HasDependenciesError,
    InvalidOperationError,
    MissingFieldsError,
    NoChangesError,
    NotFoundError,
    TypeMismatchError,
)
from propman.services.renters import RenterResolver

logger = logging.getLogger(__name__)

# Records that reference a booking, in the order they are reported
DEPENDENT_RECORDS = (
    ("utility readings", UtilityReading),
    ("service requests", ServiceRequest),
    ("payments", Payment),
    ("emails", Email),
)

# Columns that may be omitted from an update but never set to null
_NON_NULLABLE_UPDATE_FIELDS = (
    "apartment_id",
    "user_id",
    "user_type",
    "number_of_people",
    "arrival_date",
    "leaving_date",
    "status",
)


def _check_date_order(arrival: date, leaving: date) -> None:
    if arrival >= leaving:
        raise DateOrderError("Leaving date must be after arrival date")


def derive_user_type(user_id: int, apartment: Apartment) -> str:
    """A booking is an owner stay iff the occupant is the apartment's registered owner."""
    return USER_TYPE_OWNER if user_id == apartment.owner_id else USER_TYPE_RENTER


class BookingService:
    """Owns the booking lifecycle for a single database session."""

    def __init__(
        self,
        db: AsyncSession,
        conflict_checker: ConflictChecker | None = None,
        renter_resolver: RenterResolver | None = None,
        status_view: ApartmentStatusView | None = None,
        queries: BookingQueryService | None = None,
    ) -> None:
        self.db = db
        self.conflicts = conflict_checker or ConflictChecker(db)
        self.renters = renter_resolver or RenterResolver(db)
        self.status_view = status_view or ApartmentStatusView(db)
        self.queries = queries or BookingQueryService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_id(self, booking_id: int) -> Booking | None:
        """Load a booking with its user, apartment, village and creator."""
        result = await self.db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_apartment(
        self, apartment_id: int, options: BookingQueryOptions | None = None
    ) -> list[Booking]:
        await self._get_apartment(apartment_id)
        page = await self.queries.list(BookingFilters(apartment_id=apartment_id), options)
        return page.bookings

    async def get_by_user(self, user_id: int, options: BookingQueryOptions | None = None) -> list[Booking]:
        await self._get_user(user_id)
        page = await self.queries.list(BookingFilters(user_id=user_id), options)
        return page.bookings

    async def get_current_for_apartment(self, apartment_id: int) -> Booking | None:
        """Return the booking covering today, if any.

        This is a point-in-time query on the dates; it does not rely on the
        stored status beyond skipping checked-out and cancelled stays.
        """
        today = utc_today()
        result = await self.db.execute(
            select(Booking)
            .where(
                Booking.apartment_id == apartment_id,
                Booking.arrival_date <= today,
                Booking.leaving_date >= today,
                Booking.status.not_in((STATUS_CHECKED_OUT, STATUS_CANCELLED)),
            )
            .order_by(Booking.arrival_date.desc(), Booking.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_related_records(self, booking_id: int) -> dict[str, list]:
        """Return the payments, service requests, emails and utility readings of a booking."""
        await self._get_booking(booking_id)

        payments = await self.db.execute(
            select(Payment).where(Payment.booking_id == booking_id).order_by(Payment.payment_date.desc())
        )
        service_requests = await self.db.execute(
            select(ServiceRequest)
            .where(ServiceRequest.booking_id == booking_id)
            .order_by(ServiceRequest.date_created.desc())
        )
        emails = await self.db.execute(
            select(Email).where(Email.booking_id == booking_id).order_by(Email.sent_date.desc())
        )
        readings = await self.db.execute(
            select(UtilityReading)
            .where(UtilityReading.booking_id == booking_id)
            .order_by(UtilityReading.start_date.desc())
        )
        return {
            "payments": list(payments.scalars().all()),
            "service_requests": list(service_requests.scalars().all()),
            "emails": list(emails.scalars().all()),
            "utility_readings": list(readings.scalars().all()),
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, data: BookingCreate, created_by: int | None) -> Booking:
        """Create a booking after validation and conflict detection.

        The occupant is either an existing user (``user_id``), whose
        ``user_type`` is derived from apartment ownership, or a walk-in
        renter named by ``user_name``, resolved or created on the fly.

        Raises:
            MissingFieldsError: Required fields or the occupant are missing.
            InvalidDateError: A date cannot be parsed.
            DateOrderError: ``arrival_date`` is not before ``leaving_date``.
            NotFoundError: The apartment or user does not exist.
            InvalidOperationError: An owner booking was requested by name,
                or both ``user_id`` and ``user_name`` were given.
            TypeMismatchError: An explicit ``user_type`` disagrees with ownership.
            BookingConflictError: The dates overlap an active booking.
        """
        if data.apartment_id is None or data.arrival_date is None or data.leaving_date is None:
            raise MissingFieldsError("Missing required fields: apartment_id, arrival_date and leaving_date")

        has_user_id = data.user_id is not None
        has_user_name = bool(data.user_name and data.user_name.strip())
        if not has_user_id and not has_user_name:
            raise MissingFieldsError("Either user_id or user_name must be provided")
        if has_user_id and has_user_name:
            raise InvalidOperationError("Provide either user_id or user_name, not both")

        arrival = to_utc_date(data.arrival_date, "arrival date")
        leaving = to_utc_date(data.leaving_date, "leaving date")
        _check_date_order(arrival, leaving)

        apartment = await self._get_apartment(data.apartment_id)

        if has_user_id:
            user = await self._get_user(data.user_id)
            user_type = derive_user_type(user.id, apartment)
        else:
            if data.user_type == USER_TYPE_OWNER:
                raise InvalidOperationError(
                    "Cannot create booking with non-existing user for owner type. "
                    "Owners must be existing users."
                )
            user = await self.renters.resolve_or_create(data.user_name)
            user_type = USER_TYPE_RENTER

        if data.user_type is not None and data.user_type != user_type:
            raise TypeMismatchError(_type_mismatch_message(user_type, data.user_type))

        if data.status != STATUS_CANCELLED:
            await self.conflicts.check(apartment.id, arrival, leaving)

        booking = Booking(
            apartment_id=apartment.id,
            user_id=user.id,
            user_type=user_type,
            number_of_people=data.number_of_people or 1,
            arrival_date=arrival,
            leaving_date=leaving,
            status=data.status or STATUS_BOOKED,
            notes=data.notes or None,
            person_name=data.person_name or None,
            created_by=created_by,
        )
        self.db.add(booking)
        await self.db.flush()

        logger.info(
            "Created booking %s: apartment %s, user %s (%s), %s to %s",
            booking.id,
            apartment.id,
            user.id,
            user_type,
            arrival,
            leaving,
        )

        await self.status_view.refresh()
        return await self._reload(booking.id)

    async def update(self, booking_id: int, data: BookingUpdate, updated_by: int | None) -> Booking:
        """Partially update a booking.

        The conflict check re-runs, excluding this booking, when the
        apartment or a date changes, or when a cancelled booking becomes
        active again. A new occupant or apartment without an explicit
        ``user_type`` re-derives it from apartment ownership.

        Raises:
            NotFoundError: The booking, new apartment or new user does not exist.
            NoChangesError: The payload sets no fields.
            InvalidOperationError: A required column is set to null.
            InvalidDateError: A date cannot be parsed.
            DateOrderError: The effective dates are out of order.
            TypeMismatchError: ``user_type=owner`` for a user who does not own
                the effective apartment.
            BookingConflictError: The new range overlaps an active booking.
        """
        booking = await self._get_booking(booking_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise NoChangesError("No fields to update")
        for field in _NON_NULLABLE_UPDATE_FIELDS:
            if field in changes and changes[field] is None:
                raise InvalidOperationError(f"{field} cannot be null")

        if "arrival_date" in changes:
            changes["arrival_date"] = to_utc_date(changes["arrival_date"], "arrival date")
        if "leaving_date" in changes:
            changes["leaving_date"] = to_utc_date(changes["leaving_date"], "leaving date")
        arrival = changes.get("arrival_date", booking.arrival_date)
        leaving = changes.get("leaving_date", booking.leaving_date)
        _check_date_order(arrival, leaving)

        apartment_changed = changes.get("apartment_id", booking.apartment_id) != booking.apartment_id
        user_changed = changes.get("user_id", booking.user_id) != booking.user_id

        if apartment_changed:
            apartment = await self._get_apartment(changes["apartment_id"])
        else:
            apartment = booking.apartment
        if user_changed:
            await self._get_user(changes["user_id"])
        effective_user_id = changes.get("user_id", booking.user_id)

        if changes.get("user_type") == USER_TYPE_OWNER and effective_user_id != apartment.owner_id:
            raise TypeMismatchError(
                f"User {effective_user_id} does not own apartment {apartment.id}; "
                f"user_type must be '{USER_TYPE_RENTER}', but '{USER_TYPE_OWNER}' was provided."
            )

        if "user_type" not in changes and (apartment_changed or user_changed):
            changes["user_type"] = derive_user_type(effective_user_id, apartment)

        dates_changed = arrival != booking.arrival_date or leaving != booking.leaving_date
        effective_status = changes.get("status", booking.status)
        reactivated = booking.status == STATUS_CANCELLED and effective_status != STATUS_CANCELLED
        if effective_status != STATUS_CANCELLED and (apartment_changed or dates_changed or reactivated):
            await self.conflicts.check(apartment.id, arrival, leaving, exclude_booking_id=booking.id)

        for field, value in changes.items():
            setattr(booking, field, value)
        booking.updated_at = func.now()

        self.db.add(booking)
        await self.db.flush()

        logger.info("Updated booking %s by user %s: %s", booking.id, updated_by, sorted(changes))

        await self.status_view.refresh()
        return await self._reload(booking.id)

    async def set_status(self, booking_id: int, status: str, updated_by: int | None) -> Booking:
        """Move a booking to another status (check-in, check-out, cancel)."""
        return await self.update(booking_id, BookingUpdate(status=status), updated_by)

    async def delete(self, booking_id: int) -> None:
        """Delete a booking that no other record references.

        Raises:
            NotFoundError: The booking does not exist.
            HasDependenciesError: Utility readings, service requests,
                payments or emails still reference the booking.
        """
        booking = await self._get_booking(booking_id)

        blocking = []
        for label, model in DEPENDENT_RECORDS:
            result = await self.db.execute(
                select(func.count()).select_from(model).where(model.booking_id == booking_id)
            )
            if result.scalar_one() > 0:
                blocking.append(label)
        if blocking:
            raise HasDependenciesError(blocking)

        await self.db.delete(booking)
        await self.db.flush()
        logger.info("Deleted booking %s", booking_id)

        await self.status_view.refresh()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_booking(self, booking_id: int) -> Booking:
        booking = await self.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking")
        return booking

    async def _reload(self, booking_id: int) -> Booking:
        return await self._get_booking(booking_id)

    async def _get_apartment(self, apartment_id: int) -> Apartment:
        result = await self.db.execute(select(Apartment).where(Apartment.id == apartment_id))
        apartment = result.scalar_one_or_none()
        if apartment is None:
            raise NotFoundError("Apartment")
        return apartment

    async def _get_user(self, user_id: int) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User")
        return user


def _type_mismatch_message(expected: str, provided: str) -> str:
    reason = "owns this apartment" if expected == USER_TYPE_OWNER else "does not own this apartment"
    return (
        f"User type mismatch. User should have user_type '{expected}' for this apartment "
        f"({reason}), but '{provided}' was provided."
    )
