"""Service-layer error taxonomy.

Every error carries a machine-checkable ``kind`` and the HTTP status it maps
to when surfaced by the API. Services raise these and never swallow them;
the exception handler in ``propman.main`` renders them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import status

if TYPE_CHECKING:
    from propman.models.booking import Booking


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""

    kind: str = "ServiceError"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class MissingFieldsError(ServiceError):
    kind = "MissingFields"


class InvalidDateError(ServiceError):
    kind = "InvalidDate"


class DateOrderError(ServiceError):
    kind = "DateOrderError"


class TypeMismatchError(ServiceError):
    kind = "TypeMismatch"


class InvalidOperationError(ServiceError):
    kind = "InvalidOperation"


class NoChangesError(ServiceError):
    kind = "NoChanges"


class InvalidPageError(ServiceError):
    kind = "InvalidPage"


class InvalidLimitError(ServiceError):
    kind = "InvalidLimit"


class NotFoundError(ServiceError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class BookingConflictError(ServiceError):
    """Raised when active bookings already hold the apartment for the requested dates."""

    kind = "BookingConflict"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, conflicts: list[Booking]) -> None:
        details = ", ".join(
            f"Booking ID {b.id} ({_human_date(b.arrival_date)} to {_human_date(b.leaving_date)}, {b.status})"
            for b in conflicts
        )
        super().__init__(
            "Booking conflict detected. The apartment is already booked during the selected dates. "
            f"Conflicting with: {details}. "
            "Note: back-to-back bookings are allowed (a new booking can start on the same day another ends)."
        )
        self.conflicts = conflicts

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflicts"] = [
            {
                "id": b.id,
                "arrival_date": b.arrival_date.isoformat(),
                "leaving_date": b.leaving_date.isoformat(),
                "status": b.status,
            }
            for b in self.conflicts
        ]
        return data


class HasDependenciesError(ServiceError):
    kind = "HasDependencies"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, dependencies: list[str]) -> None:
        super().__init__(f"Cannot delete booking. It has related {', '.join(dependencies)}.")
        self.dependencies = dependencies

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["dependencies"] = self.dependencies
        return data


class ExportLimitExceededError(ServiceError):
    kind = "ExportLimitExceeded"
    status_code = 413  # Content Too Large

    def __init__(self, total: int, limit: int) -> None:
        super().__init__(
            f"Export would return {total} bookings, which exceeds the limit of {limit}. "
            "Narrow the filters and try again."
        )
        self.total = total
        self.limit = limit


def _human_date(value) -> str:
    # e.g. "Fri Mar 01 2024"
    return value.strftime("%a %b %d %Y")
