"""Booking model: tracks apartment stays by owners and renters."""

from datetime import date, datetime

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from propman.database import Base, IntegerPrimaryKeyMixin

STATUS_BOOKED = "Booked"
STATUS_CHECKED_IN = "Checked In"
STATUS_CHECKED_OUT = "Checked Out"
STATUS_CANCELLED = "Cancelled"

BOOKING_STATUSES = (STATUS_BOOKED, STATUS_CHECKED_IN, STATUS_CHECKED_OUT, STATUS_CANCELLED)

# Statuses that hold the apartment for occupancy purposes
OCCUPYING_STATUSES = (STATUS_BOOKED, STATUS_CHECKED_IN)

USER_TYPE_OWNER = "owner"
USER_TYPE_RENTER = "renter"

USER_TYPES = (USER_TYPE_OWNER, USER_TYPE_RENTER)


class Booking(IntegerPrimaryKeyMixin, Base):
    """A stay in an apartment between two calendar dates."""

    __tablename__ = "bookings"

    apartment_id: Mapped[int] = mapped_column(
        ForeignKey("apartments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    user_type: Mapped[str] = mapped_column(String(20), nullable=False)  # owner, renter
    number_of_people: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    leaving_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=STATUS_BOOKED,
        nullable=False,
        index=True,
    )  # Booked, Checked In, Checked Out, Cancelled
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    person_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    apartment: Mapped["Apartment"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    user: Mapped["User"] = relationship(foreign_keys=[user_id], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    creator: Mapped["User | None"] = relationship(foreign_keys=[created_by], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        Index("ix_bookings_apartment_dates", "apartment_id", "arrival_date", "leaving_date"),
        Index("ix_bookings_arrival_date", "arrival_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, apartment_id={self.apartment_id}, user_id={self.user_id}, "
            f"{self.arrival_date}..{self.leaving_date}, status={self.status!r})>"
        )
