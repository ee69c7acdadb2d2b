"""Utility reading model: electricity and water meter readings."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from propman.database import Base, IntegerPrimaryKeyMixin


class UtilityReading(IntegerPrimaryKeyMixin, Base):
    """Meter readings for an apartment over a period, optionally tied to a booking."""

    __tablename__ = "utility_readings"

    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    apartment_id: Mapped[int | None] = mapped_column(ForeignKey("apartments.id"), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    water_start_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    water_end_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    electricity_start_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    electricity_end_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
