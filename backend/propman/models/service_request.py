"""Service request model: maintenance or housekeeping jobs."""

from datetime import datetime

from sqlalchemy import ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from propman.database import Base, IntegerPrimaryKeyMixin


class ServiceRequest(IntegerPrimaryKeyMixin, Base):
    """A service job raised for an apartment, optionally during a booking."""

    __tablename__ = "service_requests"

    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    apartment_id: Mapped[int | None] = mapped_column(ForeignKey("apartments.id"), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="Open")  # Open, In Progress, Done
    date_created: Mapped[datetime] = mapped_column(server_default=func.now())
