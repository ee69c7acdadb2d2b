"""Payment model: money received against a booking or apartment."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from propman.database import Base, IntegerPrimaryKeyMixin


class Payment(IntegerPrimaryKeyMixin, Base):
    """A payment, optionally linked to the booking it settles."""

    __tablename__ = "payments"

    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    apartment_id: Mapped[int | None] = mapped_column(ForeignKey("apartments.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EGP")
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
