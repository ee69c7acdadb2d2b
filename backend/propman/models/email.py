"""Email model: correspondence logged against a booking."""

from datetime import date

from sqlalchemy import Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from propman.database import Base, IntegerPrimaryKeyMixin


class Email(IntegerPrimaryKeyMixin, Base):
    """A logged email (stored only; delivery happens elsewhere)."""

    __tablename__ = "emails"

    booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    sent_date: Mapped[date] = mapped_column(Date, nullable=False)
    from_address: Mapped[str] = mapped_column(String(255), nullable=False)
    to_address: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
