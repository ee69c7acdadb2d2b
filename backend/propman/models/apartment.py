"""Apartment model: the bookable inventory."""

from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from propman.database import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Apartment(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """An apartment inside a village, registered to a single owner."""

    __tablename__ = "apartments"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    village_id: Mapped[int] = mapped_column(
        ForeignKey("villages.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    phase: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    paying_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sales_status: Mapped[str] = mapped_column(String(50), default="for sale")  # for sale, not for sale
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    village: Mapped["Village"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    owner: Mapped["User"] = relationship(foreign_keys=[owner_id], lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    def __repr__(self) -> str:
        return f"<Apartment(id={self.id}, name={self.name!r}, village_id={self.village_id}, owner_id={self.owner_id})>"
