"""Village model: a gated compound made up of apartments in phases."""

from decimal import Decimal

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from propman.database import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Village(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A village with its utility tariffs and number of construction phases."""

    __tablename__ = "villages"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    electricity_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    water_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    phases: Mapped[int] = mapped_column(Integer, default=1)

    def __repr__(self) -> str:
        return f"<Village(id={self.id}, name={self.name!r})>"
