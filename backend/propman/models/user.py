"""User model: admins, apartment owners and renters."""

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from propman.database import Base, IntegerPrimaryKeyMixin, TimestampMixin

ROLE_SUPER_ADMIN = "super_admin"
ROLE_ADMIN = "admin"
ROLE_OWNER = "owner"
ROLE_RENTER = "renter"

ADMIN_ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN)


class User(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A system user. Admins may be scoped to a single responsible village."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(String(50), default=ROLE_RENTER, nullable=False)
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    responsible_village_id: Mapped[int | None] = mapped_column(
        ForeignKey("villages.id", ondelete="SET NULL"),
        nullable=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
