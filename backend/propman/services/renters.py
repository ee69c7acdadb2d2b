"""Walk-in renter resolution: find or create a renter user from a free-text name."""

import logging
import random
import re
import time
from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propman.auth.passwords import hash_password
from propman.config import settings
from propman.models.user import ROLE_RENTER, User
from propman.services.errors import InvalidOperationError

logger = logging.getLogger(__name__)

MAX_EMAIL_ATTEMPTS = 5


def placeholder_email(name: str, domain: str | None = None) -> str:
    """Build a placeholder address from the name, a millisecond timestamp and a random suffix."""
    clean = re.sub(r"[^a-z0-9]", "", name.lower()) or "renter"
    timestamp = int(time.time() * 1000)
    suffix = random.randint(0, 9999)
    return f"{clean}{timestamp}{suffix}@{domain or settings.renter_email_domain}"


class RenterResolver:
    """Resolves a renter by exact (trimmed) name, creating one when none exists.

    ``email_factory`` produces candidate addresses; a candidate that is already
    taken is re-rolled up to ``max_attempts`` times.
    """

    def __init__(
        self,
        db: AsyncSession,
        email_factory: Callable[[str], str] = placeholder_email,
        max_attempts: int = MAX_EMAIL_ATTEMPTS,
    ) -> None:
        self.db = db
        self.email_factory = email_factory
        self.max_attempts = max_attempts

    async def resolve_or_create(self, name: str) -> User:
        clean_name = name.strip()
        if not clean_name:
            raise InvalidOperationError("user_name must not be blank")

        result = await self.db.execute(
            select(User)
            .where(User.name == clean_name, User.role == ROLE_RENTER)
            .order_by(User.id)
            .limit(1)
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing

        user = User(
            name=clean_name,
            email=await self._unique_email(clean_name),
            role=ROLE_RENTER,
            hashed_password=hash_password(settings.renter_default_password),
            is_active=True,
        )
        self.db.add(user)
        await self.db.flush()
        logger.info("Created walk-in renter %s (%s)", user.id, clean_name)
        return user

    async def _unique_email(self, name: str) -> str:
        for _ in range(self.max_attempts):
            candidate = self.email_factory(name)
            result = await self.db.execute(select(User.id).where(User.email == candidate))
            if result.scalar_one_or_none() is None:
                return candidate
            logger.debug("Placeholder email %s already taken, re-rolling", candidate)
        raise InvalidOperationError(f"Could not generate a unique email for renter {name!r}")
