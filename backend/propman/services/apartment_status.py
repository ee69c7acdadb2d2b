"""Apartment status view: a materialized snapshot of who is in each apartment right now.

The view only exists on PostgreSQL. Booking writes call ``refresh()`` after
flushing; the refresh runs in a SAVEPOINT so a failure rolls back only the
refresh and never the booking write that triggered it.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from propman.config import settings

logger = logging.getLogger(__name__)

VIEW_NAME = "apartment_status_view"

CREATE_VIEW_SQL = f"""
CREATE MATERIALIZED VIEW IF NOT EXISTS {VIEW_NAME} AS
SELECT
  a.id AS apartment_id,
  CASE
    WHEN b.id IS NULL THEN 'Available'
    WHEN b.status = 'Booked' THEN 'Booked'
    WHEN b.user_type = 'owner' THEN 'Occupied by Owner'
    ELSE 'Occupied by Tenant'
  END AS status
FROM apartments a
LEFT JOIN LATERAL (
  SELECT * FROM bookings b
  WHERE b.apartment_id = a.id
    AND b.arrival_date <= CURRENT_DATE
    AND b.leaving_date > CURRENT_DATE
    AND b.status IN ('Booked', 'Checked In')
  ORDER BY b.arrival_date DESC
  LIMIT 1
) b ON TRUE
"""

CREATE_INDEX_SQL = f"CREATE UNIQUE INDEX IF NOT EXISTS ix_{VIEW_NAME}_apartment_id ON {VIEW_NAME} (apartment_id)"

REFRESH_VIEW_SQL = f"REFRESH MATERIALIZED VIEW {VIEW_NAME}"


def _supports_view(dialect_name: str) -> bool:
    return settings.apartment_status_view_enabled and dialect_name == "postgresql"


async def ensure_view(conn: AsyncConnection) -> None:
    """Create the materialized view and its index if the database supports them."""
    if not _supports_view(conn.dialect.name):
        logger.debug("Skipping %s creation on %s", VIEW_NAME, conn.dialect.name)
        return
    await conn.execute(text(CREATE_VIEW_SQL))
    await conn.execute(text(CREATE_INDEX_SQL))


class ApartmentStatusView:
    """Post-write hook that refreshes the apartment status view."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def refresh(self) -> bool:
        """Refresh the view; return ``False`` if it was skipped or failed.

        Failures are logged and swallowed: the view is a derived cache and is
        brought up to date again by the next successful refresh.
        """
        dialect = self.db.get_bind().dialect.name
        if not _supports_view(dialect):
            return False

        try:
            async with self.db.begin_nested():
                await self.db.execute(text(REFRESH_VIEW_SQL))
        except SQLAlchemyError:
            logger.warning("Failed to refresh %s; booking write kept", VIEW_NAME, exc_info=True)
            return False
        return True
