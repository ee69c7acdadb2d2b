"""Pydantic v2 schemas for occupancy reports."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class ApartmentOccupancy(BaseModel):
    """Occupancy of a single apartment over the requested period."""

    apartment_id: int
    apartment_name: str
    village_name: str | None = None
    booked_days: int
    total_days: int
    occupancy_rate: Decimal  # percentage 0.00-100.00


class OccupancyReport(BaseModel):
    """Aggregate occupancy across all (or one village's) apartments."""

    start_date: date
    end_date: date
    total_days_in_period: int
    total_apartments: int
    total_booked_days: int = 0
    occupancy_rate: Decimal
    by_apartment: list[ApartmentOccupancy]
