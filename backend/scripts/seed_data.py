"""Seed the database with sample villages, apartments, users and bookings.

Creates the schema (and the apartment status view on PostgreSQL) if missing,
then wipes and re-creates the demo data. Bookings go through
``BookingService`` so they obey the same conflict rules as the API.

Run from the backend directory:
    python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete

from propman.auth.passwords import hash_password
from propman.database import Base, async_session_factory, engine
from propman.models import Apartment, Booking, Email, Payment, ServiceRequest, User, UtilityReading, Village
from propman.models.user import ROLE_ADMIN, ROLE_OWNER, ROLE_RENTER, ROLE_SUPER_ADMIN
from propman.schemas.booking import BookingCreate
from propman.services.apartment_status import ensure_view
from propman.services.booking_service import BookingService
from propman.services.dates import utc_today
from propman.services.errors import BookingConflictError

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_PASSWORD = "demo1234"

VILLAGES = [
    {"name": "Sunrise Bay", "phases": 3},
    {"name": "Palm Hills", "phases": 2},
]

STAFF = [
    {"name": "Super Admin", "email": "admin@propman.dev", "role": ROLE_SUPER_ADMIN, "village": None},
    {"name": "Sunrise Bay Office", "email": "sunrise@propman.dev", "role": ROLE_ADMIN, "village": "Sunrise Bay"},
]

OWNERS = [
    {"name": "Mona Fathy", "email": "mona@propman.dev", "phone_number": "+20 100 000 0001"},
    {"name": "Omar Saleh", "email": "omar@propman.dev", "phone_number": "+20 100 000 0002"},
]

RENTERS = [
    {"name": "Laura Schmidt", "email": "laura@propman.dev"},
    {"name": "Ahmed Tarek", "email": "ahmed@propman.dev"},
]

# (name, village, phase, owner index)
APARTMENTS = [
    ("SB-101", "Sunrise Bay", 1, 0),
    ("SB-102", "Sunrise Bay", 1, 1),
    ("SB-205", "Sunrise Bay", 2, 0),
    ("PH-12", "Palm Hills", 1, 1),
]

# (apartment index, occupant, arrival offset from today, nights, status)
BOOKINGS = [
    (0, "owner", -20, 7, "Checked Out"),
    (0, "renter:0", -3, 6, "Checked In"),
    (0, "renter:1", 3, 4, "Booked"),  # back-to-back with the stay above
    (1, "owner", 10, 14, "Booked"),
    (2, "walk-in:Nour Adel", -1, 3, "Checked In"),
    (3, "renter:1", 30, 5, "Booked"),
    (3, "renter:0", 32, 2, "Booked"),  # overlaps, rejected
]


async def _create_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await ensure_view(conn)


async def seed() -> None:
    """Populate the database with demo data. Idempotent: existing data is wiped first."""
    await _create_schema()

    async with async_session_factory() as session:
        for model in (UtilityReading, ServiceRequest, Payment, Email, Booking, Apartment, User, Village):
            await session.execute(delete(model))
        await session.flush()

        # ------------------------------------------------------------------
        # 1. Villages
        # ------------------------------------------------------------------
        villages: dict[str, Village] = {}
        for data in VILLAGES:
            village = Village(**data)
            session.add(village)
            villages[village.name] = village
        await session.flush()
        print(f"✅ Created {len(villages)} villages")

        # ------------------------------------------------------------------
        # 2. Users
        # ------------------------------------------------------------------
        password_hash = hash_password(DEMO_PASSWORD)
        for data in STAFF:
            village = villages.get(data["village"]) if data["village"] else None
            session.add(
                User(
                    name=data["name"],
                    email=data["email"],
                    role=data["role"],
                    hashed_password=password_hash,
                    responsible_village_id=village.id if village else None,
                )
            )
        owners = [User(role=ROLE_OWNER, hashed_password=password_hash, **data) for data in OWNERS]
        renters = [User(role=ROLE_RENTER, hashed_password=password_hash, **data) for data in RENTERS]
        session.add_all(owners + renters)
        await session.flush()
        print(f"✅ Created {len(STAFF) + len(owners) + len(renters)} users")

        # ------------------------------------------------------------------
        # 3. Apartments
        # ------------------------------------------------------------------
        apartments: list[Apartment] = []
        for name, village_name, phase, owner_index in APARTMENTS:
            apartment = Apartment(
                name=name,
                village_id=villages[village_name].id,
                phase=phase,
                owner_id=owners[owner_index].id,
            )
            session.add(apartment)
            apartments.append(apartment)
        await session.flush()
        print(f"✅ Created {len(apartments)} apartments")

        # ------------------------------------------------------------------
        # 4. Bookings
        # ------------------------------------------------------------------
        service = BookingService(session)
        today = utc_today()
        created = 0
        for apartment_index, occupant, offset, nights, status in BOOKINGS:
            apartment = apartments[apartment_index]
            arrival = today + timedelta(days=offset)
            data = BookingCreate(
                apartment_id=apartment.id,
                arrival_date=arrival,
                leaving_date=arrival + timedelta(days=nights),
                status=status,
            )
            if occupant == "owner":
                data.user_id = apartment.owner_id
            elif occupant.startswith("renter:"):
                data.user_id = renters[int(occupant.split(":")[1])].id
            else:
                data.user_name = occupant.split(":", 1)[1]

            try:
                booking = await service.create(data, created_by=None)
            except BookingConflictError as exc:
                print(f"   ⛔ {apartment.name} {arrival}: {exc.message}")
                continue
            created += 1
            print(f"   🏠 {apartment.name}: {booking.arrival_date} → {booking.leaving_date} ({booking.status})")

        await session.commit()

    print(f"✅ Created {created} bookings")
    print()
    print("=" * 60)
    print(f"🎉 Done! Log in as admin@propman.dev / {DEMO_PASSWORD} at /api/v1/auth/login")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
