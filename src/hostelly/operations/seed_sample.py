"""Seed a database with two sample hostels, their rooms and residents.

Capacity data and members are inserted directly (idempotent upserts).
Allocations are replayed through the ledger so room occupancy is derived
exactly the way production derives it; members that already have
allocations are skipped, so running the seed twice is harmless.

Usage:
    DATABASE_URL=... python -m hostelly.operations.seed_sample
"""

import sys
from datetime import date

from hostelly.domain.allocations import check_in, check_out
from hostelly.domain.capacity import refresh_hostel_totals
from hostelly.infra.db import txn
from hostelly.observability.correlation import ensure_correlation_id
from hostelly.observability.logging import get_logger

logger = get_logger(__name__)

ROOM_TYPES = [
    ("single", 1, False, "Standard single occupancy room"),
    ("double", 2, False, "Standard shared room for two"),
    ("triple", 3, False, "Triple sharing room"),
    ("quad", 4, True, "Four-bed room with AC"),
    ("others", 2, True, "Special room - premium"),
]

HOSTELS = [
    ("ABH", "Aryabhatta Hostel", "Warden ABH", "Near Academic Block"),
    ("NRM", "Narmada Hostel", "Warden NRM", "Riverside Block"),
]

# (hostel short code, room number, floor, room type name)
ROOMS = [
    ("ABH", "101", 1, "single"),
    ("ABH", "102", 1, "double"),
    ("ABH", "201", 2, "triple"),
    ("ABH", "301", 3, "quad"),
    ("ABH", "G01", 0, "single"),
    ("NRM", "105", 1, "double"),
    ("NRM", "208", 2, "triple"),
    ("NRM", "312", 3, "quad"),
    ("NRM", "401", 4, "single"),
    ("NRM", "402", 4, "double"),
    ("ABH", "103", 1, "double"),
    ("ABH", "202", 2, "triple"),
]

# (member key, purpose of stay)
MEMBERS = [
    ("r01", "resident_student"),
    ("r02", "resident_student"),
    ("r03", "resident_student"),
    ("r04", "resident_student"),
    ("r05", "resident_student"),
    ("s01", "staff"),
    ("r06", "resident_student"),
    ("r07", "resident_student"),
    ("r08", "resident_student"),
    ("r09", "resident_student"),
    ("g01", "guest"),
]

# (member key, hostel, room number, check-in, check-out or None)
# Ordered by check-in so each member's history replays chronologically.
ALLOCATIONS = [
    ("r01", "ABH", "201", date(2024, 7, 10), date(2025, 5, 15)),
    ("r03", "ABH", "301", date(2025, 1, 10), date(2025, 5, 30)),
    ("r04", "NRM", "208", date(2025, 1, 12), None),
    ("r09", "ABH", "202", date(2025, 1, 15), None),
    ("r05", "NRM", "401", date(2025, 2, 1), None),
    ("r01", "ABH", "101", date(2025, 7, 15), None),
    ("r02", "ABH", "102", date(2025, 7, 16), None),
    ("r07", "ABH", "102", date(2025, 7, 21), None),
    ("r08", "NRM", "105", date(2025, 8, 1), None),
]


def _seed_capacity(cur) -> dict[tuple[str, str], int]:
    """Upsert room types, hostels and rooms. Returns (hostel, room_number) -> room id."""
    type_ids: dict[str, int] = {}
    for type_name, base_capacity, is_ac, description in ROOM_TYPES:
        cur.execute(
            """
            INSERT INTO room_types (type_name, base_capacity, is_ac, description)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (type_name, base_capacity) DO UPDATE SET updated_at = now()
            RETURNING id
            """,
            (type_name, base_capacity, is_ac, description),
        )
        type_ids[type_name] = cur.fetchone()[0]

    capacities = {t[0]: t[1] for t in ROOM_TYPES}

    hostel_ids: dict[str, int] = {}
    for short_code, name, warden, address in HOSTELS:
        cur.execute(
            """
            INSERT INTO hostels (short_code, name, warden_name, address)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (short_code) DO UPDATE SET updated_at = now()
            RETURNING id
            """,
            (short_code, name, warden, address),
        )
        hostel_ids[short_code] = cur.fetchone()[0]

    room_ids: dict[tuple[str, str], int] = {}
    for short_code, room_number, floor, type_name in ROOMS:
        cur.execute(
            """
            INSERT INTO rooms (hostel_id, room_type_id, room_number, floor, max_capacity)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (hostel_id, room_number) DO UPDATE SET updated_at = now()
            RETURNING id
            """,
            (hostel_ids[short_code], type_ids[type_name], room_number, floor, capacities[type_name]),
        )
        room_ids[(short_code, room_number)] = cur.fetchone()[0]

    return room_ids


def _seed_members(cur) -> dict[str, int]:
    member_ids: dict[str, int] = {}
    for key, purpose in MEMBERS:
        cur.execute(
            """
            INSERT INTO members (name, email, identification_number, purpose_of_stay)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (email) DO UPDATE SET updated_at = now()
            RETURNING id
            """,
            (f"Sample {key.upper()}", f"{key}@sample.invalid", f"SAMPLE-{key.upper()}", purpose),
        )
        member_ids[key] = cur.fetchone()[0]
    return member_ids


def _members_with_history(cur, member_ids: list[int]) -> set[int]:
    cur.execute(
        "SELECT DISTINCT member_id FROM allocations WHERE member_id = ANY(%s)",
        (member_ids,),
    )
    return {row[0] for row in cur.fetchall()}


def main() -> int:
    ensure_correlation_id()

    with txn() as cur:
        room_ids = _seed_capacity(cur)
        member_ids = _seed_members(cur)
        seeded = _members_with_history(cur, list(member_ids.values()))

    replayed = 0
    for key, short_code, room_number, check_in_on, check_out_on in ALLOCATIONS:
        member_id = member_ids[key]
        if member_id in seeded:
            continue
        allocation = check_in(
            member_id=member_id,
            room_id=room_ids[(short_code, room_number)],
            check_in_at=check_in_on,
            allocated_by="seed",
        )
        if check_out_on is not None:
            check_out(allocation_id=allocation["id"], check_out_at=check_out_on)
        replayed += 1

    with txn() as cur:
        cur.execute("SELECT id FROM hostels WHERE short_code = ANY(%s)", ([h[0] for h in HOSTELS],))
        hostel_ids = [row[0] for row in cur.fetchall()]
    for hostel_id in hostel_ids:
        refresh_hostel_totals(hostel_id)

    logger.info(
        "sample data seeded",
        extra={
            "extra_fields": {
                "rooms": len(room_ids),
                "members": len(member_ids),
                "allocations_replayed": replayed,
            }
        },
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
