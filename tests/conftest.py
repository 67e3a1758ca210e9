"""Shared pytest fixtures for Hostelly tests.

DB-backed fixtures need a migrated Postgres at DATABASE_URL; tests that use
them are marked with helpers.requires_db and skip otherwise.
"""
import sys
sys.dont_write_bytecode = True

import uuid  # noqa: E402

import pytest  # noqa: E402

_TYPE_NAMES = {1: "single", 2: "double", 3: "triple", 4: "quad"}


class Fixtures:
    """Creates hostels, rooms and members for one test and removes them after."""

    def __init__(self) -> None:
        self.tag = uuid.uuid4().hex[:8]
        self.hostel_ids: list[int] = []
        self.member_ids: list[int] = []

    def hostel(self) -> int:
        from hostelly.infra.db import txn

        with txn() as cur:
            cur.execute(
                """
                INSERT INTO hostels (name, short_code, warden_name, address)
                VALUES (%s, %s, %s, %s)
                RETURNING id
                """,
                (
                    f"Test Hostel {self.tag}",
                    f"T{self.tag}{len(self.hostel_ids)}",
                    "Warden",
                    "Campus",
                ),
            )
            hostel_id = cur.fetchone()[0]
        self.hostel_ids.append(hostel_id)
        return hostel_id

    def room(
        self,
        *,
        max_capacity: int = 1,
        status: str = "available",
        hostel_id: int | None = None,
    ) -> int:
        from hostelly.infra.db import txn

        if hostel_id is None:
            hostel_id = self.hostel_ids[0] if self.hostel_ids else self.hostel()
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO room_types (type_name, base_capacity)
                VALUES (%s, %s)
                ON CONFLICT (type_name, base_capacity) DO UPDATE SET updated_at = now()
                RETURNING id
                """,
                (_TYPE_NAMES[max_capacity], max_capacity),
            )
            room_type_id = cur.fetchone()[0]
            cur.execute(
                """
                INSERT INTO rooms (hostel_id, room_type_id, room_number, max_capacity, status)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
                """,
                (hostel_id, room_type_id, f"R{uuid.uuid4().hex[:6]}", max_capacity, status),
            )
            return cur.fetchone()[0]

    def member(self, *, is_active: bool = True) -> int:
        from hostelly.infra.db import txn

        key = uuid.uuid4().hex[:10]
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO members (name, email, identification_number, is_active)
                VALUES (%s, %s, %s, %s)
                RETURNING id
                """,
                (f"Member {key}", f"{key}@test.invalid", f"ID-{key}", is_active),
            )
            member_id = cur.fetchone()[0]
        self.member_ids.append(member_id)
        return member_id

    def cleanup(self) -> None:
        from hostelly.infra.db import txn

        with txn() as cur:
            cur.execute(
                "SELECT id FROM allocations WHERE member_id = ANY(%s)",
                (self.member_ids,),
            )
            allocation_ids = [str(row[0]) for row in cur.fetchall()]
            cur.execute(
                "DELETE FROM processed_events WHERE external_id = ANY(%s)",
                (allocation_ids,),
            )
            cur.execute(
                """
                DELETE FROM outbox_events
                WHERE aggregate_type = 'allocation' AND aggregate_id = ANY(%s)
                """,
                (allocation_ids,),
            )
            cur.execute("DELETE FROM allocations WHERE member_id = ANY(%s)", (self.member_ids,))
            cur.execute("DELETE FROM members WHERE id = ANY(%s)", (self.member_ids,))
            cur.execute("DELETE FROM rooms WHERE hostel_id = ANY(%s)", (self.hostel_ids,))
            cur.execute("DELETE FROM hostels WHERE id = ANY(%s)", (self.hostel_ids,))


@pytest.fixture
def db():
    """Per-test DB data factory; removes everything it created afterwards."""
    fixtures = Fixtures()
    yield fixtures
    fixtures.cleanup()
