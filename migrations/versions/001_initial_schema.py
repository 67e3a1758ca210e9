"""Capacity data and members: hostels, room types, rooms, members, outbox.

processed_events backs the occupancy reconciler's per-allocation dedupe.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-28
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "001_initial.sql"

# Reverse dependency order.
_TABLES = ("processed_events", "outbox_events", "members", "rooms", "room_types", "hostels")


def upgrade() -> None:
    op.get_bind().exec_driver_sql(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    for table in _TABLES:
        op.execute(f"DROP TABLE IF EXISTS {table}")
