"""Allocation ledger with partial unique index on occupying allocations.

The one-live-allocation-per-member rule cannot be a plain composite unique
key over (member_id, status): completed and cancelled rows for the same
member pile up. A partial unique index scoped to the occupying statuses
enforces it at commit instead.

Revision ID: 002_allocations
Revises: 001_initial_schema
Create Date: 2026-09-28
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_allocations"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "002_allocations.sql"


def upgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS allocations CASCADE")
