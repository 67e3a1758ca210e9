"""Postgres access for hostelly (psycopg2, raw SQL).

Every write path runs inside txn(): one connection, one transaction,
commit on clean exit and rollback on any exception. Row locks taken with
for_update() are what serialize check-ins per room and transitions per
allocation.
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

Row = tuple[Any, ...]
Params = Sequence[Any] | None

_LOCK_MODES = {
    (False, False): " FOR UPDATE",
    (True, False): " FOR UPDATE NOWAIT",
    (False, True): " FOR UPDATE SKIP LOCKED",
}


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return any(token.startswith("password=") for token in dsn.split())


def get_conn() -> PgConnection:
    """Connect using DATABASE_URL (libpq key=value DSN or postgres:// URL).

    DB_PASSWORD is passed alongside the DSN only when the DSN has no
    password of its own.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    password = os.environ.get("DB_PASSWORD")
    if not password or _dsn_has_password(dsn):
        return psycopg2.connect(dsn)
    return psycopg2.connect(dsn, password=password)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Yield a cursor inside a single transaction.

    A connection opened here is closed on exit; a caller-supplied one is
    left open.
    """
    owned = conn is None
    if owned:
        conn = get_conn()
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owned:
            conn.close()


def fetchone(cur: PgCursor, query: str, params: Params = None) -> Row | None:
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(cur: PgCursor, query: str, params: Params = None) -> list[Row]:
    cur.execute(query, params)
    return cur.fetchall()


def for_update(
    cur: PgCursor,
    query: str,
    params: Params = None,
    *,
    nowait: bool = False,
    skip_locked: bool = False,
) -> Row | None:
    """Run a SELECT with a FOR UPDATE lock appended and return the first row.

    Must be called inside txn(); the lock holds until commit or rollback.
    nowait and skip_locked are mutually exclusive.
    """
    if nowait and skip_locked:
        raise ValueError("Cannot use both nowait and skip_locked")
    locked = query.rstrip().rstrip(";") + _LOCK_MODES[(nowait, skip_locked)]
    return fetchone(cur, locked, params)
