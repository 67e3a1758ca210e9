"""Tests for database layer."""

import os
from unittest.mock import MagicMock, patch

import pytest

from helpers import requires_db


class TestGetConnPasswordFallback:
    """DB_PASSWORD fallback in get_conn() - no real DB needed."""

    def test_db_password_fallback_dsn_without_password(self):
        from hostelly.infra.db import get_conn

        env = {"DATABASE_URL": "dbname=db user=u host=h port=5432", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hostelly.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "dbname=db user=u host=h port=5432",
                password="from-env",
            )

    def test_db_password_not_used_when_dsn_has_password(self):
        from hostelly.infra.db import get_conn

        env = {"DATABASE_URL": "dbname=db user=u password=from-dsn host=h", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hostelly.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("dbname=db user=u password=from-dsn host=h")

    def test_db_password_fallback_url_without_password(self):
        from hostelly.infra.db import get_conn

        env = {"DATABASE_URL": "postgres://u@h/db", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hostelly.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u@h/db", password="from-env")

    def test_db_password_not_used_when_url_has_password(self):
        from hostelly.infra.db import get_conn

        env = {"DATABASE_URL": "postgres://u:p@h/db", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("hostelly.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u:p@h/db")

    def test_missing_database_url(self):
        from hostelly.infra.db import get_conn

        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxnWithMockConnection:
    def test_commits_on_success(self):
        from hostelly.infra.db import txn

        conn = MagicMock()
        with txn(conn) as cur:
            cur.execute("SELECT 1")

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_not_called()

    def test_rolls_back_and_reraises(self):
        from hostelly.infra.db import txn

        conn = MagicMock()
        with pytest.raises(ValueError):
            with txn(conn):
                raise ValueError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_owned_connection_closed(self):
        from hostelly.infra.db import txn

        conn = MagicMock()
        with patch("hostelly.infra.db.get_conn", return_value=conn):
            with txn():
                pass
        conn.close.assert_called_once()


class TestForUpdate:
    def test_appends_clause(self):
        from hostelly.infra.db import for_update

        cur = MagicMock()
        cur.fetchone.return_value = (1,)

        row = for_update(cur, "SELECT id FROM rooms WHERE id = %s;", (1,))

        assert row == (1,)
        cur.execute.assert_called_once_with("SELECT id FROM rooms WHERE id = %s FOR UPDATE", (1,))

    def test_nowait(self):
        from hostelly.infra.db import for_update

        cur = MagicMock()
        for_update(cur, "SELECT 1", nowait=True)
        assert cur.execute.call_args.args[0].endswith("FOR UPDATE NOWAIT")

    def test_skip_locked(self):
        from hostelly.infra.db import for_update

        cur = MagicMock()
        for_update(cur, "SELECT 1", skip_locked=True)
        assert cur.execute.call_args.args[0].endswith("FOR UPDATE SKIP LOCKED")

    def test_both_flags_rejected(self):
        from hostelly.infra.db import for_update

        with pytest.raises(ValueError):
            for_update(MagicMock(), "SELECT 1", nowait=True, skip_locked=True)


@requires_db
class TestTxnAgainstDatabase:
    """txn() against a real Postgres."""

    def test_commits_on_success(self):
        from hostelly.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_txn (id serial, val text)")
            conn.commit()

            with txn(conn) as cur:
                cur.execute("INSERT INTO test_txn (val) VALUES (%s)", ("kept",))

            with conn.cursor() as cur:
                cur.execute("SELECT val FROM test_txn")
                assert cur.fetchone()[0] == "kept"
        finally:
            conn.close()

    def test_rolls_back_on_exception(self):
        from hostelly.infra.db import get_conn, txn

        conn = get_conn()
        try:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_txn_rb (id serial, val text)")
            conn.commit()

            with pytest.raises(RuntimeError):
                with txn(conn) as cur:
                    cur.execute("INSERT INTO test_txn_rb (val) VALUES (%s)", ("lost",))
                    raise RuntimeError("abort")

            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM test_txn_rb")
                assert cur.fetchone()[0] == 0
        finally:
            conn.close()
