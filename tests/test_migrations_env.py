"""Tests for the Alembic DATABASE_URL helpers."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Make migrations importable without alembic context
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from migrations.env_helpers import (  # noqa: E402
    database_url_from_env,
    libpq_dsn_to_url,
    parse_libpq_dsn,
)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


class TestParseLibpqDsn:
    def test_plain_tokens(self):
        assert parse_libpq_dsn("dbname=hostelly user=warden host=db") == {
            "dbname": "hostelly",
            "user": "warden",
            "host": "db",
        }

    def test_quoted_value_with_spaces(self):
        assert parse_libpq_dsn("password='front desk' user=u")["password"] == "front desk"

    def test_escaped_quote(self):
        assert parse_libpq_dsn(r"password='it\'s' user=u")["password"] == "it's"


class TestLibpqDsnToUrl:
    def test_unix_socket(self):
        dsn = "dbname=hostelly user=svc password=s3cret host=/var/run/postgresql"
        assert libpq_dsn_to_url(dsn) == (
            "postgresql+psycopg2://svc:s3cret@/hostelly?host=%2Fvar%2Frun%2Fpostgresql"
        )

    def test_tcp_host(self):
        dsn = "dbname=hostelly user=admin password=pw host=localhost port=5432"
        assert libpq_dsn_to_url(dsn) == "postgresql+psycopg2://admin:pw@localhost:5432/hostelly"

    def test_default_port(self):
        assert libpq_dsn_to_url("dbname=db user=u password=p host=myhost") == (
            "postgresql+psycopg2://u:p@myhost:5432/db"
        )

    def test_special_chars_encoded(self):
        result = libpq_dsn_to_url("dbname=db user=u@campus password=p@ss=word host=h")
        assert "u%40campus" in result
        assert "p%40ss%3Dword" in result

    def test_db_password_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        assert "from-env" in libpq_dsn_to_url("dbname=db user=u host=h")

    def test_db_password_env_not_used_when_dsn_has_password(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        result = libpq_dsn_to_url("dbname=db user=u password=from-dsn host=h")
        assert "from-dsn" in result
        assert "from-env" not in result


class TestDatabaseUrlFromEnv:
    def test_url_passthrough(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql+psycopg2://u:p@h/db"}):
            assert database_url_from_env() == "postgresql+psycopg2://u:p@h/db"

    def test_dsn_converted(self):
        with patch.dict(os.environ, {"DATABASE_URL": "dbname=hostelly user=u password=pw host=h"}):
            assert database_url_from_env() == "postgresql+psycopg2://u:pw@h:5432/hostelly"

    def test_missing_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL is required"):
                database_url_from_env()

    @pytest.mark.parametrize("scheme", ["postgres://", "postgresql://"])
    def test_scheme_gets_driver(self, scheme):
        with patch.dict(os.environ, {"DATABASE_URL": f"{scheme}u:p@h/db"}):
            assert database_url_from_env() == "postgresql+psycopg2://u:p@h/db"

    def test_url_db_password_fallback(self):
        env = {"DATABASE_URL": "postgresql://u@h:5433/db", "DB_PASSWORD": "secret"}
        with patch.dict(os.environ, env):
            assert database_url_from_env() == "postgresql+psycopg2://u:secret@h:5433/db"

    def test_already_has_driver_not_doubled(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql+psycopg2://u:p@h/db"}):
            assert database_url_from_env().count("+psycopg2") == 1


class TestMigrationChain:
    """The revision files form one linear chain over the SQL scripts."""

    def test_sql_files_present(self):
        names = sorted(p.name for p in (MIGRATIONS_DIR / "sql").glob("*.sql"))
        assert names == ["001_initial.sql", "002_allocations.sql"]

    def test_allocations_schema_guards_member_rule(self):
        sql = (MIGRATIONS_DIR / "sql" / "002_allocations.sql").read_text()
        assert "uq_allocations_member_occupying" in sql
        assert "WHERE status IN ('active', 'overstayed')" in sql

    def test_revisions_chain(self):
        text = (MIGRATIONS_DIR / "versions" / "002_allocations.py").read_text()
        assert 'down_revision = "001_initial_schema"' in text
