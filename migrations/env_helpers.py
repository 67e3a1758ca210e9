"""Database URL helpers for Alembic migrations.

The runtime connects with psycopg2, which accepts libpq key=value DSNs;
Alembic needs a SQLAlchemy URL. Kept apart from env.py so it can be tested
without triggering alembic.context at import time.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

_DRIVER_PREFIX = "postgresql+psycopg2://"


def parse_libpq_dsn(dsn: str) -> dict[str, str]:
    """Parse a libpq key=value DSN, handling single-quoted values."""
    tokens: dict[str, str] = {}
    i, n = 0, len(dsn)
    while i < n:
        while i < n and dsn[i] == " ":
            i += 1
        if i >= n:
            break
        eq = dsn.find("=", i)
        if eq == -1:
            break
        key = dsn[i:eq]
        i = eq + 1
        if i < n and dsn[i] == "'":
            i += 1
            chars: list[str] = []
            while i < n and dsn[i] != "'":
                if dsn[i] == "\\" and i + 1 < n:
                    i += 1
                chars.append(dsn[i])
                i += 1
            i += 1  # closing quote
            tokens[key] = "".join(chars)
        else:
            end = dsn.find(" ", i)
            end = n if end == -1 else end
            tokens[key] = dsn[i:end]
            i = end
    return tokens


def libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq DSN to a SQLAlchemy URL.

    DB_PASSWORD fills in a missing password. A host starting with "/" is a
    Unix socket directory and goes into the query string.
    """
    tokens = parse_libpq_dsn(dsn)

    if not tokens.get("password"):
        db_password = os.environ.get("DB_PASSWORD", "")
        if db_password:
            tokens["password"] = db_password

    user = quote_plus(tokens.get("user", ""))
    password = quote_plus(tokens.get("password", ""))
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")
    port = tokens.get("port", "5432")

    if host.startswith("/"):
        return f"{_DRIVER_PREFIX}{user}:{password}@/{dbname}?host={quote_plus(host)}"

    return f"{_DRIVER_PREFIX}{user}:{password}@{host}:{port}/{dbname}"


def database_url_from_env() -> str:
    """Resolve DATABASE_URL (DSN or URL) into a SQLAlchemy URL."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in url:
        return libpq_dsn_to_url(url)

    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            url = _DRIVER_PREFIX + url[len(scheme):]
            break

    db_password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if db_password and not parsed.password:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url
