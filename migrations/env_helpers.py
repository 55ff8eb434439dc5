"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without alembic.context.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlsplit, urlunsplit

from psycopg2.extensions import parse_dsn


def _dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN into a SQLAlchemy URL.

    A host starting with "/" is a unix socket directory and goes into the
    query string.
    """
    params = parse_dsn(dsn)
    password = params.get("password") or os.environ.get("DB_PASSWORD", "")

    user = quote_plus(params.get("user", ""))
    auth = f"{user}:{quote_plus(password)}" if password else user
    dbname = quote_plus(params.get("dbname", ""))
    host = params.get("host", "localhost")
    port = params.get("port", "5432")

    if host.startswith("/"):
        return f"postgresql+psycopg2://{auth}@/{dbname}?host={quote_plus(host)}"
    return f"postgresql+psycopg2://{auth}@{host}:{port}/{dbname}"


def _normalize_url(url: str) -> str:
    """Force the psycopg2 driver and inject DB_PASSWORD when the URL has none."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = "postgresql+psycopg2://" + url[len(prefix):]
            break

    db_password = os.environ.get("DB_PASSWORD", "")
    parts = urlsplit(url)
    if db_password and parts.password is None and parts.username:
        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
        netloc = f"{parts.username}:{quote_plus(db_password)}@{host}"
        url = urlunsplit(parts._replace(netloc=netloc))
    return url


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" in url:
        return _normalize_url(url)
    return _dsn_to_url(url)
