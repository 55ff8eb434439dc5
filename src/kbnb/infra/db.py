"""Database access layer using psycopg2.

Provides:
- get_conn(): Open a connection from DATABASE_URL
- txn(): Context manager for a short transaction
- lock_room(): Per-room exclusive row lock (SELECT ... FOR UPDATE)
- is_exclusion_violation(): Detect the reservations overlap constraint firing
- is_receipt_reuse(): Detect a receipt already recorded for another reservation
"""

import os
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

ROOM_OVERLAP_CONSTRAINT = "reservations_no_confirmed_overlap"
RECEIPT_UNIQUE_CONSTRAINT = "payments_receipt_id_key"


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        from urllib.parse import urlparse

        return bool(urlparse(dsn).password)
    return any(part.startswith("password=") for part in dsn.split())


def get_conn() -> PgConnection:
    """Open a new database connection from DATABASE_URL.

    DB_PASSWORD is passed separately when the DSN carries no password,
    so secrets can stay out of the URL.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    password = os.environ.get("DB_PASSWORD")
    if password and not _dsn_has_password(dsn):
        return psycopg2.connect(dsn, password=password)
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Run a block inside one transaction.

    Commits on normal exit and rolls back on any exception. A connection
    opened here is closed on exit; a caller-provided one is left open.

    Example:
        with txn() as cur:
            cur.execute("UPDATE reservations SET status = %s WHERE id = %s", ...)
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def lock_room(cur: PgCursor, room_id: int) -> bool:
    """Take the exclusive lock that serializes admissions for one room.

    Held until the surrounding transaction ends.

    Returns:
        False if the room row does not exist.
    """
    cur.execute("SELECT id FROM rooms WHERE id = %s FOR UPDATE", (room_id,))
    return cur.fetchone() is not None


def is_exclusion_violation(exc: BaseException) -> bool:
    """True if exc is the reservations overlap constraint rejecting a row."""
    if not isinstance(exc, pg_errors.ExclusionViolation):
        return False
    diag = getattr(exc, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    return constraint in (None, ROOM_OVERLAP_CONSTRAINT)


def is_receipt_reuse(exc: BaseException) -> bool:
    """True if exc is the payments receipt_id unique constraint rejecting a row."""
    if not isinstance(exc, pg_errors.UniqueViolation):
        return False
    diag = getattr(exc, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    return constraint in (None, RECEIPT_UNIQUE_CONSTRAINT)
