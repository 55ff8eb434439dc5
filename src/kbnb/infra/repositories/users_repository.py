"""Users repository - account lookups and profile updates.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from kbnb.domain.models import User

_COLUMNS = "id, email, name, birth, email_verified, image_url"


def _row_to_user(row: tuple) -> User:
    return User(
        id=row[0],
        email=row[1],
        name=row[2],
        birth=row[3],
        email_verified=bool(row[4]),
        image_url=row[5],
    )


def get_user(cur: PgCursor, user_id: int) -> User | None:
    cur.execute(f"SELECT {_COLUMNS} FROM users WHERE id = %s", (user_id,))
    row = cur.fetchone()
    return _row_to_user(row) if row is not None else None


def email_in_use(cur: PgCursor, email: str, *, exclude_user_id: int | None = None) -> bool:
    """True if another account already uses email (case-insensitive)."""
    if exclude_user_id is None:
        cur.execute("SELECT 1 FROM users WHERE lower(email) = lower(%s)", (email,))
    else:
        cur.execute(
            "SELECT 1 FROM users WHERE lower(email) = lower(%s) AND id != %s",
            (email, exclude_user_id),
        )
    return cur.fetchone() is not None


def update_profile(
    cur: PgCursor,
    user_id: int,
    *,
    email: str,
    name: str,
    birth: date | None,
) -> User | None:
    """Overwrite email/name/birth. Returns the updated user, None if missing."""
    cur.execute(
        f"""
        UPDATE users
        SET email = %s, name = %s, birth = %s, updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (email, name, birth, user_id),
    )
    row = cur.fetchone()
    return _row_to_user(row) if row is not None else None
