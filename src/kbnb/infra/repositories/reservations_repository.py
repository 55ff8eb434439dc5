"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from kbnb.domain.models import STATUS_CANCELLED, STATUS_CONFIRMED, Reservation

_COLUMNS = (
    "id, room_id, user_id, check_in, check_out, guest_count, total_cost, "
    "status, receipt_id, cancel_reason, created_at"
)


def _row_to_reservation(row: tuple) -> Reservation:
    return Reservation(
        id=row[0],
        room_id=row[1],
        user_id=row[2],
        check_in=row[3],
        check_out=row[4],
        guest_count=row[5],
        total_cost=row[6],
        status=row[7],
        receipt_id=row[8],
        cancel_reason=row[9],
        created_at=row[10],
    )


def get_reservation(cur: PgCursor, reservation_id: int) -> Reservation | None:
    cur.execute(
        f"SELECT {_COLUMNS} FROM reservations WHERE id = %s",
        (reservation_id,),
    )
    row = cur.fetchone()
    return _row_to_reservation(row) if row is not None else None


def list_room_reservations(
    cur: PgCursor,
    room_id: int,
    *,
    statuses: tuple[str, ...] = (STATUS_CONFIRMED,),
) -> list[Reservation]:
    """All reservations of a room in the given statuses, ordered by check-in."""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE room_id = %s AND status = ANY(%s::reservation_status[])
        ORDER BY check_in, id
        """,
        (room_id, list(statuses)),
    )
    return [_row_to_reservation(row) for row in cur.fetchall()]


def insert_reservation(cur: PgCursor, reservation: Reservation) -> Reservation:
    """Insert a reservation and return it with id and created_at filled in.

    The reservations_no_confirmed_overlap exclusion constraint rejects a
    confirmed row overlapping another confirmed row of the same room.
    """
    cur.execute(
        """
        INSERT INTO reservations (
            room_id, user_id, check_in, check_out,
            guest_count, total_cost, status, receipt_id
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id, created_at
        """,
        (
            reservation.room_id,
            reservation.user_id,
            reservation.check_in,
            reservation.check_out,
            reservation.guest_count,
            reservation.total_cost,
            reservation.status,
            reservation.receipt_id,
        ),
    )
    row = cur.fetchone()
    return Reservation(
        id=row[0],
        created_at=row[1],
        room_id=reservation.room_id,
        user_id=reservation.user_id,
        check_in=reservation.check_in,
        check_out=reservation.check_out,
        guest_count=reservation.guest_count,
        total_cost=reservation.total_cost,
        status=reservation.status,
        receipt_id=reservation.receipt_id,
    )


def mark_cancelled(cur: PgCursor, reservation_id: int, *, reason: str) -> bool:
    """Flip confirmed -> cancelled. False if the row was not confirmed."""
    cur.execute(
        """
        UPDATE reservations
        SET status = %s, cancel_reason = %s, updated_at = now()
        WHERE id = %s AND status = %s
        RETURNING id
        """,
        (STATUS_CANCELLED, reason, reservation_id, STATUS_CONFIRMED),
    )
    return cur.fetchone() is not None


def list_user_reservations(
    cur: PgCursor,
    user_id: int,
    *,
    limit: int,
    offset: int,
) -> list[Reservation]:
    """A user's non-cancelled reservations, newest check-in first.

    id breaks ties so pages never overlap or skip rows.
    """
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE user_id = %s AND status != %s
        ORDER BY check_in DESC, id DESC
        LIMIT %s OFFSET %s
        """,
        (user_id, STATUS_CANCELLED, limit, offset),
    )
    return [_row_to_reservation(row) for row in cur.fetchall()]


def count_user_reservations(cur: PgCursor, user_id: int) -> int:
    cur.execute(
        "SELECT count(*) FROM reservations WHERE user_id = %s AND status != %s",
        (user_id, STATUS_CANCELLED),
    )
    return cur.fetchone()[0]
