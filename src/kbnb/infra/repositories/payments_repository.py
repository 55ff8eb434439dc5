"""Payments repository - one row per verified receipt.

Uses raw SQL with psycopg2 (no ORM).
"""

from psycopg2.extensions import cursor as PgCursor

from kbnb.domain.models import PAYMENT_UNVERIFIED, PAYMENT_VERIFIED, Payment

VALID_STATUSES = {PAYMENT_UNVERIFIED, PAYMENT_VERIFIED}


def insert_payment(cur: PgCursor, *, reservation_id: int, payment: Payment) -> Payment:
    """Record the payment backing a reservation.

    receipt_id is UNIQUE: a receipt can pay for at most one reservation, so
    replaying a receipt fails with IntegrityError.

    Raises:
        ValueError: If payment.status is not a known status.
    """
    if payment.status not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {payment.status}. Must be one of {VALID_STATUSES}")

    cur.execute(
        """
        INSERT INTO payments (reservation_id, receipt_id, status)
        VALUES (%s, %s, %s)
        RETURNING id
        """,
        (reservation_id, payment.receipt_id, payment.status),
    )
    row = cur.fetchone()
    return Payment(receipt_id=payment.receipt_id, status=payment.status, id=row[0])


def receipt_in_use(cur: PgCursor, receipt_id: str) -> bool:
    """True if the receipt already backs a recorded reservation."""
    cur.execute("SELECT 1 FROM payments WHERE receipt_id = %s", (receipt_id,))
    return cur.fetchone() is not None
