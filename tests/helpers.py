"""Shared test helpers (not fixtures).

- RSA keys and signed tokens for auth tests
- FakeGateway: scriptable PaymentGateway that records calls
- InMemoryReservations: stand-in for the reservation/payment repositories
- mock_txn: txn() replacement yielding a MagicMock cursor
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from psycopg2 import errors as pg_errors

from kbnb.domain.models import (
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    Location,
    Payment,
    Reservation,
    Room,
    User,
)
from kbnb.payments.contracts import CancelResult, PaymentGatewayError, ReceiptVerification


# ── auth ────────────────────────────────────────────────────────────────


def generate_rsa_keypair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key, private_key.public_key()


def public_key_pem(public_key) -> str:
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


def create_token(
    private_key,
    sub: str = "1",
    exp: int | None = None,
    iss: str | None = None,
    aud: str | None = None,
) -> str:
    now = int(time.time())
    payload: dict = {
        "sub": sub,
        "iat": now,
        "exp": exp if exp is not None else now + 3600,
    }
    if iss:
        payload["iss"] = iss
    if aud:
        payload["aud"] = aud
    return jwt.encode(payload, private_key, algorithm="RS256")


# ── payment gateway ─────────────────────────────────────────────────────


class FakeGateway:
    """PaymentGateway double.

    Args:
        confirmed: What verify_receipt reports.
        token_error / verify_error / cancel_error: Raised by the matching call.
        cancel_result: Returned by cancel (default: success).
    """

    def __init__(
        self,
        *,
        confirmed: bool = True,
        token_error: Exception | None = None,
        verify_error: Exception | None = None,
        cancel_result: CancelResult | None = None,
        cancel_error: Exception | None = None,
    ) -> None:
        self.confirmed = confirmed
        self.token_error = token_error
        self.verify_error = verify_error
        self.cancel_result = cancel_result or CancelResult(success=True)
        self.cancel_error = cancel_error
        self.token_calls = 0
        self.verified: list[tuple[str, str]] = []
        self.cancelled: list[tuple[str, str, str | None]] = []

    def get_access_token(self) -> str:
        self.token_calls += 1
        if self.token_error is not None:
            raise self.token_error
        return "token-abc"

    def verify_receipt(self, receipt_id: str, token: str) -> ReceiptVerification:
        self.verified.append((receipt_id, token))
        if self.verify_error is not None:
            raise self.verify_error
        return ReceiptVerification(
            receipt_id=receipt_id,
            confirmed=self.confirmed,
            amount=None,
            status="paid" if self.confirmed else "ready",
        )

    def cancel(self, receipt_id: str, reason: str, *, name: str | None = None) -> CancelResult:
        self.cancelled.append((receipt_id, reason, name))
        if self.cancel_error is not None:
            raise self.cancel_error
        return self.cancel_result


def gateway_down() -> PaymentGatewayError:
    return PaymentGatewayError("payment gateway timed out on request/token.json")


# ── persistence ─────────────────────────────────────────────────────────


@contextmanager
def mock_txn():
    """txn() replacement that yields a MagicMock cursor."""
    yield MagicMock()


def make_user(user_id: int = 1, name: str = "guest") -> User:
    return User(id=user_id, email=f"{name}{user_id}@example.com", name=name)


def make_room(room_id: int = 10, host_id: int = 99) -> Room:
    return Room(
        id=room_id,
        name="Seaside cabin",
        host_id=host_id,
        host_name="Host",
        host_image_url="https://img.example.com/host.png",
        image_url="https://img.example.com/room.png",
        bed_num=3,
        bedroom_num=2,
        bathroom_num=1,
        is_parking=True,
        is_smoking=False,
        location=Location(
            country="Korea",
            city="Seoul",
            borough="Mapo-gu",
            neighborhood="Hapjeong-dong",
            detail_address="12-3",
            latitude=37.55,
            longitude=126.91,
        ),
    )


class InMemoryReservations:
    """Reservation + payment repositories backed by a dict.

    Method signatures match kbnb.infra.repositories so instances can be
    patched in place of the module functions.
    """

    def __init__(self) -> None:
        self.rows: dict[int, Reservation] = {}
        self.payments: list[tuple[int, Payment]] = []
        self._next_id = 1

    def add(
        self,
        *,
        room_id: int = 10,
        user_id: int = 1,
        check_in: date,
        check_out: date,
        status: str = STATUS_CONFIRMED,
        receipt_id: str | None = None,
    ) -> Reservation:
        reservation = Reservation(
            room_id=room_id,
            user_id=user_id,
            check_in=check_in,
            check_out=check_out,
            guest_count=2,
            total_cost=100000,
            status=status,
            receipt_id=receipt_id or f"receipt-{self._next_id:04d}",
        )
        return self.insert_reservation(None, reservation)

    def list_room_reservations(self, cur, room_id, *, statuses=(STATUS_CONFIRMED,)):
        rows = [r for r in self.rows.values() if r.room_id == room_id and r.status in statuses]
        return sorted(rows, key=lambda r: (r.check_in, r.id))

    def insert_reservation(self, cur, reservation):
        saved = replace(
            reservation,
            id=self._next_id,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        self.rows[saved.id] = saved
        self._next_id += 1
        return saved

    def insert_payment(self, cur, *, reservation_id, payment):
        if self.receipt_in_use(cur, payment.receipt_id):
            raise pg_errors.UniqueViolation("duplicate key value violates unique constraint")
        saved = replace(payment, id=len(self.payments) + 1)
        self.payments.append((reservation_id, saved))
        return saved

    def receipt_in_use(self, cur, receipt_id):
        return any(p.receipt_id == receipt_id for _, p in self.payments)

    def get_reservation(self, cur, reservation_id):
        return self.rows.get(reservation_id)

    def mark_cancelled(self, cur, reservation_id, *, reason):
        row = self.rows.get(reservation_id)
        if row is None or row.status != STATUS_CONFIRMED:
            return False
        self.rows[reservation_id] = replace(row, status=STATUS_CANCELLED, cancel_reason=reason)
        return True

    def _active_for_user(self, user_id):
        rows = [r for r in self.rows.values() if r.user_id == user_id and r.status != STATUS_CANCELLED]
        return sorted(rows, key=lambda r: (r.check_in, r.id), reverse=True)

    def list_user_reservations(self, cur, user_id, *, limit, offset):
        return self._active_for_user(user_id)[offset:offset + limit]

    def count_user_reservations(self, cur, user_id):
        return len(self._active_for_user(user_id))
