"""Reservation use cases: admission, cancellation and the guest's read views.

Admission runs in three phases so no lock is held across network I/O:

1. read phase (short txn): resolve room and user, validate dates, reject
   overlaps against a snapshot of the room's confirmed reservations;
2. payment phase (no txn): obtain a gateway token and verify the receipt;
3. commit phase (short txn): lock the room row, re-check overlaps, insert
   the reservation as confirmed together with its payment row.

The reservations_no_confirmed_overlap exclusion constraint backs up phase 3.
If phase 3 fails after the payment was verified, the payment is refunded,
unless the receipt turns out to back another reservation already.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import psycopg2

from kbnb.domain.errors import (
    AlreadyCancelledError,
    DateUnavailableError,
    ForbiddenError,
    GatewayError,
    InvalidDateRangeError,
    NotFoundError,
    PaymentError,
)
from kbnb.domain.models import (
    PAYMENT_VERIFIED,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Payment,
    Reservation,
    ReservationDetail,
    ReservationPage,
)
from kbnb.domain.room_conflict import assert_room_available
from kbnb.infra.db import is_exclusion_violation, is_receipt_reuse, lock_room, txn
from kbnb.infra.repositories.payments_repository import insert_payment, receipt_in_use
from kbnb.infra.repositories.reservations_repository import (
    count_user_reservations,
    get_reservation,
    insert_reservation,
    list_room_reservations,
    list_user_reservations,
    mark_cancelled,
)
from kbnb.infra.repositories.rooms_repository import get_room
from kbnb.infra.repositories.users_repository import get_user
from kbnb.infra.time import utc_today
from kbnb.observability.logging import get_logger
from kbnb.observability.redaction import safe_log_context
from kbnb.payments.contracts import PaymentGateway, PaymentGatewayError

logger = get_logger(__name__)

COMPENSATION_REASON = "reservation could not be recorded"


def validate_stay_dates(check_in: date, check_out: date, *, today: date) -> None:
    """Reject empty/inverted ranges and ranges touching the past.

    Raises:
        InvalidDateRangeError: If check_in >= check_out or either date < today.
    """
    if check_in >= check_out:
        raise InvalidDateRangeError("check-in must be before check-out")
    if check_in < today or check_out < today:
        raise InvalidDateRangeError("reservation dates must not be in the past")


def _verify_payment(gateway: PaymentGateway, payment: Payment) -> Payment:
    """Verify a receipt with the gateway.

    Raises:
        PaymentError: If the token call or verification fails, or the
            gateway does not report the payment as captured.
    """
    try:
        token = gateway.get_access_token()
        verification = gateway.verify_receipt(payment.receipt_id, token)
    except PaymentGatewayError as exc:
        logger.warning(
            "payment verification failed",
            extra={"extra_fields": safe_log_context(receipt_id=payment.receipt_id, error=str(exc))},
        )
        raise PaymentError(f"payment verification failed: {exc}") from exc
    except Exception as exc:
        logger.exception(
            "payment verification raised unexpectedly",
            extra={
                "extra_fields": safe_log_context(
                    receipt_id=payment.receipt_id,
                    error=type(exc).__name__,
                )
            },
        )
        raise PaymentError("payment verification failed") from exc

    if not verification.confirmed:
        logger.warning(
            "payment not confirmed by gateway",
            extra={
                "extra_fields": safe_log_context(
                    receipt_id=payment.receipt_id,
                    gateway_status=verification.status,
                )
            },
        )
        raise PaymentError("payment was not confirmed by the gateway")

    return replace(payment, status=PAYMENT_VERIFIED)


def _receipt_reused(receipt_id: str) -> PaymentError:
    """Log and build the error for a receipt that already pays for a reservation."""
    logger.warning(
        "receipt already used",
        extra={"extra_fields": safe_log_context(receipt_id=receipt_id)},
    )
    return PaymentError("payment receipt was already used for another reservation")


def _commit_admission(reservation: Reservation, payment: Payment) -> Reservation:
    """Lock the room, re-check receipt and overlaps, persist reservation + payment.

    Raises:
        NotFoundError: If the room disappeared since the read phase.
        PaymentError: If a concurrent admission recorded the same receipt.
        DateUnavailableError: If a concurrent admission took the dates.
    """
    try:
        with txn() as cur:
            if not lock_room(cur, reservation.room_id):
                raise NotFoundError("room", reservation.room_id)

            if receipt_in_use(cur, payment.receipt_id):
                raise _receipt_reused(payment.receipt_id)

            assert_room_available(
                list_room_reservations(cur, reservation.room_id),
                room_id=reservation.room_id,
                check_in=reservation.check_in,
                check_out=reservation.check_out,
            )

            saved = insert_reservation(cur, replace(reservation, status=STATUS_CONFIRMED))
            insert_payment(cur, reservation_id=saved.id, payment=payment)
    except psycopg2.IntegrityError as exc:
        if is_exclusion_violation(exc):
            raise DateUnavailableError(room_id=reservation.room_id) from exc
        if is_receipt_reuse(exc):
            raise _receipt_reused(payment.receipt_id) from exc
        raise

    return saved


def _refund_unrecorded_payment(gateway: PaymentGateway, reservation: Reservation) -> None:
    """Refund a verified payment whose reservation could not be stored."""
    try:
        result = gateway.cancel(reservation.receipt_id, COMPENSATION_REASON)
    except PaymentGatewayError:
        logger.exception(
            "compensating refund failed",
            extra={"extra_fields": safe_log_context(receipt_id=reservation.receipt_id)},
        )
        return

    log = logger.info if result.settled else logger.error
    log(
        "compensating refund requested",
        extra={
            "extra_fields": safe_log_context(
                receipt_id=reservation.receipt_id,
                room_id=reservation.room_id,
                settled=result.settled,
            )
        },
    )


def register_reservation(
    *,
    room_id: int,
    user_id: int,
    check_in: date,
    check_out: date,
    guest_count: int,
    total_cost: int,
    receipt_id: str,
    gateway: PaymentGateway,
) -> Reservation:
    """Admit a reservation: validate, verify payment, persist as confirmed.

    Nothing is written unless the payment is verified. The returned
    reservation carries exactly the requested dates.

    Raises:
        NotFoundError: Unknown room or user.
        InvalidDateRangeError: Empty, inverted or past date range.
        DateUnavailableError: Overlaps a confirmed reservation of the room.
        PaymentError: Gateway token/verification failure, unconfirmed payment,
            or a receipt that already pays for a reservation.
    """
    with txn() as cur:
        if get_room(cur, room_id) is None:
            raise NotFoundError("room", room_id)
        if get_user(cur, user_id) is None:
            raise NotFoundError("user", user_id)

        validate_stay_dates(check_in, check_out, today=utc_today())

        assert_room_available(
            list_room_reservations(cur, room_id),
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
        )

        if receipt_in_use(cur, receipt_id):
            raise _receipt_reused(receipt_id)

    reservation = Reservation(
        room_id=room_id,
        user_id=user_id,
        check_in=check_in,
        check_out=check_out,
        guest_count=guest_count,
        total_cost=total_cost,
        status=STATUS_PENDING,
        receipt_id=receipt_id,
    )
    payment = _verify_payment(gateway, Payment(receipt_id=receipt_id))

    try:
        saved = _commit_admission(reservation, payment)
    except PaymentError:
        # the receipt backs another reservation; refunding it would undo that one
        raise
    except Exception:
        _refund_unrecorded_payment(gateway, reservation)
        raise

    logger.info(
        "reservation confirmed",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=saved.id,
                room_id=room_id,
                check_in=check_in,
                check_out=check_out,
                receipt_id=receipt_id,
            )
        },
    )
    return saved


def cancel_reservation(
    *,
    reservation_id: int,
    requester_user_id: int,
    reason: str,
    gateway: PaymentGateway,
    requester_name: str | None = None,
) -> Reservation:
    """Cancel a confirmed reservation after the gateway refunds it.

    The refund call happens outside any transaction; the status flip is a
    conditional update so a concurrent cancel cannot apply twice.

    Raises:
        NotFoundError: Unknown reservation.
        AlreadyCancelledError: Reservation already cancelled (any requester).
        ForbiddenError: Reservation belongs to another user.
        GatewayError: Refund failed and was not waived; status unchanged.
    """
    with txn() as cur:
        reservation = get_reservation(cur, reservation_id)

    if reservation is None:
        raise NotFoundError("reservation", reservation_id)
    if reservation.status == STATUS_CANCELLED:
        raise AlreadyCancelledError(f"reservation {reservation_id} is already cancelled")
    if reservation.user_id != requester_user_id:
        raise ForbiddenError(f"reservation {reservation_id} does not belong to the requester")

    try:
        result = gateway.cancel(reservation.receipt_id, reason, name=requester_name)
    except PaymentGatewayError as exc:
        raise GatewayError(f"refund failed: {exc}") from exc

    if not result.settled:
        logger.warning(
            "refund refused by gateway",
            extra={
                "extra_fields": safe_log_context(
                    reservation_id=reservation_id,
                    receipt_id=reservation.receipt_id,
                    gateway_message=result.message,
                )
            },
        )
        raise GatewayError(result.message or "payment gateway refused the refund")

    try:
        with txn() as cur:
            cancelled = mark_cancelled(cur, reservation_id, reason=reason)
    except Exception:
        logger.exception(
            "refund issued but cancellation not recorded",
            extra={
                "extra_fields": safe_log_context(
                    reservation_id=reservation_id,
                    receipt_id=reservation.receipt_id,
                )
            },
        )
        raise
    if not cancelled:
        raise AlreadyCancelledError(f"reservation {reservation_id} is already cancelled")

    logger.info(
        "reservation cancelled",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                refund_waived=result.waived,
            )
        },
    )
    return replace(reservation, status=STATUS_CANCELLED, cancel_reason=reason)


def list_confirmed_reservations(*, user_id: int, page: int, page_size: int) -> ReservationPage:
    """One page (1-based) of the user's non-cancelled reservations.

    Ordered by check-in descending, ties by id descending.

    Raises:
        ValueError: If page or page_size is below 1.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    with txn() as cur:
        total = count_user_reservations(cur, user_id)
        items = list_user_reservations(
            cur,
            user_id,
            limit=page_size,
            offset=(page - 1) * page_size,
        )

    return ReservationPage(items=items, page=page, page_size=page_size, total=total)


def get_reservation_detail(*, reservation_id: int, requester_user_id: int) -> ReservationDetail:
    """Full reservation plus room, host and location fields.

    A reservation that does not exist is indistinguishable from someone
    else's: both raise ForbiddenError.

    Raises:
        ForbiddenError: Reservation is not one of the requester's.
        NotFoundError: The reservation's room no longer exists.
    """
    with txn() as cur:
        reservation = get_reservation(cur, reservation_id)
        if reservation is None or reservation.user_id != requester_user_id:
            raise ForbiddenError(f"reservation {reservation_id} is not among the requester's reservations")

        room = get_room(cur, reservation.room_id)
        if room is None:
            raise NotFoundError("room", reservation.room_id)

    return ReservationDetail(reservation=reservation, room=room)
