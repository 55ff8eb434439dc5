"""Guest reservation endpoints.

POST   /reservation          register (verify payment, then persist)
GET    /reservation          page through the caller's active reservations
GET    /reservation/detail   one of the caller's reservations, with room info
DELETE /reservation          cancel one of the caller's reservations (refund first)
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from kbnb.api.auth import CurrentUser, get_current_user
from kbnb.domain.errors import (
    AlreadyCancelledError,
    DateUnavailableError,
    ForbiddenError,
    GatewayError,
    InvalidDateRangeError,
    NotFoundError,
    PaymentError,
    ReservationError,
)
from kbnb.domain.models import Reservation
from kbnb.observability.context import get_correlation_id
from kbnb.observability.logging import get_logger
from kbnb.observability.redaction import safe_log_context
from kbnb.payments.contracts import PaymentGateway
from kbnb.payments.gateway import get_payment_gateway

MAX_PAGE_SIZE = 100


class PaymentBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receipt_id: str = Field(..., alias="receiptId", min_length=1)


class RegisterReservationRequest(BaseModel):
    """Request body for POST /reservation."""

    model_config = ConfigDict(populate_by_name=True)

    room_id: int = Field(..., alias="roomId")
    check_in: date = Field(..., alias="checkIn")
    check_out: date = Field(..., alias="checkOut")
    guest_number: int = Field(..., alias="guestNumber", ge=1)
    total_cost: int = Field(..., alias="totalCost", ge=0)
    payment: PaymentBody


class CancelReservationRequest(BaseModel):
    """Request body for DELETE /reservation."""

    model_config = ConfigDict(populate_by_name=True)

    reservation_id: int = Field(..., alias="reservationId")
    reason: str = Field(..., min_length=1, max_length=500)
    name: str | None = None


router = APIRouter(prefix="/reservation", tags=["reservation"])

logger = get_logger(__name__)

# Checked in order; all kinds share the ReservationError base.
_ERROR_STATUS: list[tuple[type[ReservationError], int]] = [
    (NotFoundError, 404),
    (InvalidDateRangeError, 400),
    (DateUnavailableError, 409),
    (PaymentError, 402),
    (ForbiddenError, 403),
    (GatewayError, 502),
]


def _to_http(exc: ReservationError) -> HTTPException:
    """Map a domain error to its client-facing status."""
    if isinstance(exc, AlreadyCancelledError):
        return HTTPException(status_code=409, detail="already_cancelled")
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _summary(reservation: Reservation) -> dict:
    return {
        "reservationId": reservation.id,
        "roomId": reservation.room_id,
        "checkIn": reservation.check_in.isoformat(),
        "checkOut": reservation.check_out.isoformat(),
        "guestNum": reservation.guest_count,
        "totalCost": reservation.total_cost,
        "status": reservation.status,
    }


@router.post("", status_code=201)
def register_reservation(
    body: RegisterReservationRequest,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict:
    """Register a reservation for the caller.

    201 with the new reservation id; 4xx/502 per error kind.
    """
    from kbnb.domain.reservations import register_reservation as admit

    try:
        reservation = admit(
            room_id=body.room_id,
            user_id=user.id,
            check_in=body.check_in,
            check_out=body.check_out,
            guest_count=body.guest_number,
            total_cost=body.total_cost,
            receipt_id=body.payment.receipt_id,
            gateway=gateway,
        )
    except ReservationError as exc:
        logger.info(
            "reservation rejected",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    user_id=user.id,
                    room_id=body.room_id,
                    error=type(exc).__name__,
                )
            },
        )
        raise _to_http(exc) from exc

    response.headers["Location"] = f"/reservation/detail?reservationId={reservation.id}"
    return {"message": "reservation registered", "reservationId": reservation.id}


@router.get("")
def list_reservations(
    page: int = Query(1, ge=1, description="1-based page number"),
    size: int = Query(10, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Page through the caller's non-cancelled reservations, newest check-in first."""
    from kbnb.domain.reservations import list_confirmed_reservations

    result = list_confirmed_reservations(user_id=user.id, page=page, page_size=size)
    return {
        "reservations": [_summary(r) for r in result.items],
        "page": {
            "number": result.page,
            "size": result.page_size,
            "totalElements": result.total,
            "totalPages": result.total_pages,
        },
    }


@router.get("/detail")
def get_reservation_detail(
    reservation_id: int = Query(..., alias="reservationId"),
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """One of the caller's reservations with room, host and location fields."""
    from kbnb.domain.reservations import get_reservation_detail as load_detail

    try:
        detail = load_detail(reservation_id=reservation_id, requester_user_id=user.id)
    except ReservationError as exc:
        raise _to_http(exc) from exc

    return detail.to_dict()


@router.delete("")
def cancel_reservation(
    body: CancelReservationRequest,
    user: CurrentUser = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> dict:
    """Cancel one of the caller's reservations; the refund must go through first."""
    from kbnb.domain.reservations import cancel_reservation as cancel

    try:
        cancel(
            reservation_id=body.reservation_id,
            requester_user_id=user.id,
            reason=body.reason,
            gateway=gateway,
            requester_name=body.name or user.name,
        )
    except ReservationError as exc:
        logger.info(
            "cancellation rejected",
            extra={
                "extra_fields": safe_log_context(
                    correlationId=get_correlation_id(),
                    user_id=user.id,
                    reservation_id=body.reservation_id,
                    error=type(exc).__name__,
                )
            },
        )
        raise _to_http(exc) from exc

    return {"success": True, "message": "reservation cancelled"}
