"""Error kinds raised by the reservation use cases.

Each kind maps to its own HTTP status in kbnb.api.routes.reservations.
"""

from __future__ import annotations

from datetime import date


class ReservationError(Exception):
    """Base class for reservation use-case failures."""


class NotFoundError(ReservationError):
    """A referenced user, room or reservation does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidDateRangeError(ReservationError):
    """Check-in/check-out are inverted, empty or in the past."""


class DateUnavailableError(ReservationError):
    """The requested range overlaps a confirmed reservation of the room."""

    def __init__(
        self,
        room_id: int,
        conflicting_reservation_id: int | None = None,
        existing_check_in: date | None = None,
        existing_check_out: date | None = None,
    ) -> None:
        self.room_id = room_id
        self.conflicting_reservation_id = conflicting_reservation_id
        self.existing_check_in = existing_check_in
        self.existing_check_out = existing_check_out
        if existing_check_in is not None and existing_check_out is not None:
            message = (
                f"Room {room_id} is already booked "
                f"({existing_check_in} to {existing_check_out})"
            )
        else:
            message = f"Room {room_id} is already booked for these dates"
        super().__init__(message)


class PaymentError(ReservationError):
    """Payment could not be verified (token, verification or network failure)."""


class ForbiddenError(ReservationError):
    """The requester does not own the reservation."""


class AlreadyCancelledError(ReservationError):
    """The reservation was already cancelled."""


class GatewayError(ReservationError):
    """The payment gateway refused or failed the cancellation/refund."""
