"""Room date-overlap detection.

Stays are half-open ranges [check_in, check_out). Two stays in the same room
conflict iff:

    new_check_in < existing_check_out AND existing_check_in < new_check_out

so a check-out day may be another guest's check-in day.

Only confirmed reservations block a room; cancelled (and never-persisted
pending) ones are ignored.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from kbnb.domain.errors import DateUnavailableError
from kbnb.domain.models import Reservation
from kbnb.observability.logging import get_logger

logger = get_logger(__name__)


def dates_overlap(
    check_in: date,
    check_out: date,
    other_check_in: date,
    other_check_out: date,
) -> bool:
    """True if [check_in, check_out) and [other_check_in, other_check_out) intersect."""
    return check_in < other_check_out and other_check_in < check_out


def find_conflict(
    reservations: Iterable[Reservation],
    *,
    check_in: date,
    check_out: date,
) -> Reservation | None:
    """Return the first confirmed reservation overlapping the range, if any."""
    for existing in reservations:
        if not existing.is_confirmed:
            continue
        if dates_overlap(check_in, check_out, existing.check_in, existing.check_out):
            return existing
    return None


def assert_room_available(
    reservations: Iterable[Reservation],
    *,
    room_id: int,
    check_in: date,
    check_out: date,
) -> None:
    """Raise DateUnavailableError on the first overlapping confirmed reservation."""
    conflict = find_conflict(reservations, check_in=check_in, check_out=check_out)
    if conflict is None:
        return

    logger.warning(
        "room conflict detected",
        extra={
            "extra_fields": {
                "room_id": room_id,
                "requested_check_in": check_in.isoformat(),
                "requested_check_out": check_out.isoformat(),
                "conflicting_reservation_id": conflict.id,
                "existing_check_in": conflict.check_in.isoformat(),
                "existing_check_out": conflict.check_out.isoformat(),
            },
        },
    )
    raise DateUnavailableError(
        room_id=room_id,
        conflicting_reservation_id=conflict.id,
        existing_check_in=conflict.check_in,
        existing_check_out=conflict.check_out,
    )
