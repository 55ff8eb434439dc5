"""Value types shared by the domain and the repositories.

Ids are database integers. Money is an integer amount in the smallest
currency unit (KRW has no minor unit, so this is plain won).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"

PAYMENT_UNVERIFIED = "unverified"
PAYMENT_VERIFIED = "verified"


@dataclass(frozen=True)
class User:
    id: int
    email: str
    name: str
    birth: date | None = None
    email_verified: bool = False
    image_url: str | None = None


@dataclass(frozen=True)
class Location:
    country: str = ""
    city: str = ""
    borough: str = ""
    neighborhood: str = ""
    detail_address: str = ""
    latitude: float | None = None
    longitude: float | None = None

    @property
    def address(self) -> str:
        """Single-line address, largest unit first."""
        parts = (self.country, self.city, self.borough, self.neighborhood, self.detail_address)
        return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class Room:
    """A listing. Only the fields reservation views need are loaded."""

    id: int
    name: str
    host_id: int
    host_name: str
    host_image_url: str | None = None
    image_url: str | None = None
    bed_num: int = 0
    bedroom_num: int = 0
    bathroom_num: int = 0
    is_parking: bool = False
    is_smoking: bool = False
    location: Location = field(default_factory=Location)


@dataclass(frozen=True)
class Payment:
    """Carries a gateway receipt id through verification."""

    receipt_id: str
    status: str = PAYMENT_UNVERIFIED
    id: int | None = None


@dataclass(frozen=True)
class Reservation:
    """A stay in one room over the half-open range [check_in, check_out)."""

    room_id: int
    user_id: int
    check_in: date
    check_out: date
    guest_count: int
    total_cost: int
    status: str = STATUS_PENDING
    receipt_id: str | None = None
    cancel_reason: str | None = None
    id: int | None = None
    created_at: datetime | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == STATUS_CONFIRMED


@dataclass(frozen=True)
class ReservationPage:
    """One page of a user's reservations. page is 1-based."""

    items: list[Reservation]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size


@dataclass(frozen=True)
class ReservationDetail:
    """A reservation joined with the room, host and location it refers to."""

    reservation: Reservation
    room: Room

    def to_dict(self) -> dict:
        r = self.reservation
        room = self.room
        return {
            "reservationId": r.id,
            "roomId": room.id,
            "roomName": room.name,
            "roomImage": room.image_url,
            "hostName": room.host_name,
            "hostImage": room.host_image_url,
            "bedNum": room.bed_num,
            "bedRoomNum": room.bedroom_num,
            "bathRoomNum": room.bathroom_num,
            "isParking": room.is_parking,
            "isSmoking": room.is_smoking,
            "address": room.location.address,
            "latitude": room.location.latitude,
            "longitude": room.location.longitude,
            "checkIn": r.check_in.isoformat(),
            "checkOut": r.check_out.isoformat(),
            "guestNum": r.guest_count,
            "totalCost": r.total_cost,
            "status": r.status,
        }
