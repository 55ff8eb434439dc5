"""Tests for the guest's reservation list and detail views."""

from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import patch

import pytest

from kbnb.domain.errors import ForbiddenError, NotFoundError
from kbnb.domain.models import STATUS_CANCELLED
from kbnb.domain.reservations import get_reservation_detail, list_confirmed_reservations

from .helpers import InMemoryReservations, make_room, mock_txn

MODULE = "kbnb.domain.reservations"


@pytest.fixture
def store():
    store = InMemoryReservations()
    with patch(f"{MODULE}.txn", mock_txn), \
         patch(f"{MODULE}.get_reservation", side_effect=store.get_reservation), \
         patch(f"{MODULE}.list_user_reservations", side_effect=store.list_user_reservations), \
         patch(f"{MODULE}.count_user_reservations", side_effect=store.count_user_reservations):
        yield store


def _book_weeks(store, user_id, count, start=date(2021, 3, 1)):
    """count one-night stays, one per week, in distinct rooms."""
    return [
        store.add(
            room_id=100 + i,
            user_id=user_id,
            check_in=start + timedelta(weeks=i),
            check_out=start + timedelta(weeks=i, days=1),
        )
        for i in range(count)
    ]


class TestListConfirmedReservations:
    def test_second_page_holds_items_eleven_to_twenty(self, store):
        booked = _book_weeks(store, user_id=1, count=25)
        newest_first = sorted(booked, key=lambda r: r.check_in, reverse=True)

        page = list_confirmed_reservations(user_id=1, page=2, page_size=10)

        assert [r.id for r in page.items] == [r.id for r in newest_first[10:20]]
        assert page.page == 2
        assert page.total == 25
        assert page.total_pages == 3

    def test_ordered_by_check_in_descending(self, store):
        _book_weeks(store, user_id=1, count=5)

        page = list_confirmed_reservations(user_id=1, page=1, page_size=10)

        check_ins = [r.check_in for r in page.items]
        assert check_ins == sorted(check_ins, reverse=True)

    def test_cancelled_excluded(self, store):
        kept, dropped = _book_weeks(store, user_id=1, count=2)
        store.mark_cancelled(None, dropped.id, reason="x")

        page = list_confirmed_reservations(user_id=1, page=1, page_size=10)

        assert [r.id for r in page.items] == [kept.id]
        assert page.total == 1
        assert all(r.status != STATUS_CANCELLED for r in page.items)

    def test_only_own_reservations(self, store):
        _book_weeks(store, user_id=1, count=3)
        _book_weeks(store, user_id=2, count=4)

        page = list_confirmed_reservations(user_id=2, page=1, page_size=10)

        assert len(page.items) == 4
        assert all(r.user_id == 2 for r in page.items)

    def test_page_past_end_is_empty(self, store):
        _book_weeks(store, user_id=1, count=3)

        page = list_confirmed_reservations(user_id=1, page=5, page_size=10)

        assert page.items == []
        assert page.total == 3

    def test_no_reservations(self, store):
        page = list_confirmed_reservations(user_id=1, page=1, page_size=10)

        assert page.items == []
        assert page.total_pages == 0

    @pytest.mark.parametrize("page, size", [(0, 10), (1, 0), (-1, 10)])
    def test_invalid_paging_rejected(self, store, page, size):
        with pytest.raises(ValueError):
            list_confirmed_reservations(user_id=1, page=page, page_size=size)


class TestGetReservationDetail:
    def test_owner_gets_room_details(self, store):
        reservation = store.add(user_id=1, room_id=10, check_in=date(2021, 2, 3), check_out=date(2021, 2, 5))

        with patch(f"{MODULE}.get_room", return_value=make_room(10)):
            detail = get_reservation_detail(reservation_id=reservation.id, requester_user_id=1)

        body = detail.to_dict()
        assert body["reservationId"] == reservation.id
        assert body["roomName"] == "Seaside cabin"
        assert body["hostName"] == "Host"
        assert body["bedRoomNum"] == 2
        assert body["address"] == "Korea Seoul Mapo-gu Hapjeong-dong 12-3"
        assert body["checkIn"] == "2021-02-03"
        assert body["checkOut"] == "2021-02-05"

    def test_other_users_reservation_forbidden(self, store):
        reservation = store.add(user_id=1, check_in=date(2021, 2, 3), check_out=date(2021, 2, 5))

        with patch(f"{MODULE}.get_room", return_value=make_room(10)):
            with pytest.raises(ForbiddenError):
                get_reservation_detail(reservation_id=reservation.id, requester_user_id=2)

    def test_missing_reservation_looks_forbidden(self, store):
        with pytest.raises(ForbiddenError):
            get_reservation_detail(reservation_id=999, requester_user_id=1)

    def test_room_gone(self, store):
        reservation = store.add(user_id=1, check_in=date(2021, 2, 3), check_out=date(2021, 2, 5))

        with patch(f"{MODULE}.get_room", return_value=None):
            with pytest.raises(NotFoundError):
                get_reservation_detail(reservation_id=reservation.id, requester_user_id=1)
