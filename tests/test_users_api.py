"""HTTP tests for /user endpoints."""

from __future__ import annotations

from datetime import date
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from kbnb.api.auth import CurrentUser, get_current_user
from kbnb.api.factory import create_app
from kbnb.domain.models import User

from .helpers import mock_txn

REPO = "kbnb.infra.repositories.users_repository"


@pytest.fixture
def client():
    app = create_app()
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=1, email="g@example.com", name="guest")
    return TestClient(app)


def _user(**overrides):
    fields = dict(id=1, email="g@example.com", name="guest", birth=date(1990, 5, 1), email_verified=True)
    fields.update(overrides)
    return User(**fields)


class TestMe:
    def test_profile(self, client):
        with patch("kbnb.infra.db.txn", mock_txn), \
             patch(f"{REPO}.get_user", return_value=_user()):
            response = client.get("/user/me")

        assert response.status_code == 200
        assert response.json() == {
            "id": 1,
            "email": "g@example.com",
            "name": "guest",
            "birth": "1990-05-01",
            "emailVerified": True,
            "imageUrl": None,
        }

    def test_missing_row(self, client):
        with patch("kbnb.infra.db.txn", mock_txn), \
             patch(f"{REPO}.get_user", return_value=None):
            response = client.get("/user/me")

        assert response.status_code == 404


class TestUpdate:
    def test_updates_profile(self, client):
        updated = _user(email="new@example.com", name="Kim", birth=None)

        with patch("kbnb.infra.db.txn", mock_txn), \
             patch(f"{REPO}.email_in_use", return_value=False) as mock_in_use, \
             patch(f"{REPO}.update_profile", return_value=updated) as mock_update:
            response = client.post("/user/update", json={"email": "new@example.com", "name": "Kim"})

        assert response.status_code == 200
        assert response.json()["email"] == "new@example.com"
        assert response.json()["birth"] is None
        assert mock_in_use.call_args.kwargs == {"exclude_user_id": 1}
        assert mock_update.call_args.kwargs == {"email": "new@example.com", "name": "Kim", "birth": None}

    def test_email_taken(self, client):
        with patch("kbnb.infra.db.txn", mock_txn), \
             patch(f"{REPO}.email_in_use", return_value=True), \
             patch(f"{REPO}.update_profile") as mock_update:
            response = client.post("/user/update", json={"email": "taken@example.com", "name": "Kim"})

        assert response.status_code == 409
        mock_update.assert_not_called()

    def test_invalid_email(self, client):
        response = client.post("/user/update", json={"email": "not-an-email", "name": "Kim"})

        assert response.status_code == 422

    def test_unknown_field_rejected(self, client):
        response = client.post(
            "/user/update",
            json={"email": "a@example.com", "name": "Kim", "is_admin": True},
        )

        assert response.status_code == 422
