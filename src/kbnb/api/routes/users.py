"""Account endpoints for the authenticated user."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from kbnb.api.auth import CurrentUser, get_current_user
from kbnb.domain.models import User

router = APIRouter(prefix="/user", tags=["user"])


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(..., min_length=1, max_length=100)
    birth: date | None = None


def _profile(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "birth": user.birth.isoformat() if user.birth else None,
        "emailVerified": user.email_verified,
        "imageUrl": user.image_url,
    }


@router.get("/me")
def get_me(user: CurrentUser = Depends(get_current_user)) -> dict:
    """Return the authenticated user's profile."""
    from kbnb.infra.db import txn
    from kbnb.infra.repositories.users_repository import get_user

    with txn() as cur:
        profile = get_user(cur, user.id)

    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile(profile)


@router.post("/update")
def update_me(
    body: UserUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Change email, name and birth date.

    409 if the email already belongs to another account.
    """
    from kbnb.infra.db import txn
    from kbnb.infra.repositories.users_repository import email_in_use, update_profile

    with txn() as cur:
        if email_in_use(cur, body.email, exclude_user_id=user.id):
            raise HTTPException(status_code=409, detail="Email already in use")
        updated = update_profile(
            cur,
            user.id,
            email=body.email,
            name=body.name,
            birth=body.birth,
        )

    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _profile(updated)
