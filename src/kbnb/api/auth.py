"""Bearer JWT authentication.

Tokens are issued by the login service and signed with RS256; this API only
verifies them. The subject claim is the numeric user id.

Provides:
- verify_token(): Validates a JWT and returns the user id
- get_current_user(): FastAPI dependency for the authenticated user
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request


@dataclass
class CurrentUser:
    """Authenticated user context."""

    id: int
    email: str
    name: str


def _get_settings() -> dict[str, str | None]:
    """Load token verification settings from environment.

    AUTH_JWT_PUBLIC_KEY may contain literal "\\n" sequences (single-line env).
    """
    public_key = os.environ.get("AUTH_JWT_PUBLIC_KEY")
    if public_key:
        public_key = public_key.replace("\\n", "\n")
    return {
        "public_key": public_key,
        "issuer": os.environ.get("AUTH_JWT_ISSUER") or None,
        "audience": os.environ.get("AUTH_JWT_AUDIENCE") or None,
    }


def verify_token(token: str) -> int:
    """Verify a JWT and return the user id from its subject claim.

    Raises:
        HTTPException: 401 if auth is not configured or the token is invalid/expired.
    """
    settings = _get_settings()
    public_key = settings["public_key"]
    if not public_key:
        raise HTTPException(status_code=401, detail="Auth not configured")

    audience = settings["audience"]
    try:
        payload = jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            issuer=settings["issuer"],
            audience=audience,
            options={"require": ["exp", "sub"], "verify_aud": audience is not None},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")


def _extract_bearer_token(request: Request) -> str:
    """Extract Bearer token from Authorization header.

    Raises:
        HTTPException: 401 if header missing or malformed.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    return parts[1]


def _get_user_from_db(user_id: int) -> CurrentUser | None:
    from kbnb.infra.db import txn
    from kbnb.infra.repositories.users_repository import get_user

    with txn() as cur:
        user = get_user(cur, user_id)
    if user is None:
        return None
    return CurrentUser(id=user.id, email=user.email, name=user.name)


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: get authenticated user.

    Raises:
        HTTPException: 401 if token invalid/missing, 403 if user not found.
    """
    token = _extract_bearer_token(request)
    user_id = verify_token(token)

    user = _get_user_from_db(user_id)
    if user is None:
        raise HTTPException(status_code=403, detail="User not found")

    return user
