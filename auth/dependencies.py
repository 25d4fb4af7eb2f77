"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

get_current_user() is the auth guard for every protected route. The session
travels in a single cookie; there is no Bearer header or API key fallback.

Outcomes:
  no cookie                    -> 401 not_authorized
  bad/expired/malformed token  -> 401 invalid_token
  token names a missing user   -> 401 invalid_credentials
  otherwise                    -> the User (no password hash), also stored
                                  on request.state.user

Layer rule: no imports from api/ or tasks/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import decode_access_token
from core.config import Settings


def get_settings_from_app(request: Request) -> Settings:
    """Return the frozen Settings instance the app was built with."""
    return request.app.state.settings


def get_current_user(request: Request) -> User:
    """Require a valid session cookie. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    settings = get_settings_from_app(request)
    user_store: UserStore = request.app.state.user_store

    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(
            status_code=401,
            detail={"code": "not_authorized", "message": "Not Authorized! Login Again."},
        )

    payload = decode_access_token(token, settings)
    if payload is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "invalid_token", "message": "Invalid token"},
        )

    user = user_store.get_profile(payload["user_id"])
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "invalid_credentials", "message": "Invalid credentials."},
        )

    request.state.user = user
    return user
