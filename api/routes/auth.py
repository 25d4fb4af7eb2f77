"""
api/routes/auth.py -- Account, session and profile REST endpoints.

Routes (relative to Settings.api_prefix):
  POST /signup    -- register an account; no session is issued
  POST /login     -- email/password login; sets the session cookie
  POST /logout    -- clears the session cookie; 200
  GET  /profile   -- current user (requires auth)
  PUT  /profile   -- partial profile update (requires auth)

Security:
  POST /login and POST /signup are rate-limited per client IP.
  authenticate_user() provides timing equalization -- use it, never inline.
  Login failures share one message whether the email or the password was
  wrong; signup collisions share one message regardless of which field clashed.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api.limiter import limiter
from api.models import (
    ErrorDetail,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    SignupRequest,
    SuccessResponse,
    UserResponse,
)
from auth.dependencies import get_current_user, get_settings_from_app
from auth.models import User
from auth.profile import ProfileUpdateError, plan_profile_update
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_auth_cookie, create_access_token, hash_password, set_auth_cookie
from auth.validation import login_error, registration_error
from core.config import get_settings

logger = logging.getLogger("tasktracker.api.auth")

# Auth policy:
# - POST /signup, /login, /logout: public
# - GET/PUT /profile:              requires auth (get_current_user)
router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


def _bad_request(message: str, code: str = "validation_error") -> HTTPException:
    return HTTPException(status_code=400, detail={"code": code, "message": message})


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=SuccessResponse, status_code=201)
@limiter.limit(_login_rate_limit)
def signup(request: Request, body: SignupRequest) -> SuccessResponse:
    """Register a new account.

    Checks run in a fixed order -- presence, email shape, password strength,
    then uniqueness -- and the first failure is returned. The uniqueness
    failure is a bare "Registration Failed" so the endpoint cannot be used to
    probe which emails are registered.
    """
    error = registration_error(body.username, body.email, body.password)
    if error:
        raise _bad_request(error)

    user_store: UserStore = request.app.state.user_store
    try:
        if user_store.get_by_email(body.email) is not None:
            raise _bad_request("Registration Failed", code="registration_failed")
        user_id = user_store.create_user(
            User(username=body.username, email=body.email, hashed_password=hash_password(body.password))
        )
    except SQLAlchemyError as exc:
        logger.exception("Signup failed")
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": str(exc)},
        ) from exc

    logger.info("Registered user id=%d", user_id)
    return SuccessResponse(message="User registered successfully")


@router.post("/login", response_model=SuccessResponse)
@limiter.limit(_login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Uses authenticate_user() which includes timing equalization. Unknown
    email and wrong password produce the same 401.
    """
    error = login_error(body.email, body.password)
    if error:
        raise _bad_request(error)

    settings = get_settings_from_app(request)
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(
                error=ErrorDetail(code="invalid_credentials", message="Invalid credentials")
            ).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = create_access_token(user.id, settings)
    resp = JSONResponse(
        status_code=200,
        content=SuccessResponse(message="Login successful").model_dump(by_alias=True),
    )
    set_auth_cookie(resp, token, settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Clear the session cookie.

    The token itself stays valid until it expires; there is no server-side
    revocation list.
    """
    resp = JSONResponse(content=MessageResponse(message="Logged out successfully").model_dump(by_alias=True))
    clear_auth_cookie(resp, get_settings_from_app(request))
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=ProfileResponse)
def get_profile(current_user: User = Depends(get_current_user)) -> ProfileResponse:
    """Return the record the auth guard resolved for this session."""
    return ProfileResponse(user=UserResponse.from_user(current_user))


@router.put("/profile", response_model=ProfileUpdateResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> ProfileUpdateResponse:
    """Apply the changed subset of username, email and mobileNumber.

    Unchanged fields are dropped before writing. When nothing differs the
    current profile comes back untouched and no write happens.
    """
    user_store: UserStore = request.app.state.user_store
    try:
        updates = plan_profile_update(current_user, body.submitted(), user_store)
        if not updates:
            return ProfileUpdateResponse(message="No changes detected.", user=UserResponse.from_user(current_user))
        updated = user_store.update_profile(current_user.id, **updates)
    except ProfileUpdateError as exc:
        raise _bad_request(str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Profile update failed for user id=%d", current_user.id)
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "Failed to update profile.", "detail": str(exc)},
        ) from exc

    if updated is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return ProfileUpdateResponse(message="Profile updated successfully!", user=UserResponse.from_user(updated))
