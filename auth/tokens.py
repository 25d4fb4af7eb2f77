"""
auth/tokens.py -- JWT session tokens, password hashing, and session cookie helpers.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with Settings.secret_key and
       carry only user_id and expiry. Verification returns None on any
       failure -- the auth guard turns that into a 401.

  Passwords: bcrypt with cost factor 10. The _DUMMY_HASH constant enables
       timing equalization in authenticate_user() so response time does not
       reveal whether an email is registered.

  Cookie: a single httpOnly, SameSite=Strict cookie. There is no server-side
       revocation list -- clearing the cookie is the whole of logout, and a
       copied token stays valid until it expires.

Every function that needs the signing key or cookie policy takes the frozen
Settings object as an argument. Nothing here reads configuration on import.

Layer rule: no imports from api/ or tasks/. Import from core/ is allowed --
core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore
    from core.config import Settings

logger = logging.getLogger("tasktracker.auth")

_ALGORITHM = "HS256"

BCRYPT_ROUNDS = 10
_BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt rejects input longer than 72 bytes; signup validation
    (auth.validation.password_error) refuses such passwords first.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Input over 72 bytes never matches, whether the installed bcrypt would
    truncate it or reject it.
    """
    secret = plain.encode("utf-8")
    if len(secret) > _BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(secret, hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("tasktracker_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, settings: Settings) -> str:
    """Encode a signed JWT carrying the user id, expiring after token_expire_seconds."""
    expire = datetime.now(timezone.utc) + timedelta(seconds=settings.token_expire_seconds)
    payload = {
        "user_id": user_id,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure.

    Bad signature, malformed input, expiry, and a missing or non-integer
    user_id claim are all treated the same.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload.get("user_id"), int):
        return None
    return payload


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the email is registered:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or user.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="strict": the browser never attaches it to cross-site requests.
    secure: only sent over HTTPS when secure_cookies is on (production default).
    max_age: matches the JWT expiry so both expire together.
    """
    response.set_cookie(
        settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
        max_age=settings.token_expire_seconds,
    )


def clear_auth_cookie(response, settings: Settings) -> None:
    """Expire the session cookie. Attributes must match set_auth_cookie() or browsers keep it."""
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
    )
