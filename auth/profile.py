"""
auth/profile.py -- Works out which submitted profile fields actually change.

plan_profile_update() compares a partial submission against the caller's
current record and returns only the columns that differ, already normalized
for storage. An empty result means "no write". Validation failures raise
ProfileUpdateError whose message is safe to show the client.

Layer rule: no imports from api/, core/, or tasks/.
"""

from __future__ import annotations

from auth.models import User
from auth.store import UserStore
from auth.validation import INVALID_EMAIL, is_valid_email


class ProfileUpdateError(ValueError):
    """A submitted profile field is invalid. str(exc) is the client-facing message."""


def _normalize_mobile(value: str | None) -> str | None:
    return value or None


def plan_profile_update(current: User, submitted: dict, store: UserStore) -> dict:
    """Return {column: new_value} for every submitted field that differs from current.

    submitted holds only the keys the client actually sent (username, email,
    mobile_number); a key mapped to None means the client sent null.

    The email uniqueness lookup runs only when the email is really changing,
    and a match on the caller's own id is not a conflict.
    """
    updates: dict = {}

    if "username" in submitted:
        username = (submitted["username"] or "").strip()
        if username != current.username:
            if not username:
                raise ProfileUpdateError("Username cannot be empty.")
            updates["username"] = username

    if "mobile_number" in submitted:
        mobile = _normalize_mobile(submitted["mobile_number"])
        if mobile != _normalize_mobile(current.mobile_number):
            updates["mobile_number"] = mobile

    if "email" in submitted:
        email = (submitted["email"] or "").lower()
        if email != current.email.lower():
            if not email.strip():
                raise ProfileUpdateError("Email cannot be empty.")
            if not is_valid_email(email):
                raise ProfileUpdateError(INVALID_EMAIL)
            owner = store.get_by_email(email)
            if owner is not None and owner.id != current.id:
                raise ProfileUpdateError("This email is already registered by another user.")
            updates["email"] = email

    return updates
