"""
auth/validation.py -- Credential input checks for signup, login and profile edits.

Each check returns the first error message that applies, or None when the
input is acceptable. Routes turn a message into a 400. The ordering of the
checks is part of the contract: clients see exactly one message, and it is
always the earliest failing rule.

Layer rule: no imports from api/, core/, or tasks/.
"""

from __future__ import annotations

import re

# local@domain.tld; deliverability is not checked.
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

MIN_PASSWORD_LENGTH = 8
# bcrypt refuses (5.x) or truncates (4.x) input past 72 bytes.
MAX_PASSWORD_BYTES = 72

# (pattern that must match, message when it does not), checked in order
# after the length and forbidden-character rules.
_PASSWORD_CLASSES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter."),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter."),
    (re.compile(r"[0-9]"), "Password must contain at least one number."),
    (re.compile(r"[^a-zA-Z0-9]"), "Password must contain at least one special symbol."),
)

INVALID_EMAIL = "Please enter a valid email address."


def is_valid_email(email: str) -> bool:
    return _EMAIL_RE.fullmatch(email) is not None


def password_error(password: str) -> str | None:
    """Return the first password-strength rule the password breaks, or None."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return f"Password must be at most {MAX_PASSWORD_BYTES} bytes long."
    if re.search(r"\s", password) or "." in password:
        return "Password cannot contain spaces or dots."
    for pattern, message in _PASSWORD_CLASSES:
        if not pattern.search(password):
            return message
    return None


def registration_error(username: str | None, email: str | None, password: str | None) -> str | None:
    """Validate a signup payload: presence, then email shape, then password strength.

    Uniqueness is not checked here -- it needs the store, and its failure
    message is generic.
    """
    if not username or not email or not password:
        return "Username, email, and password are required."
    if not is_valid_email(email):
        return INVALID_EMAIL
    return password_error(password)


def login_error(email: str | None, password: str | None) -> str | None:
    """Validate a login payload: presence, then email shape."""
    if not email or not password:
        return "Email and password are required."
    if not is_valid_email(email):
        return INVALID_EMAIL
    return None
