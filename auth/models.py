"""
auth/models.py -- Domain dataclass for the user account entity.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tasks/models.py -- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/, core/, or tasks/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    hashed_password is None whenever the record was loaded through a
    password-excluding lookup (UserStore.get_profile). Anything that reaches
    the route layer through the auth guard has it stripped.

    mobile_number is None when unset; the empty string is never stored.
    """

    username: str
    email: str
    id: int | None = None
    hashed_password: str | None = None
    mobile_number: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
