"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as tasks/store.py).
UserStore is the repository; _row_to_user is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  hashed_password is only loaded by get_by_email(), which the login flow
  needs. get_profile() selects every other column so the auth guard never
  carries a password hash into the request context.

  Email uniqueness is checked by callers (signup, profile update) with
  get_by_email() right before the write. The UNIQUE constraint below is the
  last line; a concurrent duplicate surfaces as IntegrityError.

Layer rule: no imports from api/, core/, or tasks/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine

from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("mobile_number", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# Every column except hashed_password.
_profile_columns = [c for c in _users.c if c.name != "hashed_password"]

# Columns a profile update may touch. Checked before any SQL write.
_MUTABLE_FIELDS = frozenset({"username", "email", "mobile_number"})


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///tasktracker.db")
        user_id = store.create_user(User(username="al", email="a@b.com", hashed_password=hash_password("Abcdef1!")))
        user = store.get_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    email=user.email,
                    hashed_password=user.hashed_password,
                    mobile_number=user.mobile_number or None,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email, password hash included. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_profile(self, user_id: int) -> User | None:
        """Look up a user by primary key without the password hash. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(*_profile_columns).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_profile(self, user_id: int, **fields) -> User | None:
        """Apply a partial update and return the refreshed profile.

        Accepted fields: username, email, mobile_number. updated_at is stamped
        on every call, so callers must only invoke this when something changed.

        Returns None if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_profile(user_id)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # Rows selected through _profile_columns have no hashed_password attribute.
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=getattr(row, "hashed_password", None),
        mobile_number=row.mobile_number,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
