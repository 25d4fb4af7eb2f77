"""
tasks/store.py -- SQLAlchemy-backed persistence layer for task records.

Uses SQLAlchemy Core (not ORM) so the dataclass in tasks/models.py remains
the authoritative domain representation.

Pattern: Repository + Data Mapper. TaskStore is the repository; _row_to_task
is the mapper. Route handlers never touch SQL directly.

Ownership: every method that reads or writes a single task takes the owner's
user id and puts it in the WHERE clause next to the task id. A task owned by
someone else is indistinguishable from a task that does not exist -- both
come back as None / False.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = TaskStore("sqlite:///tasktracker.db")
    task_id = store.create_task(Task(title="buy milk", user_id=1))
    tasks = store.list_tasks(user_id=1, status="incomplete", sort="recents")
    store.update_task(task_id, user_id=1, is_completed=True)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, or_
from sqlalchemy.engine import Engine

from tasks.models import Task

# status filter values accepted by list_tasks()
STATUS_FILTERS = ("all", "completed", "incomplete")
# sort values accepted by list_tasks(); both order by creation
SORT_ORDERS = ("recents", "oldest")

_MUTABLE_FIELDS = frozenset({"title", "description", "is_completed"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("title", Text, nullable=False),
    Column("description", Text),
    Column("is_completed", Integer, nullable=False, server_default="0"),  # boolean stored as 0/1
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode; set per-connection because PRAGMAs are not inherited."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so user search text matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TaskStore:
    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # Route handlers run in FastAPI's thread pool; the same pooled
            # connection may be used from more than one thread.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def _owned(self, task_id: int, user_id: int):
        return (_tasks.c.id == task_id) & (_tasks.c.user_id == user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_tasks(
        self,
        user_id: int,
        status: str = "all",
        search: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> list[Task]:
        """Return the user's tasks, optionally filtered, searched and sorted.

        status  -- "all", "completed" or "incomplete"
        search  -- case-insensitive substring of title or description
        sort    -- "recents" (newest first), "oldest", or None for creation order
        """
        if status not in STATUS_FILTERS:
            raise ValueError(f"Unknown status filter: {status!r}")
        if sort is not None and sort not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order: {sort!r}")

        query = _tasks.select().where(_tasks.c.user_id == user_id)
        if status == "completed":
            query = query.where(_tasks.c.is_completed == 1)
        elif status == "incomplete":
            query = query.where(_tasks.c.is_completed == 0)
        if search:
            term = _escape_like(search)
            query = query.where(
                or_(
                    _tasks.c.title.ilike(f"%{term}%", escape="\\"),
                    _tasks.c.description.ilike(f"%{term}%", escape="\\"),
                )
            )
        query = query.order_by(_tasks.c.id.desc() if sort == "recents" else _tasks.c.id.asc())

        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_task(r) for r in rows]

    def get_task(self, task_id: int, user_id: int) -> Optional[Task]:
        """Return the task if it exists and belongs to user_id, else None."""
        with self.engine.connect() as conn:
            row = conn.execute(_tasks.select().where(self._owned(task_id, user_id))).fetchone()
        return _row_to_task(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_task(self, task: Task) -> int:
        """Insert a new task and return its assigned database ID."""
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _tasks.insert().values(
                    user_id=task.user_id,
                    title=task.title,
                    description=task.description,
                    is_completed=1 if task.is_completed else 0,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_task(self, task_id: int, user_id: int, **fields) -> Optional[Task]:
        """Apply the given fields to an owned task and return the updated record.

        Accepted fields: title, description, is_completed. Passing no fields
        performs no write and simply returns the current record.

        Returns None if the task does not exist or belongs to someone else.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown task fields: {unknown!r}")
        if not fields:
            return self.get_task(task_id, user_id)
        if "is_completed" in fields:
            fields["is_completed"] = 1 if fields["is_completed"] else 0
        with self.engine.connect() as conn:
            result = conn.execute(
                _tasks.update().where(self._owned(task_id, user_id)).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_task(task_id, user_id)

    def delete_task(self, task_id: int, user_id: int) -> bool:
        """Delete an owned task. Returns False if not found or owned by someone else."""
        with self.engine.connect() as conn:
            result = conn.execute(_tasks.delete().where(self._owned(task_id, user_id)))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        is_completed=bool(row.is_completed),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
