"""
tasks/models.py -- Domain dataclass for a to-do item.

Pure data container with zero logic. Ownership scoping lives in tasks/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Task:
    """A single task on a user's list.

    user_id is the owner. Every store query filters on it alongside the task
    id, so a task is invisible to anyone else.

    id is None before the record is written to the database.
    """

    title: str
    user_id: int
    description: Optional[str] = None
    is_completed: bool = False
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, restamped on every update
