"""
API request and response models for TaskTracker REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are separate from the dataclasses in auth/models.py and
tasks/models.py, which own the internal domain representation. Route handlers
map between the two.

Wire format: camelCase field names (mobileNumber, isCompleted, createdAt).
Request models forbid unknown fields and use strict types, so a typo or a
number where a string belongs is a 400 rather than being silently dropped.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, model_validator
from pydantic.alias_generators import to_camel

from auth.models import User
from tasks.models import Task

# bcrypt only looks at the first 72 bytes; keep passwords well inside that.
_MAX_PASSWORD = 64

_request_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)
_response_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TaskStatusFilter(str, Enum):
    all = "all"
    completed = "completed"
    incomplete = "incomplete"


class TaskSortOrder(str, Enum):
    recents = "recents"
    oldest = "oldest"


# ---------------------------------------------------------------------------
# Request models -- auth
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /signup.

    Fields are nullable at the schema level so that an absent field gets the
    same ordered, human-readable message as an empty one (see
    auth.validation.registration_error) instead of a generic schema error.
    """

    model_config = _request_config

    username: Optional[StrictStr] = Field(default=None, max_length=255)
    email: Optional[StrictStr] = Field(default=None, max_length=255)
    password: Optional[StrictStr] = Field(default=None, max_length=_MAX_PASSWORD)


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    model_config = _request_config

    email: Optional[StrictStr] = Field(default=None, max_length=255)
    password: Optional[StrictStr] = Field(default=None, max_length=_MAX_PASSWORD)


class ProfileUpdate(BaseModel):
    """Request body for PUT /profile. Every field is optional.

    Which fields were actually sent is read from model_fields_set, so an
    explicit null mobileNumber (clear it) differs from an absent one (leave it).
    """

    model_config = _request_config

    username: Optional[StrictStr] = Field(default=None, max_length=255)
    email: Optional[StrictStr] = Field(default=None, max_length=255)
    mobile_number: Optional[StrictStr] = Field(default=None, max_length=32)

    def submitted(self) -> dict:
        """Return only the fields present in the request body, keyed by column name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# ---------------------------------------------------------------------------
# Request models -- tasks
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    """Request body for POST /tasks. A missing title is reported by the route."""

    model_config = _request_config

    title: Optional[StrictStr] = None
    description: Optional[StrictStr] = None


class TaskUpdate(BaseModel):
    """Request body for PUT /tasks/{id}. Only sent fields are applied."""

    model_config = _request_config

    title: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    is_completed: Optional[StrictBool] = None

    @model_validator(mode="after")
    def reject_null_completion(self) -> "TaskUpdate":
        if "is_completed" in self.model_fields_set and self.is_completed is None:
            raise ValueError("isCompleted must be true or false.")
        return self

    def submitted(self) -> dict:
        """Return only the fields present in the request body, keyed by column name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of an account. The password hash never appears here."""

    model_config = _response_config

    id: int
    username: str
    email: str
    mobile_number: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            mobile_number=user.mobile_number,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class ProfileResponse(BaseModel):
    """Response for GET /profile."""

    model_config = _response_config

    user: UserResponse


class ProfileUpdateResponse(BaseModel):
    """Response for PUT /profile -- the message says whether anything was written."""

    model_config = _response_config

    message: str
    user: UserResponse


class TaskResponse(BaseModel):
    """One task as returned by every task endpoint."""

    model_config = _response_config

    id: int
    title: str
    description: Optional[str] = None
    is_completed: bool
    user_id: int
    created_at: str
    updated_at: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        """Factory Method -- the mapping lives here, next to the output model."""
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            is_completed=task.is_completed,
            user_id=task.user_id,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class MessageResponse(BaseModel):
    model_config = _response_config

    message: str


class SuccessResponse(BaseModel):
    """Response for signup and login."""

    model_config = _response_config

    message: str
    success: bool = True


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str]
