"""Core data models."""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""

    ACTIVE = "Active"
    COMPLETED = "Completed"
    ARCHIVED = "Archived"


class TaskStatus(str, Enum):
    """Workflow status of a task."""

    NOT_STARTED = "Not Started"
    STARTED = "Started"
    IN_PROGRESS = "In Progress"
    PENDING = "Pending"
    COMPLETED = "Completed"


class ChangeType(str, Enum):
    """Kind of row change delivered by a push channel."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_CHANGES = frozenset(ChangeType)


class _Draft(BaseModel):
    """Base for create/update payloads: strips text and rejects blanks."""

    model_config = ConfigDict(str_strip_whitespace=True)


class _Patch(_Draft):
    """Base for partial updates: at least one field must be set."""

    @model_validator(mode="after")
    def _require_fields(self):
        if not self.model_fields_set:
            raise ValueError("no fields to update")
        return self


class Project(BaseModel):
    """Project model representing a complete project entity.

    Attributes:
        id: Unique identifier assigned by the backend
        team_id: Owning team
        title: Project title
        description: Optional description
        status: Lifecycle status
        tags: Ordered list of tags
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    model_config = ConfigDict(frozen=True)

    id: str
    team_id: str
    title: str
    description: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None


class ProjectCreate(_Draft):
    """Model for creating a new project."""

    team_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    tags: list[str] = Field(default_factory=list)


class ProjectUpdate(_Patch):
    """Model for updating an existing project.

    All fields are optional - only provided fields will be sent.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: ProjectStatus | None = None
    tags: list[str] | None = None

    @field_validator("title", "status", "tags")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be cleared")
        return v


class Task(BaseModel):
    """Task model representing a complete task entity.

    Attributes:
        id: Unique identifier assigned by the backend
        project_id: Parent project
        title: Task title
        description: Optional detailed description
        status: Workflow status
        assigned_to: Optional assignee user ID
        due_date: Optional due date
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    assigned_to: str | None = None
    due_date: date | None = None
    created_at: datetime
    updated_at: datetime | None = None


class TaskCreate(_Draft):
    """Model for creating a new task."""

    project_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str | None = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    assigned_to: str | None = None
    due_date: date | None = None


class TaskUpdate(_Patch):
    """Model for updating an existing task."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: TaskStatus | None = None
    assigned_to: str | None = None
    due_date: date | None = None

    @field_validator("title", "status")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be cleared")
        return v


class Message(BaseModel):
    """Chat message. Immutable once created.

    ``project_id`` of None denotes the global channel. ``pending`` marks a
    locally submitted message that the backend has not confirmed yet.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    sender_id: str
    receiver_id: str | None = None
    project_id: str | None = None
    message: str
    created_at: datetime
    pending: bool = False


class MessageCreate(_Draft):
    """Model for sending a message."""

    sender_id: str = Field(min_length=1)
    receiver_id: str | None = None
    project_id: str | None = None
    message: str = Field(min_length=1)


class AuthRecord(BaseModel):
    """Identity record from the authentication service."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None
    created_at: datetime


class ProfileRecord(BaseModel):
    """Display record from the profiles table, keyed by the auth user ID."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileUpdate(_Patch):
    """Model for editing a profile."""

    username: str | None = Field(default=None, min_length=1)
    phone: str | None = None


class User(BaseModel):
    """Unified user view merged from auth and profile records."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    username: str | None = None
    phone: str | None = None
    joined_at: datetime


class Scope(BaseModel):
    """Filter key bounding a fetch or a subscription.

    ``Scope()`` is unscoped. ``Scope.where("project_id", None)`` selects rows
    whose field IS NULL.
    """

    model_config = ConfigDict(frozen=True)

    field: str | None = None
    value: str | None = None

    @classmethod
    def unscoped(cls) -> "Scope":
        return cls()

    @classmethod
    def where(cls, field: str, value: str | None) -> "Scope":
        return cls(field=field, value=value)

    @property
    def is_unscoped(self) -> bool:
        return self.field is None

    def matches(self, row: dict[str, Any]) -> bool:
        """Check whether a raw row falls inside this scope."""
        if self.field is None:
            return True
        return row.get(self.field) == self.value

    def __str__(self) -> str:
        if self.field is None:
            return "*"
        if self.value is None:
            return f"{self.field}=is.null"
        return f"{self.field}=eq.{self.value}"


class OrderBy(BaseModel):
    """Ordering rule of a store."""

    model_config = ConfigDict(frozen=True)

    field: str = "created_at"
    descending: bool = True


class ChangeEvent(BaseModel):
    """A change notification delivered by a push channel."""

    model_config = ConfigDict(frozen=True)

    event: ChangeType
    table: str
    row: dict[str, Any] = Field(default_factory=dict)
