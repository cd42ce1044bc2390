"""CollabDesk domain models.

This package contains Pydantic models for the entities cached by the client
(projects, tasks, messages, users), the identity source records, the scope and
ordering rules used by stores, and the push change events.
"""

from .config_models import AppConfig, Context
from .core import (
    ALL_CHANGES,
    AuthRecord,
    ChangeEvent,
    ChangeType,
    Message,
    MessageCreate,
    OrderBy,
    ProfileRecord,
    ProfileUpdate,
    Project,
    ProjectCreate,
    ProjectStatus,
    ProjectUpdate,
    Scope,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
    User,
)
from .exceptions import (
    AuthenticationError,
    CollabDeskError,
    NotFoundError,
    TransportError,
    ValidationError,
)

__all__ = [
    # Project models
    "Project",
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectStatus",
    # Task models
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "TaskStatus",
    # Message models
    "Message",
    "MessageCreate",
    # Identity models
    "AuthRecord",
    "ProfileRecord",
    "ProfileUpdate",
    "User",
    # Sync primitives
    "Scope",
    "OrderBy",
    "ChangeEvent",
    "ChangeType",
    "ALL_CHANGES",
    # Config models
    "AppConfig",
    "Context",
    # Errors
    "CollabDeskError",
    "TransportError",
    "AuthenticationError",
    "NotFoundError",
    "ValidationError",
]
