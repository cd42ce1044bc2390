"""Database schema definitions for the local SQLite workspace.

Tables mirror the remote backend's public schema plus an ``auth_users`` table
standing in for the authentication service.
"""

from __future__ import annotations

SCHEMA_VERSION = 1

# Identities known to the authentication service
CREATE_AUTH_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS auth_users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at DATETIME NOT NULL
)
"""

# Display profiles, keyed by auth user id (no FK: profiles may outlive users)
CREATE_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    username TEXT,
    phone TEXT,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
)
"""

CREATE_PROJECTS_TABLE = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    team_id TEXT NOT NULL,
    title TEXT NOT NULL CHECK (length(trim(title)) > 0),
    description TEXT,
    status TEXT NOT NULL DEFAULT 'Active'
        CHECK (status IN ('Active', 'Completed', 'Archived')),
    tags TEXT NOT NULL DEFAULT '[]',
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
)
"""

CREATE_TASKS_TABLE = """
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL,
    title TEXT NOT NULL CHECK (length(trim(title)) > 0),
    description TEXT,
    status TEXT NOT NULL DEFAULT 'Not Started'
        CHECK (status IN ('Not Started', 'Started', 'In Progress', 'Pending', 'Completed')),
    assigned_to TEXT,
    due_date TEXT,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL,
    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
)
"""

CREATE_MESSAGES_TABLE = """
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    sender_id TEXT NOT NULL,
    receiver_id TEXT,
    project_id TEXT,
    message TEXT NOT NULL CHECK (length(trim(message)) > 0),
    created_at DATETIME NOT NULL,
    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE CASCADE
)
"""

ALL_TABLES = [
    CREATE_AUTH_USERS_TABLE,
    CREATE_PROFILES_TABLE,
    CREATE_PROJECTS_TABLE,
    CREATE_TASKS_TABLE,
    CREATE_MESSAGES_TABLE,
]

ALL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_projects_team ON projects(team_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assigned_to)",
    "CREATE INDEX IF NOT EXISTS idx_messages_project ON messages(project_id, created_at)",
]

# Tables reachable through the public row API (auth_users is private)
PUBLIC_TABLES = frozenset({"profiles", "projects", "tasks", "messages"})

# Columns stored as JSON text
JSON_COLUMNS = {"projects": frozenset({"tags"})}

# Child rows removed by ON DELETE CASCADE, as (table, foreign key column)
CASCADES = {
    "projects": [("tasks", "project_id"), ("messages", "project_id")],
}
