"""Database connection management for the local SQLite workspace.

Connections are configured with foreign key enforcement and WAL mode, and the
schema is created on open.
"""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from platformdirs import user_data_dir

from collabdesk_cli.adapters.sqlite import schema

MEMORY = ":memory:"


def default_db_path() -> Path:
    """Default workspace database location."""
    return Path(user_data_dir("collabdesk_cli")) / "workspace.db"


def open_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    """Open a configured connection to a workspace database.

    Args:
        db_path: Path to database file, ``":memory:"`` for a throwaway
            database, or None for the default location.

    Returns:
        sqlite3.Connection with the schema applied
    """
    if db_path is None:
        db_path = default_db_path()

    in_memory = str(db_path) == MEMORY
    is_new_database = False
    if not in_memory:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        is_new_database = not db_path.exists()

    connection = sqlite3.connect(
        str(db_path),
        check_same_thread=False,
        timeout=30.0,  # Wait up to 30s for locks
    )

    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    if not in_memory:
        connection.execute("PRAGMA journal_mode = WAL")

    # Set file permissions (owner read/write only)
    if is_new_database:
        os.chmod(db_path, 0o600)

    apply_schema(connection)
    return connection


def apply_schema(connection: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not exist."""
    for statement in schema.ALL_TABLES:
        connection.execute(statement)
    for statement in schema.ALL_INDEXES:
        connection.execute(statement)
    connection.execute(f"PRAGMA user_version = {schema.SCHEMA_VERSION}")
    connection.commit()
