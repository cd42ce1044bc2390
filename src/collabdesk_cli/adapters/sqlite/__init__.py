"""SQLite adapter module - Local workspace backend."""

from collabdesk_cli.adapters.sqlite.backend import LocalSubscription, SqliteBackend
from collabdesk_cli.adapters.sqlite.connection import open_connection

__all__ = [
    "SqliteBackend",
    "LocalSubscription",
    "open_connection",
]
