"""Utility functions for SQLite adapter."""

from __future__ import annotations

import hashlib
import json
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

_PBKDF2_ROUNDS = 100_000


def generate_uuid() -> str:
    """Generate a new UUID as string."""
    return str(uuid.uuid4())


class MonotonicClock:
    """Wall clock that never returns the same instant twice.

    Rows created within the same microsecond would otherwise tie on
    ``created_at`` and lose their insertion order.
    """

    def __init__(self):
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(UTC)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        return current

    def now_iso(self) -> str:
        return self.now().isoformat()


def row_to_dict(row: Any, json_columns: frozenset[str] = frozenset()) -> dict[str, Any]:
    """Convert sqlite3.Row to dictionary, decoding JSON columns.

    Args:
        row: sqlite3.Row object
        json_columns: Column names stored as JSON text

    Returns:
        Dictionary with column names as keys
    """
    if row is None:
        return {}
    data = dict(row)
    for column in json_columns:
        if isinstance(data.get(column), str):
            data[column] = json.loads(data[column])
    return data


def encode_row(row: dict[str, Any], json_columns: frozenset[str] = frozenset()) -> dict[str, Any]:
    """Encode JSON columns of a row for storage."""
    encoded = dict(row)
    for column in json_columns:
        if column in encoded and not isinstance(encoded[column], str):
            encoded[column] = json.dumps(encoded[column])
    return encoded


def hash_password(password: str, salt: str | None = None) -> str:
    """Hash a password as ``salt$digest`` using PBKDF2-SHA256."""
    if salt is None:
        salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ROUNDS
    )
    return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored ``salt$digest`` hash."""
    salt, _, _digest = stored.partition("$")
    return secrets.compare_digest(hash_password(password, salt), stored)
