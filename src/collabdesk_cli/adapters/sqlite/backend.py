"""SQLite implementation of the backend interfaces.

A local workspace behaves like the remote backend: it assigns ids and
timestamps, enforces the relational constraints, keeps an authentication
table, and fans change events out to push subscriptions in-process.
"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from collabdesk_cli.adapters.sqlite.connection import open_connection
from collabdesk_cli.adapters.sqlite.schema import CASCADES, JSON_COLUMNS, PUBLIC_TABLES
from collabdesk_cli.adapters.sqlite.utils import (
    MonotonicClock,
    encode_row,
    generate_uuid,
    hash_password,
    row_to_dict,
    verify_password,
)
from collabdesk_cli.models import (
    AuthenticationError,
    AuthRecord,
    ChangeEvent,
    ChangeType,
    NotFoundError,
    OrderBy,
    Scope,
    TransportError,
)
from collabdesk_cli.repositories import Backend, Row, Subscription
from collabdesk_cli.utils.logger import get_logger

_CLOSED = object()
_SERVER_FIELDS = ("id", "created_at", "updated_at")


class LocalSubscription(Subscription):
    """Push subscription fed by a SqliteBackend."""

    def __init__(self, table: str, events: Iterable[ChangeType], scope: Scope):
        self.table = table
        self.events = frozenset(events)
        self.scope = scope
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def wants(self, event: ChangeEvent) -> bool:
        """Check whether an event passes this subscription's filter."""
        return (
            not self._closed
            and event.table == self.table
            and event.event in self.events
            and self.scope.matches(event.row)
        )

    def deliver(self, event: ChangeEvent) -> None:
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __anext__(self) -> ChangeEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        # Events still queued when the subscription closed are dropped
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return item


class SqliteBackend(Backend):
    """Local workspace backend."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        connection: sqlite3.Connection | None = None,
    ):
        """Initialize the SQLite backend.

        Args:
            db_path: Optional database file path. If None, uses default location.
            connection: Optional pre-opened connection (takes precedence).
        """
        self.db_path = db_path
        self._connection = connection
        self._owns_connection = connection is None
        self._clock = MonotonicClock()
        self._columns_cache: dict[str, frozenset[str]] = {}
        self._session: AuthRecord | None = None
        self._subscriptions: list[LocalSubscription] = []
        self._logger = get_logger("sqlite")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = open_connection(self.db_path)
        return self._connection

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.close()
        self._subscriptions.clear()
        if self._owns_connection and self._connection is not None:
            self._connection.close()
            self._connection = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _columns(self, table: str) -> frozenset[str]:
        if table not in self._columns_cache:
            cursor = self.connection.execute(f"PRAGMA table_info({table})")
            self._columns_cache[table] = frozenset(row["name"] for row in cursor)
        return self._columns_cache[table]

    def _check_table(self, table: str) -> None:
        if table not in PUBLIC_TABLES:
            raise TransportError(f'relation "{table}" does not exist')

    def _check_columns(self, table: str, names: Iterable[str]) -> None:
        unknown = sorted(set(names) - self._columns(table))
        if unknown:
            raise TransportError(
                f'column "{unknown[0]}" of relation "{table}" does not exist'
            )

    def _decode(self, table: str, row: Any) -> Row:
        return row_to_dict(row, JSON_COLUMNS.get(table, frozenset()))

    def _write(self, table: str, sql: str, params: list[Any]) -> sqlite3.Cursor:
        try:
            with self.connection:
                return self.connection.execute(sql, params)
        except sqlite3.Error as e:
            raise TransportError(f"{table}: {e}") from e

    def _get_row(self, table: str, row_id: str) -> Row | None:
        cursor = self.connection.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,))
        row = cursor.fetchone()
        return self._decode(table, row) if row else None

    def _publish(self, table: str, change: ChangeType, row: Row) -> None:
        event = ChangeEvent(event=change, table=table, row=row)
        for subscription in list(self._subscriptions):
            if subscription.wants(event):
                subscription.deliver(event)

    def _insert_row(self, table: str, row_id: str, data: Row) -> Row:
        now = self._clock.now_iso()
        record = {**data, "id": row_id, "created_at": now}
        if "updated_at" in self._columns(table):
            record["updated_at"] = now
        self._check_columns(table, record)
        record = encode_row(record, JSON_COLUMNS.get(table, frozenset()))

        columns = ", ".join(record)
        placeholders = ", ".join("?" for _ in record)
        self._write(
            table,
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            list(record.values()),
        )
        canonical = self._get_row(table, row_id)
        self._publish(table, ChangeType.INSERT, canonical)
        return canonical

    # ------------------------------------------------------------------
    # RemoteStore
    # ------------------------------------------------------------------

    async def select(self, table: str, scope: Scope, order: OrderBy) -> list[Row]:
        """Read rows of a table inside a scope."""
        self._check_table(table)
        self._check_columns(table, [order.field])

        query = f"SELECT * FROM {table}"
        params: list[Any] = []
        if not scope.is_unscoped:
            self._check_columns(table, [scope.field])
            if scope.value is None:
                query += f" WHERE {scope.field} IS NULL"
            else:
                query += f" WHERE {scope.field} = ?"
                params.append(scope.value)

        direction = "DESC" if order.descending else "ASC"
        query += f" ORDER BY {order.field} {direction}, rowid {direction}"

        try:
            rows = self.connection.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise TransportError(f"{table}: {e}") from e
        return [self._decode(table, row) for row in rows]

    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row with a backend-assigned id."""
        self._check_table(table)
        data = {k: v for k, v in row.items() if k not in _SERVER_FIELDS}
        return self._insert_row(table, generate_uuid(), data)

    async def update(self, table: str, row_id: str, patch: Row) -> Row:
        """Patch a row and recompute its modification timestamp."""
        self._check_table(table)
        data = {k: v for k, v in patch.items() if k not in ("id", "created_at")}
        if "updated_at" in self._columns(table):
            data["updated_at"] = self._clock.now_iso()
        if not data:
            existing = self._get_row(table, row_id)
            if existing is None:
                raise NotFoundError(f"{table} row not found: {row_id}")
            return existing

        self._check_columns(table, data)
        data = encode_row(data, JSON_COLUMNS.get(table, frozenset()))
        assignments = ", ".join(f"{column} = ?" for column in data)
        cursor = self._write(
            table,
            f"UPDATE {table} SET {assignments} WHERE id = ?",
            [*data.values(), row_id],
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"{table} row not found: {row_id}")

        canonical = self._get_row(table, row_id)
        self._publish(table, ChangeType.UPDATE, canonical)
        return canonical

    async def upsert(self, table: str, row: Row) -> Row:
        """Insert a row under its given id or merge it into the existing one."""
        self._check_table(table)
        row_id = row.get("id")
        if not row_id:
            raise TransportError(f"{table}: upsert requires an id")
        if self._get_row(table, row_id) is not None:
            return await self.update(table, row_id, row)
        data = {k: v for k, v in row.items() if k not in _SERVER_FIELDS}
        return self._insert_row(table, row_id, data)

    async def delete(self, table: str, row_id: str) -> bool:
        """Delete a row; cascaded child deletions are published too."""
        self._check_table(table)
        existing = self._get_row(table, row_id)
        if existing is None:
            return False

        children: list[tuple[str, Row]] = []
        for child_table, column in CASCADES.get(table, []):
            cursor = self.connection.execute(
                f"SELECT * FROM {child_table} WHERE {column} = ?", (row_id,)
            )
            children.extend(
                (child_table, self._decode(child_table, child)) for child in cursor
            )

        self._write(table, f"DELETE FROM {table} WHERE id = ?", [row_id])
        for child_table, child in children:
            self._publish(child_table, ChangeType.DELETE, child)
        self._publish(table, ChangeType.DELETE, existing)
        return True

    # ------------------------------------------------------------------
    # PushTransport
    # ------------------------------------------------------------------

    async def subscribe(
        self, table: str, events: Iterable[ChangeType], scope: Scope
    ) -> LocalSubscription:
        self._check_table(table)
        if not scope.is_unscoped:
            self._check_columns(table, [scope.field])
        subscription = LocalSubscription(table, events, scope)
        self._subscriptions.append(subscription)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        if isinstance(subscription, LocalSubscription):
            subscription.close()
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    # ------------------------------------------------------------------
    # IdentityProvider
    # ------------------------------------------------------------------

    def _auth_row(self, column: str, value: str) -> sqlite3.Row | None:
        cursor = self.connection.execute(
            f"SELECT * FROM auth_users WHERE {column} = ?", (value,)
        )
        return cursor.fetchone()

    async def get_session_user(self) -> AuthRecord | None:
        return self._session

    async def sign_up(self, email: str, password: str) -> AuthRecord:
        email = (email or "").strip().lower()
        if "@" not in email:
            raise AuthenticationError("A valid email is required")
        if len(password or "") < 6:
            raise AuthenticationError("Password should be at least 6 characters")
        if self._auth_row("email", email) is not None:
            raise AuthenticationError("User already registered")

        user_id = generate_uuid()
        now = self._clock.now_iso()
        self._write(
            "auth_users",
            "INSERT INTO auth_users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
            [user_id, email, hash_password(password), now],
        )
        self._session = AuthRecord(id=user_id, email=email, created_at=now)
        return self._session

    async def sign_in(self, email: str, password: str) -> AuthRecord:
        row = self._auth_row("email", (email or "").strip().lower())
        if row is None or not verify_password(password or "", row["password_hash"]):
            raise AuthenticationError("Invalid login credentials")
        self._session = AuthRecord(**dict(row))
        return self._session

    async def sign_out(self) -> None:
        self._session = None

    async def reset_password(self, email: str, redirect_to: str | None = None) -> None:
        # A local workspace has no mail delivery; the request is only validated
        email = (email or "").strip().lower()
        if "@" not in email:
            raise AuthenticationError("A valid email is required")
        self._logger.info(
            "password reset requested for %s (known: %s)",
            email,
            self._auth_row("email", email) is not None,
        )

    async def list_auth_records(self) -> list[AuthRecord]:
        cursor = self.connection.execute(
            "SELECT id, email, created_at FROM auth_users ORDER BY created_at DESC"
        )
        return [AuthRecord(**dict(row)) for row in cursor]

    def export_session(self) -> dict[str, str] | None:
        if self._session is None:
            return None
        return {"user_id": self._session.id}

    async def restore_session(self, credentials: dict[str, str]) -> AuthRecord | None:
        user_id = credentials.get("user_id")
        row = self._auth_row("id", user_id) if user_id else None
        self._session = AuthRecord(**dict(row)) if row else None
        return self._session
