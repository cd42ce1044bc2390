"""REST API adapter - backend implementation over PostgREST and GoTrue.

This adapter wraps the API client to implement the RemoteStore and
IdentityProvider interfaces. Push notifications for remote contexts come from
PollingPushTransport.
"""

from __future__ import annotations

from collabdesk_cli.models import (
    AuthenticationError,
    AuthRecord,
    NotFoundError,
    OrderBy,
    Scope,
    TransportError,
)
from collabdesk_cli.repositories import IdentityProvider, RemoteStore, Row
from collabdesk_cli.services.api.auth import AuthAPI
from collabdesk_cli.services.api.client import APIClient
from collabdesk_cli.services.api.rows import RowsAPI


def scope_filters(scope: Scope) -> dict[str, str]:
    """Translate a scope into PostgREST query filters."""
    if scope.is_unscoped:
        return {}
    if scope.value is None:
        return {scope.field: "is.null"}
    return {scope.field: f"eq.{scope.value}"}


def order_param(order: OrderBy) -> str:
    """Translate an ordering rule into the PostgREST ``order`` parameter."""
    return f"{order.field}.{'desc' if order.descending else 'asc'}"


class RestApiBackend(RemoteStore, IdentityProvider):
    """Remote backend reached over HTTP."""

    def __init__(self, client: APIClient):
        """Initialize the REST backend.

        Args:
            client: Configured APIClient for the backend URL
        """
        self.client = client
        self.rows = RowsAPI(client)
        self.auth = AuthAPI(client)
        self._session: AuthRecord | None = None
        self._refresh_token: str | None = None

    async def close(self) -> None:
        await self.client.close()

    @staticmethod
    def _single(table: str, rows: list[dict]) -> Row:
        if not rows:
            raise TransportError(f"{table}: backend returned no representation")
        return rows[0]

    async def select(self, table: str, scope: Scope, order: OrderBy) -> list[Row]:
        """Read rows of a table inside a scope."""
        return await self.rows.select(
            table, filters=scope_filters(scope), order=order_param(order)
        )

    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return the canonical row."""
        return self._single(table, await self.rows.insert(table, row))

    async def update(self, table: str, row_id: str, patch: Row) -> Row:
        """Patch a row; an empty representation means no row matched."""
        rows = await self.rows.update(table, row_id, patch)
        if not rows:
            raise NotFoundError(f"{table} row not found: {row_id}")
        return rows[0]

    async def upsert(self, table: str, row: Row) -> Row:
        """Insert or merge a row on its id."""
        return self._single(table, await self.rows.upsert(table, row))

    async def delete(self, table: str, row_id: str) -> bool:
        """Delete a row; absent ids are not an error."""
        return bool(await self.rows.delete(table, row_id))

    # ------------------------------------------------------------------
    # IdentityProvider
    # ------------------------------------------------------------------

    def _open_session(self, data: dict) -> AuthRecord:
        user = data.get("user") or data
        if data.get("access_token"):
            self.client.access_token = data["access_token"]
            self._refresh_token = data.get("refresh_token")
        self._session = AuthRecord.model_validate(user)
        return self._session

    async def get_session_user(self) -> AuthRecord | None:
        return self._session

    async def sign_in(self, email: str, password: str) -> AuthRecord:
        try:
            data = await self.auth.sign_in(email, password)
        except TransportError as e:
            raise AuthenticationError(str(e), status_code=e.status_code) from e
        return self._open_session(data)

    async def sign_up(self, email: str, password: str) -> AuthRecord:
        try:
            data = await self.auth.sign_up(email, password)
        except TransportError as e:
            raise AuthenticationError(str(e), status_code=e.status_code) from e
        return self._open_session(data)

    async def sign_out(self) -> None:
        try:
            if self.client.access_token:
                await self.auth.sign_out()
        finally:
            self.client.access_token = None
            self._refresh_token = None
            self._session = None

    async def reset_password(self, email: str, redirect_to: str | None = None) -> None:
        try:
            await self.auth.recover(email, redirect_to)
        except TransportError as e:
            raise AuthenticationError(str(e), status_code=e.status_code) from e

    async def list_auth_records(self) -> list[AuthRecord]:
        data = await self.auth.list_users()
        users = data.get("users", []) if isinstance(data, dict) else data
        return [AuthRecord.model_validate(user) for user in users]

    def export_session(self) -> dict[str, str] | None:
        if self._session is None or not self.client.access_token:
            return None
        credentials = {"token": self.client.access_token}
        if self._refresh_token:
            credentials["refresh_token"] = self._refresh_token
        return credentials

    async def restore_session(self, credentials: dict[str, str]) -> AuthRecord | None:
        token = credentials.get("token")
        if not token:
            return None
        self.client.access_token = token
        self._refresh_token = credentials.get("refresh_token")
        try:
            user = await self.auth.get_user()
        except TransportError as e:
            if e.status_code in (401, 403):
                # Expired or revoked token
                self.client.access_token = None
                self._refresh_token = None
                self._session = None
                return None
            raise
        self._session = AuthRecord.model_validate(user)
        return self._session
