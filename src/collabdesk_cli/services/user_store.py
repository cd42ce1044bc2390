"""User store - team members resolved from auth and profile records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from collabdesk_cli.models import (
    AuthRecord,
    OrderBy,
    ProfileRecord,
    ProfileUpdate,
    Scope,
    User,
    ValidationError,
)
from collabdesk_cli.repositories import IdentityProvider, RemoteStore
from collabdesk_cli.services.entity_store import EntityStore, validate_payload
from collabdesk_cli.services.identity_resolver import resolve_users


class _LoadedUsers(list):
    """Resolved users together with the identities they were merged from."""

    def __init__(
        self,
        users: list[User],
        auth_records: list[AuthRecord],
        session: AuthRecord | None,
    ):
        super().__init__(users)
        self.auth_records = auth_records
        self.session = session


class UserStore(EntityStore[User]):
    """Cache of users, most recently joined first.

    The backing table is ``profiles``; identity fields come from the
    authentication service and are merged in by the identity resolver.
    """

    table = "profiles"
    model = User
    update_model = ProfileUpdate
    order = OrderBy(field="joined_at")

    def __init__(self, remote: RemoteStore, identity: IdentityProvider):
        super().__init__(remote)
        self.identity = identity
        self._auth_records: dict[str, AuthRecord] = {}
        self._session: AuthRecord | None = None

    async def fetch(self, scope: Scope | None = None) -> tuple[User, ...]:
        """Load profiles and identities and merge them."""
        return await super().fetch(scope)

    async def _load(self, scope: Scope) -> list[User]:
        rows = await self.remote.select(self.table, scope, OrderBy())
        profiles = [ProfileRecord.model_validate(row) for row in rows]
        auth_records = await self.identity.list_auth_records()
        session = await self.identity.get_session_user()
        return _LoadedUsers(resolve_users(auth_records, profiles, session), auth_records, session)

    def _apply_fetched(self, scope: Scope, items: list[User]) -> None:
        # Identities are kept only with the fetch that resolved them
        if isinstance(items, _LoadedUsers):
            self._auth_records = {record.id: record for record in items.auth_records}
            self._session = items.session
        super()._apply_fetched(scope, items)

    def current_user(self) -> User | None:
        """The cached view of the signed-in user."""
        if self._session is None:
            return None
        return self.get(self._session.id)

    async def update_profile(
        self,
        user_id: str,
        username: str | None = None,
        phone: str | None = None,
    ) -> User:
        """Create or edit the profile row of a user.

        Raises:
            ValidationError: If nothing is set or the username is blank
            TransportError: If the backend rejects the write
        """
        fields: dict[str, Any] = {}
        if username is not None:
            fields["username"] = username
        if phone is not None:
            fields["phone"] = phone
        return await self.update(user_id, fields)

    async def update(self, item_id: str, patch: Any) -> User:
        payload = validate_payload(ProfileUpdate, patch)
        row = {
            "id": item_id,
            **payload.model_dump(mode="json", exclude_unset=True),
            "updated_at": datetime.now(UTC).isoformat(),
        }
        profile = ProfileRecord.model_validate(await self.remote.upsert(self.table, row))

        auth = self._auth_records.get(item_id)
        if auth is None and self._session is not None and self._session.id == item_id:
            auth = self._session
        user = resolve_users([auth] if auth else [], [profile])[0]
        self._replace(user)
        self._logger.info("updated profile %s", item_id)
        return user

    async def delete(self, item_id: str) -> None:
        raise ValidationError("users cannot be deleted from the client")

    def clear(self) -> None:
        self._auth_records = {}
        self._session = None
        super().clear()
