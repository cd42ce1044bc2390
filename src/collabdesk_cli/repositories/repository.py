"""Backend abstraction layer for CollabDesk.

This module defines the abstract base classes (interfaces) for the remote
collaborators consumed by the synchronization core, following the hexagonal
architecture (Ports & Adapters) pattern.

Rows cross these interfaces as plain dictionaries in their wire shape. Stores
parse them into models; adapters never see models.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from typing import Any

from collabdesk_cli.models import AuthRecord, ChangeEvent, ChangeType, OrderBy, Scope

Row = dict[str, Any]


class RemoteStore(ABC):
    """Abstract base class for the shared relational store.

    Ids and timestamps are assigned by the implementation, never by callers.
    Every failure is raised as TransportError; an update whose target does not
    exist raises NotFoundError.
    """

    @abstractmethod
    async def select(self, table: str, scope: Scope, order: OrderBy) -> list[Row]:
        """Read the rows of a table inside a scope.

        Args:
            table: Table name
            scope: Filter to apply
            order: Ordering of the returned rows

        Returns:
            Authoritative ordered list of rows

        Raises:
            TransportError: If the read fails
        """
        raise NotImplementedError("RemoteStore.select() must be implemented by adapter")

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row.

        Returns:
            The canonical row with backend-assigned id and timestamps

        Raises:
            TransportError: If the insert is rejected
        """
        raise NotImplementedError("RemoteStore.insert() must be implemented by adapter")

    @abstractmethod
    async def update(self, table: str, row_id: str, patch: Row) -> Row:
        """Apply a patch to a row.

        Returns:
            The canonical row after the update

        Raises:
            NotFoundError: If no row has this id
            TransportError: If the update is rejected
        """
        raise NotImplementedError("RemoteStore.update() must be implemented by adapter")

    @abstractmethod
    async def upsert(self, table: str, row: Row) -> Row:
        """Insert a row or merge it into the existing row with the same id.

        Returns:
            The canonical row

        Raises:
            TransportError: If the write is rejected
        """
        raise NotImplementedError("RemoteStore.upsert() must be implemented by adapter")

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> bool:
        """Delete a row. Deleting an absent id is not an error.

        Returns:
            True if a row was removed

        Raises:
            TransportError: If the delete is rejected
        """
        raise NotImplementedError("RemoteStore.delete() must be implemented by adapter")


class Subscription(ABC):
    """A live push subscription: an async iterator of change events.

    Iteration ends once the subscription is closed.
    """

    table: str
    scope: Scope
    events: frozenset[ChangeType]

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self

    @abstractmethod
    async def __anext__(self) -> ChangeEvent:
        raise NotImplementedError

    @property
    @abstractmethod
    def closed(self) -> bool:
        raise NotImplementedError


class PushTransport(ABC):
    """Abstract base class for the shared push-notification transport."""

    @abstractmethod
    async def subscribe(
        self, table: str, events: Iterable[ChangeType], scope: Scope
    ) -> Subscription:
        """Register a filter and return the subscription delivering its events.

        Raises:
            TransportError: If the subscription cannot be registered
        """
        raise NotImplementedError(
            "PushTransport.subscribe() must be implemented by adapter"
        )

    @abstractmethod
    async def unsubscribe(self, subscription: Subscription) -> None:
        """Release a subscription. Releasing twice is a no-op."""
        raise NotImplementedError(
            "PushTransport.unsubscribe() must be implemented by adapter"
        )


class IdentityProvider(ABC):
    """Abstract base class for the authentication service."""

    @abstractmethod
    async def get_session_user(self) -> AuthRecord | None:
        """Return the identity of the current session, if any."""
        raise NotImplementedError

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthRecord:
        """Open a session.

        Raises:
            AuthenticationError: If the credentials are rejected
        """
        raise NotImplementedError

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthRecord:
        """Register a new identity and open a session for it.

        Raises:
            AuthenticationError: If registration is rejected
        """
        raise NotImplementedError

    @abstractmethod
    async def sign_out(self) -> None:
        """Close the current session."""
        raise NotImplementedError

    @abstractmethod
    async def reset_password(self, email: str, redirect_to: str | None = None) -> None:
        """Ask for password reset instructions to be sent to an email address.

        Unknown addresses are not reported.

        Raises:
            AuthenticationError: If the address is malformed or the request rejected
        """
        raise NotImplementedError

    @abstractmethod
    async def list_auth_records(self) -> list[AuthRecord]:
        """List every identity known to the authentication service."""
        raise NotImplementedError

    @abstractmethod
    def export_session(self) -> dict[str, str] | None:
        """Serialize the current session for the credentials file."""
        raise NotImplementedError

    @abstractmethod
    async def restore_session(self, credentials: dict[str, str]) -> AuthRecord | None:
        """Resume a session saved by export_session().

        Returns:
            The session identity, or None if the saved session is no longer valid
        """
        raise NotImplementedError


class Backend(RemoteStore, PushTransport, IdentityProvider, ABC):
    """A backend exposing all three collaborator interfaces."""

    async def close(self) -> None:
        """Release backend resources."""
        return None
