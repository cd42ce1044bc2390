"""Workspace - the stores, channels and coordinator of one session.

The workspace is decided once at startup from the active context, like a
storage strategy: a ``local`` context runs on a SQLite backend providing all
three collaborator interfaces, a ``remote`` context combines the REST backend
with the polling push transport. Consumers receive the workspace by
reference; nothing here is a module-level singleton.
"""

from __future__ import annotations

from collabdesk_cli.models import Context
from collabdesk_cli.repositories import IdentityProvider, PushTransport, RemoteStore
from collabdesk_cli.services.config_service import ConfigService, get_config_service
from collabdesk_cli.services.entity_store import EntityStore
from collabdesk_cli.services.message_store import MessageStore
from collabdesk_cli.services.mutation_coordinator import OptimisticMutationCoordinator
from collabdesk_cli.services.project_store import ProjectStore
from collabdesk_cli.services.subscription_manager import SubscriptionManager
from collabdesk_cli.services.task_store import TaskStore
from collabdesk_cli.services.user_store import UserStore
from collabdesk_cli.utils.logger import get_logger


class Workspace:
    """Container owning every store of a session."""

    def __init__(
        self,
        remote: RemoteStore,
        push: PushTransport,
        identity: IdentityProvider,
        storage_type: str = "local",
    ):
        self.remote = remote
        self.push = push
        self.identity = identity
        self.storage_type = storage_type

        self.projects = ProjectStore(remote)
        self.tasks = TaskStore(remote)
        self.messages = MessageStore(remote)
        self.users = UserStore(remote, identity)
        self.subscriptions = SubscriptionManager(push)
        self.mutations = OptimisticMutationCoordinator()
        self._logger = get_logger("workspace")

    @property
    def stores(self) -> tuple[EntityStore, ...]:
        return (self.projects, self.tasks, self.messages, self.users)

    async def __aenter__(self) -> Workspace:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def reset(self) -> None:
        """Close every channel and drop every cache (sign-out)."""
        await self.subscriptions.close_all()
        for store in self.stores:
            store.clear()
        self._logger.info("workspace reset")

    async def close(self) -> None:
        """Release channels and backend resources."""
        await self.subscriptions.close_all()
        closed = set()
        for resource in (self.push, self.remote, self.identity):
            close = getattr(resource, "close", None)
            if close is None or id(resource) in closed:
                continue
            closed.add(id(resource))
            await close()


def build_workspace(
    config_service: ConfigService | None = None,
    context: Context | None = None,
) -> Workspace:
    """Create the workspace for a context (the current one by default).

    Raises:
        ValueError: If the context type is unknown
    """
    config_service = config_service or get_config_service()
    config = config_service.config
    context = context or config.get_current_context()

    if context.type == "local":
        from collabdesk_cli.adapters.sqlite import SqliteBackend

        backend = SqliteBackend(db_path=context.source)
        workspace = Workspace(backend, backend, backend, storage_type="local")

    elif context.type == "remote":
        from collabdesk_cli.adapters.polling import PollingPushTransport
        from collabdesk_cli.adapters.rest_api import RestApiBackend
        from collabdesk_cli.services.api.client import APIClient

        client = APIClient(
            context.source, api_key=context.anon_key, timeout=config.api.timeout
        )
        backend = RestApiBackend(client)
        push = PollingPushTransport(backend, interval=config.sync.interval)
        workspace = Workspace(backend, push, backend, storage_type="remote")

    else:
        raise ValueError(
            f"Invalid context type: {context.type}. Must be 'local' or 'remote'"
        )

    get_logger("workspace").debug(
        "workspace for context %s (%s)", context.name, context.type
    )
    return workspace
