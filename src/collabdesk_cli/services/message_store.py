"""Message store - chat history in send order.

Messages cannot be edited. Sending goes through the mutation coordinator in
echo-wait mode: a pending entry shows the message immediately and is swapped
for the canonical row once the backend confirms it, either by answering the
insert or by echoing the row into a re-fetch.
"""

from __future__ import annotations

from collabdesk_cli.models import Message, MessageCreate, OrderBy, Scope
from collabdesk_cli.services.entity_store import (
    TEMP_ID_PREFIX,
    EntityStore,
    MutationMode,
    is_temp_id,
)

__all__ = ["MessageStore", "TEMP_ID_PREFIX", "is_temp_id"]


class MessageStore(EntityStore[Message]):
    """Cache of chat messages, oldest first."""

    table = "messages"
    model = Message
    create_model = MessageCreate
    order = OrderBy(descending=False)
    mode = MutationMode.ECHO_WAIT
    immutable = True

    @staticmethod
    def scope_for(project_id: str | None) -> Scope:
        """Scope of a project's chat; None means every message."""
        if project_id is None:
            return Scope.unscoped()
        return Scope.where("project_id", project_id)

    @staticmethod
    def global_scope() -> Scope:
        return Scope.where("project_id", None)

    async def fetch(self, project_id: str | Scope | None = None) -> tuple[Message, ...]:
        """Load the messages of a project, or all messages."""
        scope = project_id if isinstance(project_id, Scope) else self.scope_for(project_id)
        return await super().fetch(scope)

    async def fetch_global(self) -> tuple[Message, ...]:
        """Load only the messages of the global channel."""
        return await super().fetch(self.global_scope())

    def confirms(self, pending: Message, item: Message) -> bool:
        # Same author, same channel, same text
        return (
            not item.pending
            and item.sender_id == pending.sender_id
            and item.project_id == pending.project_id
            and item.receiver_id == pending.receiver_id
            and item.message == pending.message
        )
