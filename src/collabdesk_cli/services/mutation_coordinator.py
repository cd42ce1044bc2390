"""Mutation coordinator - how local writes reach the caches.

Synchronous-confirm stores absorb the canonical row returned by the mutation
itself; the push echo that follows only causes a redundant re-fetch.

Echo-wait stores show a pending entry as soon as the mutation is submitted.
The entry is reconciled to the canonical row when the insert succeeds or its
echo shows up in a re-fetch, whichever comes first, and removed when the
insert fails. Either way a rejected mutation leaves no net change
in the cache, and nothing is retried.
"""

from __future__ import annotations

from typing import Any

from collabdesk_cli.models import Message
from collabdesk_cli.services.entity_store import EntityStore, MutationMode
from collabdesk_cli.services.message_store import MessageStore
from collabdesk_cli.utils.logger import get_logger


class OptimisticMutationCoordinator:
    """Dispatches mutations by the mode of the target store."""

    def __init__(self):
        self._logger = get_logger("mutations")

    async def create(self, store: EntityStore, draft: Any):
        """Insert a row through the store's mutation mode.

        Raises:
            ValidationError: Before any remote call, if the draft is rejected
            TransportError: If the backend rejects the insert
        """
        if store.mode is MutationMode.ECHO_WAIT:
            return await self._create_pending(store, draft)
        return await store.create(draft)

    async def update(self, store: EntityStore, item_id: str, patch: Any):
        return await store.update(item_id, patch)

    async def delete(self, store: EntityStore, item_id: str) -> None:
        await store.delete(item_id)

    async def send_message(
        self,
        store: MessageStore,
        sender_id: str,
        text: str,
        project_id: str | None = None,
        receiver_id: str | None = None,
    ) -> Message:
        """Post a chat message to a project, or to the global channel."""
        draft = {
            "sender_id": sender_id,
            "message": text,
            "project_id": project_id,
            "receiver_id": receiver_id,
        }
        return await self.create(store, draft)

    async def _create_pending(self, store: EntityStore, draft: Any):
        payload = store.prepare_create(draft)
        pending = store.build_pending(payload)
        store.add_pending(pending)
        self._logger.debug("pending %s %s", store.table, pending.id)
        try:
            row = await store.send_insert(payload)
        except BaseException:
            store.discard_pending(pending.id)
            self._logger.warning("rolled back pending %s %s", store.table, pending.id)
            raise
        item = store.reconcile(pending.id, row)
        self._logger.info("created %s %s", store.table, item.id)
        return item
