"""Push channels keeping entity stores in sync with remote changes.

A channel binds one (table, scope) to the push transport. Every event that
passes its filter triggers a scoped re-fetch of the owning store; the event
payload itself is never merged into the cache.

Usage:

    async with workspace.subscriptions.channel(tasks, TaskStore.scope_for(pid)):
        ...  # tasks stays current while inside the block
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from enum import Enum

from collabdesk_cli.models import ALL_CHANGES, ChangeType, CollabDeskError, Scope
from collabdesk_cli.repositories import PushTransport, Subscription
from collabdesk_cli.services.entity_store import EntityStore
from collabdesk_cli.utils.logger import get_logger

ChannelKey = tuple[str, Scope]


def _consume_result(task: asyncio.Task) -> None:
    if not task.cancelled():
        task.exception()


class ChannelState(str, Enum):
    CLOSED = "closed"
    SUBSCRIBING = "subscribing"
    OPEN = "open"
    CLOSING = "closing"


class Channel:
    """A reference-counted push channel for one store scope."""

    def __init__(
        self,
        transport: PushTransport,
        store: EntityStore,
        scope: Scope,
        events: Iterable[ChangeType] = ALL_CHANGES,
    ):
        self.transport = transport
        self.store = store
        self.scope = scope
        self.events = frozenset(events)
        self.state = ChannelState.CLOSED
        self.refs = 0
        self.events_seen = 0
        self.last_error: CollabDeskError | None = None
        self._subscription: Subscription | None = None
        self._opening: asyncio.Task | None = None
        self._pump: asyncio.Task | None = None
        self._logger = get_logger("channel")

    @property
    def table(self) -> str:
        return self.store.table

    @property
    def key(self) -> ChannelKey:
        return (self.table, self.scope)

    def __repr__(self) -> str:
        return f"Channel({self.table} [{self.scope}] {self.state.value} refs={self.refs})"

    async def open(self) -> None:
        """Register the filter with the transport and start pumping events."""
        if self.state is not ChannelState.CLOSED:
            return
        self.state = ChannelState.SUBSCRIBING
        try:
            self._subscription = await self.transport.subscribe(
                self.table, self.events, self.scope
            )
        except BaseException:
            self.state = ChannelState.CLOSED
            raise
        if self.state is not ChannelState.SUBSCRIBING:
            # Closed while the subscription was being registered
            await self.transport.unsubscribe(self._subscription)
            self._subscription = None
            return
        self.state = ChannelState.OPEN
        self._pump = asyncio.create_task(self._run())
        self._logger.debug("opened %r", self)

    async def close(self) -> None:
        """Unregister from the transport. Closing twice is a no-op."""
        if self.state in (ChannelState.CLOSED, ChannelState.CLOSING):
            return
        self.state = ChannelState.CLOSING
        try:
            if self._subscription is not None:
                await self.transport.unsubscribe(self._subscription)
        finally:
            pump = self._pump
            if pump is not None and not pump.done():
                pump.cancel()
                try:
                    await pump
                except asyncio.CancelledError:
                    pass
            self._subscription = None
            self._pump = None
            self.state = ChannelState.CLOSED
            self._logger.debug("closed %r", self)

    async def _run(self) -> None:
        async for event in self._subscription:
            if self.state is not ChannelState.OPEN:
                # Late delivery after teardown
                break
            self.events_seen += 1
            self._logger.debug(
                "%s %s on %s [%s]", event.event.value, event.row.get("id"), self.table, self.scope
            )
            try:
                await self.store.refresh(self.scope)
            except CollabDeskError as e:
                # The store stays stale until the next successful fetch
                self.last_error = e
                self._logger.warning("refresh failed on %r: %s", self, e)


class SubscriptionManager:
    """Owns every open channel of a workspace."""

    def __init__(self, transport: PushTransport):
        self.transport = transport
        self._channels: dict[ChannelKey, Channel] = {}

    @property
    def channels(self) -> list[Channel]:
        return list(self._channels.values())

    def get(self, table: str, scope: Scope) -> Channel | None:
        return self._channels.get((table, scope))

    @asynccontextmanager
    async def channel(
        self,
        store: EntityStore,
        scope: Scope | None = None,
        events: Iterable[ChangeType] = ALL_CHANGES,
    ) -> AsyncIterator[Channel]:
        """Hold a channel for the duration of the block.

        The channel is released on every exit path, exceptions included.
        """
        channel = await self.acquire(store, scope, events)
        try:
            yield channel
        finally:
            await self.release(channel)

    async def acquire(
        self,
        store: EntityStore,
        scope: Scope | None = None,
        events: Iterable[ChangeType] = ALL_CHANGES,
    ) -> Channel:
        """Open a channel, or join the one already open for (table, scope).

        A joined channel keeps the event filter it was opened with.

        Raises:
            TransportError: If the transport rejects the subscription
        """
        if scope is None:
            scope = Scope.unscoped()
        key = (store.table, scope)
        channel = self._channels.get(key)
        if channel is None:
            channel = Channel(self.transport, store, scope, events)
            channel._opening = asyncio.create_task(channel.open())
            channel._opening.add_done_callback(_consume_result)
            self._channels[key] = channel

        try:
            await asyncio.shield(channel._opening)
        except BaseException:
            if self._channels.get(key) is channel and channel.state is ChannelState.CLOSED:
                del self._channels[key]
            raise
        channel.refs += 1
        return channel

    async def release(self, channel: Channel) -> None:
        """Drop one reference; the last one closes the channel."""
        if self._channels.get(channel.key) is not channel:
            # Already torn down by close_all()
            return
        channel.refs -= 1
        if channel.refs <= 0:
            del self._channels[channel.key]
            await channel.close()

    async def close_all(self) -> None:
        """Close every channel regardless of holders."""
        channels = list(self._channels.values())
        self._channels.clear()
        for channel in channels:
            channel.refs = 0
            await channel.close()
