"""Polling push transport for remote backends.

Each subscription re-reads its scoped rows every ``interval`` seconds and
turns the difference with the previous snapshot into change events.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from collabdesk_cli.models import ChangeEvent, ChangeType, OrderBy, Scope, TransportError
from collabdesk_cli.repositories import PushTransport, RemoteStore, Row, Subscription
from collabdesk_cli.utils.logger import get_logger

_CLOSED = object()


def diff_rows(table: str, before: dict[str, Row], after: list[Row]) -> list[ChangeEvent]:
    """Compute change events between two snapshots of a table.

    Args:
        table: Table name carried by the events
        before: Previous snapshot indexed by id
        after: Current rows

    Returns:
        INSERT and UPDATE events in the order of ``after``, then DELETE events
    """
    events: list[ChangeEvent] = []
    seen: set[str] = set()
    for row in after:
        row_id = row.get("id")
        seen.add(row_id)
        previous = before.get(row_id)
        if previous is None:
            events.append(ChangeEvent(event=ChangeType.INSERT, table=table, row=row))
        elif previous != row:
            events.append(ChangeEvent(event=ChangeType.UPDATE, table=table, row=row))
    for row_id, row in before.items():
        if row_id not in seen:
            events.append(ChangeEvent(event=ChangeType.DELETE, table=table, row=row))
    return events


class PollingSubscription(Subscription):
    """Subscription fed by a background polling task."""

    def __init__(self, table: str, events: Iterable[ChangeType], scope: Scope):
        self.table = table
        self.events = frozenset(events)
        self.scope = scope
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._task: asyncio.Task | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, event: ChangeEvent) -> None:
        if not self._closed and event.event in self.events:
            self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __anext__(self) -> ChangeEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return item


class PollingPushTransport(PushTransport):
    """Push transport emulated by periodic scoped reads."""

    def __init__(self, remote: RemoteStore, interval: float = 5.0):
        self.remote = remote
        self.interval = interval
        self._subscriptions: list[PollingSubscription] = []

    async def subscribe(
        self, table: str, events: Iterable[ChangeType], scope: Scope
    ) -> PollingSubscription:
        """Take a baseline snapshot and start polling."""
        baseline = await self.remote.select(table, scope, OrderBy())
        subscription = PollingSubscription(table, events, scope)
        subscription._task = asyncio.create_task(
            self._poll(subscription, {row["id"]: row for row in baseline})
        )
        self._subscriptions.append(subscription)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        if not isinstance(subscription, PollingSubscription):
            return
        subscription.close()
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        task = subscription._task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            await self.unsubscribe(subscription)

    async def _poll(self, subscription: PollingSubscription, snapshot: dict[str, Row]) -> None:
        logger = get_logger()
        while not subscription.closed:
            await asyncio.sleep(self.interval)
            try:
                rows = await self.remote.select(
                    subscription.table, subscription.scope, OrderBy()
                )
            except TransportError as e:
                logger.warning(
                    "poll failed: %s [%s] - %s",
                    subscription.table,
                    subscription.scope,
                    e,
                )
                continue
            for event in diff_rows(subscription.table, snapshot, rows):
                subscription.deliver(event)
            snapshot = {row["id"]: row for row in rows}
