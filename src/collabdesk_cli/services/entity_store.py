"""Entity stores - client-side caches kept coherent with the remote store.

A store holds one ordered, read-only snapshot of the rows of a table for the
scope it last fetched. The snapshot only changes through the store's own
operations:

- ``fetch`` replaces it with the authoritative list returned by the backend,
- ``create``/``update``/``delete`` apply the canonical outcome of a successful
  remote mutation,
- pending entries (echo-wait mutations) are placed and reconciled by the
  mutation coordinator.

Failures never touch the snapshot and always propagate to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from collabdesk_cli.models import (
    NotFoundError,
    OrderBy,
    Scope,
    TransportError,
    ValidationError,
)
from collabdesk_cli.repositories import RemoteStore, Row
from collabdesk_cli.utils.logger import get_logger

T = TypeVar("T", bound=BaseModel)
Listener = Callable[[tuple], None]


TEMP_ID_PREFIX = "tmp-"


def is_temp_id(item_id: str) -> bool:
    return item_id.startswith(TEMP_ID_PREFIX)


class MutationMode(str, Enum):
    """How a store's cache absorbs its own mutations."""

    SYNC_CONFIRM = "sync_confirm"
    ECHO_WAIT = "echo_wait"


def validate_payload(model: type[BaseModel], payload: Any) -> BaseModel:
    """Validate a draft or patch before any remote call is made.

    Args:
        model: Pydantic model describing the payload
        payload: Model instance or mapping

    Raises:
        ValidationError: If the payload is rejected
    """
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        problems = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "payload"
            problems.append(f"{location}: {error['msg']}")
        raise ValidationError("; ".join(problems)) from e


class _Fetch:
    """In-flight read for one scope, shared by every caller."""

    def __init__(self, generation: int):
        self.generation = generation
        self.task: asyncio.Task | None = None
        self.rerun = False


def _consume_result(task: asyncio.Task) -> None:
    # Shielded waiters may all be gone; keep asyncio from reporting the
    # exception as never retrieved.
    if not task.cancelled():
        task.exception()


class EntityStore(Generic[T]):
    """Generic per-entity cache.

    Subclasses set ``table``, ``model`` and ``order``; mutable stores also set
    ``create_model`` and ``update_model``.
    """

    table: ClassVar[str]
    model: ClassVar[type[BaseModel]]
    create_model: ClassVar[type[BaseModel] | None] = None
    update_model: ClassVar[type[BaseModel] | None] = None
    order: ClassVar[OrderBy] = OrderBy()
    mode: ClassVar[MutationMode] = MutationMode.SYNC_CONFIRM
    immutable: ClassVar[bool] = False

    def __init__(self, remote: RemoteStore):
        self.remote = remote
        self._items: tuple[T, ...] = ()
        self._scope: Scope | None = None
        self._pending: dict[str, T] = {}
        self._inflight: dict[Scope, _Fetch] = {}
        self._listeners: list[Listener] = []
        self._generation = 0
        self._logger = get_logger("store")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def items(self) -> tuple[T, ...]:
        """Current snapshot. Treat as read-only."""
        return self._items

    @property
    def scope(self) -> Scope | None:
        """Scope of the last applied fetch, or None before the first one."""
        return self._scope

    @property
    def loading(self) -> bool:
        return bool(self._inflight)

    @property
    def pending(self) -> tuple[T, ...]:
        return tuple(self._pending.values())

    def get(self, item_id: str) -> T | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(snapshot)`` after every cache change.

        Returns:
            A function removing the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def clear(self) -> None:
        """Drop the cache. Responses of fetches issued before are discarded."""
        self._generation += 1
        # Later fetches must not join requests issued before the reset
        self._inflight.clear()
        self._items = ()
        self._scope = None
        self._pending.clear()
        self._notify()

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch(self, scope: Scope | None = None) -> tuple[T, ...]:
        """Replace the cache with the authoritative list for a scope.

        Concurrent fetches of the same scope share one request.

        Raises:
            TransportError: If the read fails; the cache keeps its last value
        """
        if scope is None:
            scope = Scope.unscoped()
        entry = self._current_fetch(scope)
        if entry is None:
            entry = self._start_fetch(scope)
        return await asyncio.shield(entry.task)

    async def refresh(self, scope: Scope | None = None) -> tuple[T, ...]:
        """Re-fetch after a change notification.

        If a fetch of the scope is already in flight it may have been issued
        before the change, so one more read runs after it.
        """
        if scope is None:
            scope = Scope.unscoped()
        entry = self._current_fetch(scope)
        if entry is None:
            entry = self._start_fetch(scope)
        else:
            entry.rerun = True
        return await asyncio.shield(entry.task)

    def _current_fetch(self, scope: Scope) -> _Fetch | None:
        entry = self._inflight.get(scope)
        if entry is None or entry.generation != self._generation:
            return None
        return entry

    def _start_fetch(self, scope: Scope) -> _Fetch:
        entry = _Fetch(self._generation)
        entry.task = asyncio.create_task(self._run_fetch(scope, entry))
        entry.task.add_done_callback(_consume_result)
        self._inflight[scope] = entry
        return entry

    async def _run_fetch(self, scope: Scope, entry: _Fetch) -> tuple[T, ...]:
        try:
            while True:
                entry.rerun = False
                self._logger.debug("fetch %s [%s]", self.table, scope)
                items = await self._load(scope)
                if entry.generation != self._generation:
                    # Store was reset while the request was in flight
                    return tuple(items)
                self._apply_fetched(scope, items)
                if not entry.rerun:
                    return self._items
        except TransportError as e:
            self._logger.warning("fetch failed: %s [%s] - %s", self.table, scope, e)
            raise
        finally:
            if self._inflight.get(scope) is entry:
                del self._inflight[scope]

    async def _load(self, scope: Scope) -> list[T]:
        rows = await self.remote.select(self.table, scope, self.order)
        return [self._parse(row) for row in rows]

    def _parse(self, row: Row) -> T:
        try:
            return self.model.model_validate(row)
        except PydanticValidationError as e:
            raise TransportError(f"{self.table}: malformed row from backend: {e}") from e

    def _apply_fetched(self, scope: Scope, items: list[T]) -> None:
        self._settle_echoed(items)
        self._scope = scope
        self._items = tuple(items)
        for item in self._pending.values():
            if scope.matches(item.model_dump()):
                self._place(item, notify=False)
        self._notify()

    def _settle_echoed(self, items: list[T]) -> None:
        """Drop pending entries whose canonical row came back in a fetch.

        Only rows the cache did not hold before count as an echo, and each
        row confirms at most one pending entry.
        """
        if not self._pending:
            return
        known = {item.id for item in self._items}
        fresh = [item for item in items if item.id not in known]
        for temp_id, pending in list(self._pending.items()):
            for item in fresh:
                if self.confirms(pending, item):
                    fresh.remove(item)
                    del self._pending[temp_id]
                    self._logger.debug("pending %s %s echoed as %s", self.table, temp_id, item.id)
                    break

    # ------------------------------------------------------------------
    # Mutations (synchronous-confirm)
    # ------------------------------------------------------------------

    def prepare_create(self, draft: Any) -> BaseModel:
        """Validate a draft for insertion.

        Raises:
            ValidationError: If the draft is rejected
        """
        if self.create_model is None:
            raise ValidationError(f"{self.table} rows cannot be created here")
        return validate_payload(self.create_model, draft)

    async def send_insert(self, payload: BaseModel) -> Row:
        """Send a validated draft to the backend and return the canonical row."""
        return await self.remote.insert(self.table, payload.model_dump(mode="json"))

    async def create(self, draft: Any) -> T:
        """Insert a row and place the canonical result in the cache.

        Raises:
            ValidationError: Before any remote call, if the draft is rejected
            TransportError: If the backend rejects the insert
        """
        payload = self.prepare_create(draft)
        row = await self.send_insert(payload)
        item = self._parse(row)
        if self._in_scope(row):
            self._place(item)
        self._logger.info("created %s %s", self.table, item.id)
        return item

    async def update(self, item_id: str, patch: Any) -> T | None:
        """Patch a row and replace its cache entry with the canonical row.

        Returns:
            The canonical row, or None if the row no longer exists remotely
        """
        if self.immutable:
            raise ValidationError(f"{self.table} rows are immutable")
        if self.update_model is None:
            raise ValidationError(f"{self.table} rows cannot be updated here")
        payload = validate_payload(self.update_model, patch)
        data = payload.model_dump(mode="json", exclude_unset=True)
        if "updated_at" in self.model.model_fields:
            data["updated_at"] = datetime.now(UTC).isoformat()

        try:
            row = await self.remote.update(self.table, item_id, data)
        except NotFoundError:
            self._logger.info("update of missing %s %s ignored", self.table, item_id)
            return None

        item = self._parse(row)
        self._replace(item)
        return item

    async def delete(self, item_id: str) -> None:
        """Delete a row. Absent ids are a no-op."""
        try:
            await self.remote.delete(self.table, item_id)
        except NotFoundError:
            pass
        self._discard(item_id)
        self._logger.info("deleted %s %s", self.table, item_id)

    # ------------------------------------------------------------------
    # Pending entries (echo-wait)
    # ------------------------------------------------------------------

    def build_pending(self, payload: BaseModel) -> T:
        """Build the provisional entry shown while an insert is unconfirmed.

        The entry gets a ``tmp-`` id and the current time in the ordering
        field. Models with a ``pending`` flag have it set.

        Raises:
            ValidationError: If the store confirms inserts synchronously
        """
        if self.mode is not MutationMode.ECHO_WAIT:
            raise ValidationError(f"{self.table} rows are confirmed synchronously")
        data = payload.model_dump()
        data["id"] = f"{TEMP_ID_PREFIX}{uuid4().hex}"
        if self.order.field in self.model.model_fields:
            data[self.order.field] = datetime.now(UTC)
        if "pending" in self.model.model_fields:
            data["pending"] = True
        return self.model.model_validate(data)

    def confirms(self, pending: T, item: T) -> bool:
        """Whether a fetched row is the canonical echo of a pending entry."""
        return False

    def add_pending(self, item: T) -> None:
        self._pending[item.id] = item
        if self._in_scope(item.model_dump()):
            self._place(item)

    def discard_pending(self, temp_id: str) -> None:
        self._pending.pop(temp_id, None)
        self._discard(temp_id)

    def reconcile(self, temp_id: str, row: Row) -> T:
        """Swap a pending entry for its canonical row.

        If the canonical row already arrived through a re-fetch, the pending
        entry is simply dropped. If that re-fetch already settled it, only
        the canonical row is returned.
        """
        item = self._parse(row)
        self._pending.pop(temp_id, None)
        self._items = tuple(i for i in self._items if i.id != temp_id)
        if self.get(item.id) is None and self._in_scope(row):
            self._place(item)
        else:
            self._notify()
        return self.get(item.id) or item

    # ------------------------------------------------------------------
    # Cache primitives
    # ------------------------------------------------------------------

    def _in_scope(self, row: Row) -> bool:
        return self._scope is None or self._scope.matches(row)

    def _place(self, item: T, notify: bool = True) -> None:
        """Insert an item at the position dictated by the ordering rule."""
        items = [i for i in self._items if i.id != item.id]
        key = getattr(item, self.order.field)
        index = len(items)
        for position, existing in enumerate(items):
            other = getattr(existing, self.order.field)
            # Newest first among equal keys when descending, last when ascending
            if (key >= other) if self.order.descending else (key < other):
                index = position
                break
        items.insert(index, item)
        self._items = tuple(items)
        if notify:
            self._notify()

    def _replace(self, item: T) -> None:
        if self.get(item.id) is None:
            # Removed concurrently
            return
        self._items = tuple(item if i.id == item.id else i for i in self._items)
        self._notify()

    def _discard(self, item_id: str) -> None:
        if self.get(item_id) is None:
            return
        self._items = tuple(i for i in self._items if i.id != item_id)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._items)
            except Exception:
                self._logger.exception("listener failed on %s", self.table)
