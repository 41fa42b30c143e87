"""
Base classes for the observable state containers.

Store             loading / error flags, listeners, close()
CollectionStore   one list of entities keyed by id, plus the three ways it
                  changes:

    fetch   → _load()           replace the whole list from a REST read
    push    → _upsert()         replace-by-id or append, one entity
    action  → _run_optimistic() patch now, call the API, undo on failure

Write ordering is "last applied wins" with one exception: when both the
local and the incoming record carry a `version`, a strictly older incoming
record is discarded (_reconcile). Subclasses extend _reconcile for their
own invariants.

After close(), late REST responses and push updates are dropped and
listeners are no longer called.
"""

import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from models.errors import DashboardError, MutationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
Listener = Callable[["Store"], None]

# What a failed REST read can raise: our own API errors, or a body that
# doesn't match the schema.
READ_ERRORS = (DashboardError, ValidationError)


class Store:

    def __init__(self):
        self.loading = False
        self.error: Optional[str] = None
        self._listeners: dict[Listener, None] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(store)` after every state change. Returns an unsubscribe callable."""
        self._listeners[listener] = None

        def unsubscribe() -> None:
            self._listeners.pop(listener, None)

        return unsubscribe

    def close(self) -> None:
        self._closed = True
        self._listeners.clear()

    def _notify(self) -> None:
        if self._closed:
            return
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Store listener raised: {e}", exc_info=True)


class CollectionStore(Store, Generic[T]):

    # Shown in error strings and logs: "Failed to load printers: ..."
    entity_name = "items"

    def __init__(self):
        super().__init__()
        self._items: list[T] = []

    # ── Reads ───────────────────────────────────────────────────

    @property
    def items(self) -> list[T]:
        return list(self._items)

    def get(self, entity_id: str) -> Optional[T]:
        index = self._index(entity_id)
        return None if index is None else self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def _index(self, entity_id: str) -> Optional[int]:
        for i, item in enumerate(self._items):
            if item.id == entity_id:
                return i
        return None

    # ── Merge rules ─────────────────────────────────────────────

    def _reconcile(self, existing: T, incoming: T) -> Optional[T]:
        """
        Decide what replaces `existing` when `incoming` arrives for the same id.
        Returns None to keep `existing` untouched.
        """
        old_version = getattr(existing, "version", None)
        new_version = getattr(incoming, "version", None)
        if old_version is not None and new_version is not None and new_version < old_version:
            logger.debug(
                f"Discarding stale {self.entity_name} {incoming.id}: "
                f"version {new_version} < {old_version}"
            )
            return None
        return incoming

    def _upsert(self, item: T) -> bool:
        """Replace by id or append. Returns False if the item was discarded as stale."""
        index = self._index(item.id)
        if index is None:
            self._items.append(item)
            return True
        merged = self._reconcile(self._items[index], item)
        if merged is None:
            return False
        self._items[index] = merged
        return True

    def _replace_all(self, items: list[T]) -> None:
        current = {item.id: item for item in self._items}
        merged = []
        for item in items:
            existing = current.get(item.id)
            if existing is None:
                merged.append(item)
                continue
            reconciled = self._reconcile(existing, item)
            merged.append(existing if reconciled is None else reconciled)
        self._items = merged

    def _remove(self, entity_id: str) -> Optional[T]:
        index = self._index(entity_id)
        if index is None:
            return None
        return self._items.pop(index)

    # ── Fetch ───────────────────────────────────────────────────

    async def _load(self, request: Callable[[], Awaitable[list[T]]]) -> bool:
        """
        Replace the collection with the result of `request()`.

        On failure the previous collection is kept (stale data beats an
        empty screen) and `error` is set. Returns True on success.
        """
        if self._closed:
            return False
        self.loading = True
        self.error = None
        self._notify()
        try:
            items = await request()
        except READ_ERRORS as e:
            if self._closed:
                return False
            self.loading = False
            self.error = f"Failed to load {self.entity_name}: {e}"
            logger.error(self.error)
            self._notify()
            return False

        if self._closed:
            logger.debug(f"Store closed, dropping late {self.entity_name} response")
            return False
        self._replace_all(items)
        self.loading = False
        self._notify()
        return True

    # ── Optimistic actions ──────────────────────────────────────

    def _patch(self, entity_ids: list[str], **changes: Any) -> dict[str, tuple[T, T]]:
        """Apply `changes` to every listed entity. Returns {id: (before, after)} for rollback."""
        applied: dict[str, tuple[T, T]] = {}
        for entity_id in entity_ids:
            index = self._index(entity_id)
            if index is None:
                continue
            before = self._items[index]
            after = before.model_copy(update=changes)
            self._items[index] = after
            applied[entity_id] = (before, after)
        return applied

    def _rollback(self, applied: dict[str, tuple[T, T]]) -> None:
        """Restore entities that still hold our optimistic value. Newer pushes are left alone."""
        for entity_id, (before, after) in applied.items():
            index = self._index(entity_id)
            if index is not None and self._items[index] is after:
                self._items[index] = before

    async def _run_optimistic(
        self,
        action: str,
        entity_ids: list[str],
        request: Callable[[], Awaitable[Any]],
        **changes: Any,
    ) -> Any:
        """
        Patch first so the UI reacts immediately, then call the backend.

        If the call fails the patch is undone, `error` is set and
        MutationError is raised. A push event that lands while the call is
        in flight wins over both the patch and the rollback.
        """
        applied = self._patch(entity_ids, **changes)
        self._notify()
        try:
            result = await request()
        except READ_ERRORS as e:
            self._rollback(applied)
            self.error = f"{action} failed: {e}"
            logger.error(self.error)
            self._notify()
            raise MutationError(action, entity_ids, e) from e
        if self.error is not None:
            self.error = None
            self._notify()
        return result
