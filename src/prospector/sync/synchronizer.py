"""Entity edit synchronizer.

Reconciles rapid local edits to the selected prospect with the configured
persistence backend:

* every change is applied to the session's draft immediately (optimistic)
  and merged into the pending patch;
* the pending patch is flushed after ``sync.debounce_ms`` of quiet, or at
  once when ``queue_update(..., flush=True)`` is used (blur, dropdowns);
* each flush captures its target id up front, is serialised per id, and
  reconciles the caches by id once the canonical entity is known;
* a flush result only touches the session if it still targets that id.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from prospector.cache.query_cache import PROSPECTS_KEY, QueryCache, listing_prospects_key
from prospector.cache.reconciler import (
    CacheReconciler,
    Created,
    Deleted,
    MembershipIndex,
    Updated,
)
from prospector.core.config import Settings, SyncConfig
from prospector.core.types import EDITABLE_FIELDS, Prospect, ProspectCreate
from prospector.persistence import resolve
from prospector.persistence.backend import PersistenceBackend, create_backend
from prospector.prospects.followup import compute_follow_up_due
from prospector.storage.local import LocalStore
from prospector.sync.debounce import Debouncer
from prospector.sync.session import EditSession, FlushResult

logger = logging.getLogger(__name__)


class EntityEditSynchronizer:
    """Owns the edit session for one edit surface (map page, workspace)."""

    def __init__(
        self,
        backend: PersistenceBackend,
        reconciler: CacheReconciler,
        config: SyncConfig | None = None,
        *,
        on_result: Callable[[FlushResult], None] | None = None,
    ) -> None:
        self._backend = backend
        self._reconciler = reconciler
        self._config = config or SyncConfig()
        self._on_result = on_result
        self._session: EditSession | None = None
        self._last_edited_id: str | None = None
        self._debouncer = Debouncer(self._flush_pending, self._config.debounce_seconds)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        # Patches dispatched per id whose flush has not settled yet, in order.
        self._inflight: dict[str, list[dict[str, Any]]] = {}
        self._tasks: set[asyncio.Task] = set()

    # -- state ---------------------------------------------------------------

    @property
    def session(self) -> EditSession | None:
        return self._session

    @property
    def draft(self) -> Prospect | None:
        return self._session.draft if self._session else None

    @property
    def has_pending(self) -> bool:
        return bool(self._session and self._session.pending)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # -- session lifecycle ---------------------------------------------------

    def select(self, entity: Prospect | None) -> EditSession | None:
        """Start editing ``entity`` (or clear the selection with ``None``).

        The previous session's pending patch is flushed in the background
        or discarded depending on ``sync.switch_policy``; it is never
        merged into the new session.
        """
        if entity is not None and self._session and self._session.entity_id == entity.id:
            return self._session
        self._end_session(self._config.switch_policy)
        if entity is None:
            return None
        self._session = EditSession.start(entity)
        self._last_edited_id = entity.id
        return self._session

    async def close(self) -> FlushResult | None:
        """End the session, flushing whatever is pending."""
        task = self._end_session("flush")
        return await task if task else None

    async def aclose(self) -> None:
        """Close and wait for every in-flight flush (teardown)."""
        await self.close()
        await self.drain()

    async def drain(self) -> list[FlushResult]:
        if not self._tasks:
            return []
        return list(await asyncio.gather(*list(self._tasks)))

    def _end_session(self, policy: str) -> asyncio.Task | None:
        self._debouncer.cancel()
        session, self._session = self._session, None
        self._last_edited_id = None
        if session is None or not session.pending:
            return None
        if policy == "flush":
            return self._dispatch(session.entity_id, session.take_pending())
        logger.debug(
            "Discarding pending edits %s for prospect %s",
            sorted(session.pending), session.entity_id,
        )
        session.take_pending()
        return None

    # -- edits ---------------------------------------------------------------

    def queue_update(self, field: str, value: Any, *, flush: bool = False) -> asyncio.Task | None:
        """Apply one field edit optimistically and queue it for persistence.

        Returns the flush task when the edit triggered an immediate flush.
        """
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field {field!r} cannot be edited")
        session = self._session
        if session is None:
            raise ValueError("No prospect selected for editing")

        if self._last_edited_id and self._last_edited_id != session.entity_id:
            self._debouncer.cancel()
            session.take_pending()
        self._last_edited_id = session.entity_id

        changes = {field: value}
        if (
            field == "follow_up_timeframe"
            and value is not None
            and value != session.draft.follow_up_timeframe
        ):
            changes["follow_up_due_date"] = compute_follow_up_due(
                datetime.now(timezone.utc), value
            )

        draft = session.draft.apply_patch(changes)
        changed = {
            name: getattr(draft, name)
            for name in changes
            if getattr(draft, name) != getattr(session.draft, name)
        }
        if changed:
            session.draft = draft
            session.pending = {**session.pending, **changed}

        if flush:
            return self.flush_now()
        if changed:
            self._debouncer.schedule()
        return None

    def flush_now(self) -> asyncio.Task | None:
        """Cancel the debounce timer and flush the pending patch immediately."""
        return self._debouncer.flush()

    async def flush(self) -> FlushResult | None:
        task = self.flush_now()
        return await task if task else None

    def submit(self, entity_id: str, patch: dict[str, Any]) -> asyncio.Task | None:
        """Send a patch for ``entity_id`` outside the field-edit buffer.

        Used by shape edits; shares the per-id serialisation and cache
        reconciliation with regular flushes.
        """
        if not patch:
            return None
        return self._dispatch(entity_id, dict(patch))

    # -- create / delete / load ----------------------------------------------

    async def create(self, payload: ProspectCreate, listing_id: str | None = None) -> Prospect:
        created = await resolve(self._backend.create(payload, listing_id))
        group_ids = (listing_id,) if listing_id else ()
        self._reconciler.apply(Created(created, group_ids))
        return created

    async def delete(self, entity_id: str) -> None:
        if self._session and self._session.entity_id == entity_id:
            self._debouncer.cancel()
            self._session.take_pending()
            self._session = None
            self._last_edited_id = None
        async with self._serialised(entity_id):
            await resolve(self._backend.delete(entity_id))
        self._reconciler.apply(Deleted(entity_id))

    async def load(self, listing_id: str | None = None) -> list[Prospect]:
        """Fetch prospects and populate the matching cache entry."""
        prospects = await resolve(self._backend.fetch_many(listing_id))
        key = listing_prospects_key(listing_id) if listing_id else PROSPECTS_KEY
        self._reconciler.cache.set(key, list(prospects))
        if listing_id:
            self._reconciler.membership.set(listing_id, [p.id for p in prospects])
        return prospects

    # -- flushing ------------------------------------------------------------

    def _flush_pending(self) -> asyncio.Task | None:
        session = self._session
        if session is None or not session.pending:
            return None
        return self._dispatch(session.entity_id, session.take_pending())

    def _dispatch(self, entity_id: str, patch: dict[str, Any]) -> asyncio.Task:
        self._inflight.setdefault(entity_id, []).append(patch)
        task = asyncio.get_running_loop().create_task(self._flush(entity_id, patch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @contextlib.asynccontextmanager
    async def _serialised(self, entity_id: str):
        """Hold the per-id lock; the lock is dropped once nobody uses it."""
        lock = self._locks.get(entity_id)
        if lock is None:
            lock = self._locks[entity_id] = asyncio.Lock()
        self._lock_users[entity_id] = self._lock_users.get(entity_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[entity_id] -= 1
            if not self._lock_users[entity_id]:
                del self._lock_users[entity_id]
                del self._locks[entity_id]

    def _settle(self, entity_id: str, patch: dict[str, Any]) -> None:
        queued = self._inflight.get(entity_id, [])
        for index, item in enumerate(queued):
            if item is patch:
                del queued[index]
                break
        if not queued:
            self._inflight.pop(entity_id, None)

    def _unsettled(self, entity_id: str) -> dict[str, Any]:
        """Fields of patches still on their way to the backend, merged in order."""
        merged: dict[str, Any] = {}
        for item in self._inflight.get(entity_id, []):
            merged.update(item)
        return merged

    async def _flush(self, entity_id: str, patch: dict[str, Any]) -> FlushResult:
        async with self._serialised(entity_id):
            try:
                saved = await resolve(self._backend.update(entity_id, patch))
            except Exception as exc:
                logger.warning(
                    "Flush of %s for prospect %s failed: %s", sorted(patch), entity_id, exc
                )
                self._settle(entity_id, patch)
                self._rollback(entity_id, patch)
                result = FlushResult(entity_id=entity_id, patch=patch, ok=False, error=str(exc))
            else:
                self._settle(entity_id, patch)
                self._reconciler.apply(Updated(saved))
                self._refresh_session(saved)
                result = FlushResult(entity_id=entity_id, patch=patch, ok=True, entity=saved)
        if self._on_result is not None:
            self._on_result(result)
        return result

    def _refresh_session(self, saved: Prospect) -> None:
        session = self._session
        if session is None or session.entity_id != saved.id:
            return
        session.baseline = saved
        overlay = {**self._unsettled(saved.id), **session.pending}
        session.draft = saved.apply_patch(overlay) if overlay else saved

    def _rollback(self, entity_id: str, patch: dict[str, Any]) -> None:
        session = self._session
        if session is None or session.entity_id != entity_id:
            return
        unsettled = self._unsettled(entity_id)
        revert = {
            name: getattr(session.baseline, name)
            for name in patch
            if name not in session.pending and name not in unsettled
        }
        if revert:
            session.draft = session.draft.apply_patch(revert)


def create_synchronizer(
    settings: Settings,
    *,
    cache: QueryCache | None = None,
    store: LocalStore | None = None,
    on_result: Callable[[FlushResult], None] | None = None,
) -> EntityEditSynchronizer:
    """Compose backend, caches and membership index for ``settings.mode``.

    In demo mode the backend and the membership index share one
    :class:`LocalStore` so listing membership survives a reload.
    """
    cache = cache or QueryCache()
    if settings.mode == "demo":
        store = store or LocalStore(settings.local)
        backend = create_backend(settings, store=store)
        membership = MembershipIndex(store, settings.user_id)
    else:
        backend = create_backend(settings)
        membership = MembershipIndex()
    reconciler = CacheReconciler(cache, membership)
    return EntityEditSynchronizer(backend, reconciler, settings.sync, on_result=on_result)
