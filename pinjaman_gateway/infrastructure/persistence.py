"""Persistence adapter - local cache, debounced remote saves, webhook sync

Flow:
1. Startup reads the local cache for an instant (possibly stale) state.
2. hydrate() fetches the remote blob and replaces the state with it.
3. Every state change writes the local cache immediately. Once hydrated,
   the remote store gets a debounced write: a newer change cancels the
   pending one, so only the last state of a burst is sent.
4. With auto-sync enabled, data changes also post a full backup to the
   configured Google Sheets script.

Failures are logged and counted; they never touch the in-memory state and
nothing is retried.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Dict, Optional, Set

from pinjaman_gateway.config import settings
from pinjaman_gateway.domain.actions import LoadState
from pinjaman_gateway.domain.exceptions import InvalidSnapshotError, StateStoreError
from pinjaman_gateway.domain.migration import load_snapshot
from pinjaman_gateway.domain.models import AppState
from pinjaman_gateway.domain.snapshot import state_to_dict
from pinjaman_gateway.domain.store import LoanBook
from pinjaman_gateway.infrastructure.cache import LocalStateCache
from pinjaman_gateway.infrastructure.clients.sheets import SheetsSyncClient
from pinjaman_gateway.infrastructure.clients.state_store import StateStoreClient
from pinjaman_gateway.infrastructure.observability.metrics import (
    record_save,
    state_load_failures_counter,
    state_save_latency_histogram,
)

logger = logging.getLogger(__name__)


def _sync_relevant_change(previous: AppState, current: AppState) -> bool:
    # Reducer keeps untouched collections by identity
    return (
        previous.borrowers is not current.borrowers
        or previous.transactions is not current.transactions
        or previous.config.enable_auto_sync != current.config.enable_auto_sync
        or previous.config.google_script_url != current.config.google_script_url
    )


class PersistenceAdapter:
    """Observes a LoanBook and persists its state"""

    def __init__(
        self,
        cache: LocalStateCache | None = None,
        store_client: StateStoreClient | None = None,
        sync_client: SheetsSyncClient | None = None,
        debounce_seconds: float | None = None,
    ):
        self.cache = cache or LocalStateCache()
        self.store_client = store_client or StateStoreClient()
        self.sync_client = sync_client or SheetsSyncClient()
        self.debounce_seconds = settings.save_debounce_seconds if debounce_seconds is None else debounce_seconds
        self.loaded = False
        self._pending_save: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    def load_cached(self) -> AppState:
        """State from the local cache, or a fresh default state"""
        blob = self.cache.load()
        if blob is None:
            return AppState()
        try:
            return load_snapshot(blob)
        except InvalidSnapshotError as e:
            state_load_failures_counter.labels(source="local").inc()
            logger.error("Failed to load local state", extra={"error": str(e)})
            return AppState()

    async def load_remote(self) -> Optional[AppState]:
        """Migrated remote state, or None when unavailable or empty"""
        try:
            blob = await self.store_client.load()
        except StateStoreError as e:
            state_load_failures_counter.labels(source="remote").inc()
            logger.warning("Remote state unavailable, using local cache", extra={"error": str(e)})
            return None

        if not blob or blob.get("transactions") is None:
            return None

        try:
            return load_snapshot(blob)
        except InvalidSnapshotError as e:
            state_load_failures_counter.labels(source="remote").inc()
            logger.error("Remote state is invalid, using local cache", extra={"error": str(e)})
            return None

    def connect(self, book: LoanBook) -> Callable[[], None]:
        """Subscribe to the book; returns the unsubscribe callable"""
        return book.subscribe(self.on_state_change)

    async def hydrate(self, book: LoanBook) -> None:
        """
        Replace the book's state with the remote copy, then enable remote
        saves. Remote saves stay off until this finishes so an empty local
        state can never overwrite the server.
        """
        try:
            remote = await self.load_remote()
            if remote is not None:
                book.dispatch(LoadState(remote))
        finally:
            self.loaded = True

    def on_state_change(self, previous: AppState, current: AppState) -> None:
        blob = state_to_dict(current)
        self.cache.save(blob)

        if self.loaded:
            self._schedule_save(blob)

        config = current.config
        if config.enable_auto_sync and config.google_script_url and _sync_relevant_change(previous, current):
            self._spawn(self.sync_client.sync(config.google_script_url, blob))

    def _schedule_save(self, blob: Dict[str, Any]) -> None:
        if self._pending_save is not None and not self._pending_save.done():
            self._pending_save.cancel()
        task = self._spawn(self._debounced_save(blob))
        if task is not None:
            self._pending_save = task

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop, background persistence skipped")
            return None
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _debounced_save(self, blob: Dict[str, Any]) -> None:
        await asyncio.sleep(self.debounce_seconds)
        try:
            with state_save_latency_histogram.time():
                await self.store_client.save(blob)
        except StateStoreError as e:
            record_save("remote", ok=False)
            logger.error("Failed to save state to remote store", extra={"error": str(e)})
            return
        record_save("remote", ok=True)

    async def flush(self) -> None:
        """Wait for the pending remote save and any sync in flight"""
        pending = [t for t in self._background if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
