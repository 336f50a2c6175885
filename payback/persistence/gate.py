"""
Debounced Persistence Gate

Coalesces bursts of local mutations into a single snapshot write.

DESIGN DECISION: Debouncing is a dirty flag plus one cancellable delayed
asyncio task, not a timer callback. Every mark_dirty() cancels the pending
task and starts a new one, so the quiet window restarts on each mutation.

Guarantees:
- Writes never overlap (a dedicated write lock serializes them)
- Writes happen outside the store's mutation lock; only taking the
  snapshot touches it
- Background write failures are logged and swallowed
- Foreground writes (flush_now) raise to the caller
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from payback.audit import AuditLogger
from payback.config import get_settings
from payback.models.ledger import AppData
from payback.services.storage import PersistenceStore


logger = structlog.get_logger(__name__)


SnapshotProvider = Callable[[], Awaitable[AppData]]


class PersistenceGate:
    """
    Schedules snapshot writes through a PersistenceStore.

    Usage:
        gate = PersistenceGate(store, snapshot=ledger.snapshot)
        gate.mark_dirty()          # after each mutation
        await gate.flush_now()     # when the caller must know it landed
        await gate.drain()         # on shutdown
    """

    def __init__(
        self,
        store: PersistenceStore,
        snapshot: SnapshotProvider,
        debounce_seconds: Optional[float] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            store: Where snapshots are written
            snapshot: Coroutine function returning a consistent AppData copy
            debounce_seconds: Quiet window; defaults to the sync settings
            audit_logger: Receives background write failures
        """
        if debounce_seconds is None:
            debounce_seconds = get_settings().sync.debounce_seconds
        self._store = store
        self._snapshot = snapshot
        self._debounce = debounce_seconds
        self._audit_logger = audit_logger

        self._dirty = False
        self._pending: Optional[asyncio.Task] = None
        self._writing: set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()
        self.write_count = 0

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def has_pending_flush(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def mark_dirty(self) -> None:
        """Flag unsaved changes and restart the quiet window."""
        self._dirty = True
        if self._pending is not None:
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._debounced_flush())

    def cancel_pending(self) -> None:
        """Drop a scheduled flush without writing."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._dirty = False

    async def flush_now(self, data: Optional[AppData] = None) -> None:
        """
        Write immediately, bypassing the quiet window.

        Args:
            data: Snapshot to write; taken from the snapshot provider if None

        Raises:
            PersistenceError: If the write fails
        """
        self.cancel_pending()
        if data is None:
            data = await self._snapshot()
        await self._write(data)

    async def drain(self) -> None:
        """Wait for the scheduled flush and any write in progress."""
        while self.has_pending_flush or self._writing:
            waiting = list(self._writing)
            if self._pending is not None:
                waiting.append(self._pending)
            await asyncio.gather(*waiting, return_exceptions=True)

    async def _debounced_flush(self) -> None:
        await asyncio.sleep(self._debounce)

        # Past the window: from here on a new mark_dirty schedules a
        # separate flush instead of cancelling this one mid-write.
        task = asyncio.current_task()
        if self._pending is task:
            self._pending = None
        self._writing.add(task)
        try:
            self._dirty = False
            data = await self._snapshot()
            await self._write(data)
        except Exception as e:
            logger.error("background_persist_failed", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_persistence_failed(str(e))
        finally:
            self._writing.discard(task)

    async def _write(self, data: AppData) -> None:
        async with self._write_lock:
            await self._store.save(data)
            self.write_count += 1
