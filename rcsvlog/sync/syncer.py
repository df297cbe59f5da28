"""Remote catch-up of unsent log rows.

The backlog of a log is always derived from the ledger counts and the file
content, so a failed or abandoned push leaves nothing to clean up: the same
rows are sent again on the next attempt.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from ..exceptions import RemoteSyncFailure
from ..store import ENCODING, LocalLogStore
from .ledger import LedgerEntry, SyncLedger
from .transport import PushTransport

logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """Status of a sync operation."""

    SUCCESS = "success"
    FAILED = "failed"
    OFFLINE = "offline"  # Remote unavailable, retry later


@dataclass
class SyncResult:
    """Result of a sync operation."""

    status: SyncStatus
    log_name: str | None = None
    rows_pushed: int = 0
    error: str | None = None
    timestamp: datetime | None = None


class RemoteSyncer:
    """Pushes the pending backlog of each log to a remote store.

    At most one push is in flight per log. A sync requested while a push is
    running makes that push run one more round once it completes.
    """

    def __init__(
        self,
        ledger: SyncLedger,
        store: LocalLogStore,
        transport: PushTransport | None = None,
        batch_size: int = 0,
        push_timeout: float | None = None,
    ):
        """Initialize the syncer.

        Args:
            ledger: Ledger holding local and remote counts.
            store: Store the log files are read from.
            transport: Push primitive; None disables remote sync.
            batch_size: Maximum rows per push, 0 for the whole backlog.
            push_timeout: Overall timeout for one push in seconds.
        """
        self.ledger = ledger
        self.store = store
        self.transport = transport
        self.batch_size = batch_size
        self.push_timeout = push_timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._dirty: set[str] = set()
        self._offsets: dict[str, tuple[int, int]] = {}
        self._last_sync: datetime | None = None
        self._consecutive_failures = 0

    def lock(self, log_name: str) -> asyncio.Lock:
        """Per-log lock guarding file appends and ledger updates."""
        if log_name not in self._locks:
            self._locks[log_name] = asyncio.Lock()
        return self._locks[log_name]

    def set_transport(self, transport: PushTransport | None) -> None:
        self.transport = transport

    def schedule(self, log_name: str) -> asyncio.Task:
        """Request a sync without waiting for it.

        Args:
            log_name: Log to push.

        Returns:
            The task draining this log's backlog.
        """
        task = self._tasks.get(log_name)
        if task is not None and not task.done():
            self._dirty.add(log_name)
            return task

        task = asyncio.create_task(self._drain(log_name))
        self._tasks[log_name] = task
        task.add_done_callback(lambda t: self._forget(log_name, t))
        return task

    def _forget(self, log_name: str, task: asyncio.Task) -> None:
        if self._tasks.get(log_name) is task:
            del self._tasks[log_name]

    async def sync(self, log_name: str) -> SyncResult:
        """Push the pending backlog of a log and wait for the outcome.

        Never raises for remote failures; they are reported in the result.
        """
        return await self.schedule(log_name)

    async def _drain(self, log_name: str) -> SyncResult:
        pushed = 0
        while True:
            self._dirty.discard(log_name)
            result = await self._push_backlog(log_name)
            round_pushed = result.rows_pushed
            pushed += round_pushed
            result.rows_pushed = pushed
            if result.status != SyncStatus.SUCCESS:
                return result
            if log_name in self._dirty:
                continue
            # Keep going while batches remain
            if round_pushed == 0 or self.ledger.pending(log_name) <= 0:
                return result

    def _read_backlog(
        self, log_name: str, entry: LedgerEntry
    ) -> tuple[str, list[str], int]:
        header = self.store.read_header(log_name) or ""
        offset = self._acked_offset(log_name, entry.remote_count)
        count = entry.pending
        if self.batch_size:
            count = min(count, self.batch_size)
        rows = self.store.read_rows_from(log_name, offset)[:count]
        return header, rows, offset

    def _acked_offset(self, log_name: str, remote_count: int) -> int:
        """Byte offset of the first unacknowledged row.

        Files are append-only, so the offset reached by the last ack stays
        valid and only a mismatch falls back to scanning the file.
        """
        cached = self._offsets.get(log_name)
        if (
            cached is not None
            and cached[0] == remote_count
            and cached[1] <= self.store.size(log_name)
        ):
            return cached[1]
        return self.store.row_offset(log_name, remote_count)

    async def _push_backlog(self, log_name: str) -> SyncResult:
        """One push round for a log."""
        transport = self.transport
        if transport is None:
            return SyncResult(
                status=SyncStatus.FAILED,
                log_name=log_name,
                error="No remote URL configured",
            )

        try:
            async with self.lock(log_name):
                # Rows appended before a crash may be missing from the ledger
                entry = self.ledger.reconcile(
                    log_name, self.store.count_rows(log_name)
                )
                if entry.pending <= 0:
                    return SyncResult(
                        status=SyncStatus.SUCCESS,
                        log_name=log_name,
                        timestamp=datetime.now(),
                    )
                header, rows, offset = self._read_backlog(log_name, entry)
        except (OSError, ValueError) as e:
            logger.error(f"Cannot read backlog of {log_name}: {e}")
            return self._failure(log_name, SyncStatus.FAILED, str(e))

        if not rows:
            return self._failure(
                log_name,
                SyncStatus.FAILED,
                f"Ledger shows {entry.pending} pending rows but the file "
                f"holds none past row {entry.remote_count}",
            )

        first_row = entry.remote_count + 1
        try:
            await asyncio.wait_for(
                transport.push(log_name, header, rows, first_row),
                timeout=self.push_timeout,
            )
        except asyncio.TimeoutError:
            return self._failure(
                log_name, SyncStatus.OFFLINE, f"Push timed out after {self.push_timeout}s"
            )
        except RemoteSyncFailure as e:
            status = SyncStatus.OFFLINE if e.retryable else SyncStatus.FAILED
            return self._failure(log_name, status, str(e))
        except Exception as e:
            logger.error(f"Unexpected push error for {log_name}: {e}", exc_info=True)
            return self._failure(log_name, SyncStatus.FAILED, str(e))

        async with self.lock(log_name):
            try:
                updated = self.ledger.record_remote_ack(
                    log_name, entry.remote_count + len(rows)
                )
            except OSError as e:
                # Rows will be sent again on the next round
                logger.error(f"Cannot persist ack for {log_name}: {e}")
                return self._failure(log_name, SyncStatus.FAILED, str(e))

        if updated.remote_count == entry.remote_count + len(rows):
            pushed_bytes = sum(len(row.encode(ENCODING)) + 1 for row in rows)
            self._offsets[log_name] = (updated.remote_count, offset + pushed_bytes)

        self._consecutive_failures = 0
        self._last_sync = datetime.now()
        logger.info(
            f"Pushed {len(rows)} rows of {log_name}, "
            f"remote={updated.remote_count}/{updated.local_count}"
        )
        return SyncResult(
            status=SyncStatus.SUCCESS,
            log_name=log_name,
            rows_pushed=len(rows),
            timestamp=self._last_sync,
        )

    def _failure(self, log_name: str, status: SyncStatus, error: str) -> SyncResult:
        self._consecutive_failures += 1
        logger.warning(f"Sync of {log_name} failed ({status.value}): {error}")
        return SyncResult(status=status, log_name=log_name, error=error)

    async def sync_all(self, extra_names: Iterable[str] = ()) -> list[SyncResult]:
        """Sync every log tracked by the ledger.

        Logs whose files grew past their ledger count are caught up too.

        Args:
            extra_names: Logs to check even if the ledger has no entry yet.
        """
        names = list(dict.fromkeys([*self.ledger.names(), *extra_names]))
        if not names:
            return []
        return list(await asyncio.gather(*(self.sync(n) for n in names)))

    async def sync_loop(
        self,
        interval_seconds: float = 300,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Periodically retry pending backlogs.

        Args:
            interval_seconds: Seconds between sync attempts.
            stop_event: Event to signal loop should stop.
        """
        logger.info(f"Starting sync loop with {interval_seconds}s interval")

        while True:
            if stop_event and stop_event.is_set():
                break

            try:
                results = await self.sync_all()
                if results:
                    pushed = sum(r.rows_pushed for r in results)
                    logger.info(f"Sync loop: {len(results)} logs, pushed={pushed}")
            except Exception as e:
                logger.error(f"Sync loop error: {e}", exc_info=True)

            # Adaptive interval: back off if consecutive failures
            wait_time = interval_seconds
            if self._consecutive_failures > 0:
                wait_time = min(
                    interval_seconds * (2 ** self._consecutive_failures),
                    3600,  # Max 1 hour
                )
                logger.debug(f"Backing off sync for {wait_time}s")

            if stop_event:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=wait_time)
                    break  # Stop event was set
                except asyncio.TimeoutError:
                    pass  # Normal timeout, continue loop
            else:
                await asyncio.sleep(wait_time)

        logger.info("Sync loop stopped")

    async def cancel_all(self) -> None:
        """Abandon in-flight pushes.

        Unacknowledged rows stay pending and are sent again later.
        """
        tasks = [t for t in self._tasks.values() if not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        self._dirty.clear()
        if tasks:
            logger.info(f"Abandoned {len(tasks)} in-flight pushes")

    @property
    def last_sync(self) -> datetime | None:
        """Get timestamp of last successful push."""
        return self._last_sync

    @property
    def in_flight(self) -> list[str]:
        return [name for name, t in self._tasks.items() if not t.done()]

    def get_sync_status(self) -> dict[str, Any]:
        """Get current sync status.

        Returns:
            Dictionary with sync statistics.
        """
        logs = self.ledger.as_dict()
        return {
            "remote_configured": self.transport is not None,
            "last_sync": self._last_sync.isoformat() if self._last_sync else None,
            "consecutive_failures": self._consecutive_failures,
            "pending_rows": sum(e["pending"] for e in logs.values()),
            "logs": logs,
        }
