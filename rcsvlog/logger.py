"""Offline-first CSV logger.

Logs rows line by line to a local CSV file with an optional leading
timestamp, and pushes every row not yet acknowledged by the remote store
whenever a row is logged.

At the first log to an empty file the header is written:

    timestamp (if enabled), header[0], header[1], ..., header[N - 1]

then every log call appends:

    yyyy-MM-dd HH:mm:ss.zzz (if enabled), row[0], row[1], ..., row[N - 1]
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Sequence

from .config import Config, SyncConfig
from .exceptions import LocalWriteFailure
from .paths import PathResolver
from .rows import LogDescriptor, RowFormatter
from .store import LocalLogStore
from .sync import HttpPushTransport, PushTransport, RemoteSyncer, SyncLedger, SyncResult

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class CSVLogger:
    """Stateful logging engine for one log at a time.

    header and log_time cannot change between the first log() and close().
    Listeners registered with on_change() are told the name of each of
    filename, header and log_time whose value changes.
    """

    def __init__(
        self,
        ledger: SyncLedger,
        store: LocalLogStore | None = None,
        transport: PushTransport | None = None,
        resolver: PathResolver | None = None,
        sync_config: SyncConfig | None = None,
        filename: str = "",
        header: Sequence[str] = (),
        log_time: bool = True,
        log_millis: bool = True,
        precision: int = 2,
        to_console: bool = False,
    ):
        """Initialize the logger.

        Args:
            ledger: Loaded ledger tracking local and remote row counts.
            store: Local file store.
            transport: Push primitive for remote sync; None for local only.
            resolver: Maps bare filenames to absolute paths.
            sync_config: Transport and retry settings.
            filename: Log filename or full path.
            header: Header fields, timestamp excluded.
            log_time: Whether to prepend a timestamp field.
            log_millis: Whether the timestamp includes milliseconds.
            precision: Decimal places for floating point values.
            to_console: Whether to also print each line.
        """
        self._sync_config = sync_config or SyncConfig()
        self._ledger = ledger
        self._store = store or LocalLogStore()
        self._resolver = resolver or PathResolver()
        self._formatter = RowFormatter()
        self._syncer = RemoteSyncer(
            ledger,
            self._store,
            transport,
            batch_size=self._sync_config.batch_size,
            push_timeout=self._sync_config.push_timeout_seconds,
        )
        self._descriptor = LogDescriptor(
            name=self._resolver.resolve(filename) if filename else "",
            header=list(header),
            log_time=log_time,
            log_millis=log_millis,
            precision=precision,
        )
        self._server_url = getattr(transport, "server_url", "") or ""
        self.to_console = to_console
        self._callbacks: list[ChangeCallback] = []
        self._reconciled: set[str] = set()
        self._retired: list[PushTransport] = []
        self._stop_event: asyncio.Event | None = None
        self._retry_task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: Config) -> "CSVLogger":
        """Build a logger and its collaborators from configuration."""
        resolver = PathResolver(config.storage.data_dir or None)
        ledger = SyncLedger(resolver.resolve(config.storage.ledger_path))
        ledger.load()

        transport = None
        if config.sync.enabled and config.sync.server_url:
            transport = _http_transport(config.sync.server_url, config.sync)

        return cls(
            ledger,
            transport=transport,
            resolver=resolver,
            sync_config=config.sync,
            filename=config.logger.filename,
            header=config.logger.header,
            log_time=config.logger.log_time,
            log_millis=config.logger.log_millis,
            precision=config.logger.precision,
            to_console=config.logger.to_console,
        )

    # Change notification

    def on_change(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def remove_on_change(self, callback: ChangeCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify(self, prop: str) -> None:
        for callback in list(self._callbacks):
            try:
                callback(prop)
            except Exception:
                logger.exception(f"Change listener failed for {prop}")

    # Properties

    @property
    def filename(self) -> str:
        """Absolute path of the current log."""
        return self._descriptor.name

    @filename.setter
    def filename(self, filename: str) -> None:
        resolved = self._resolver.resolve(filename) if filename else ""
        if resolved == self._descriptor.name:
            return
        if self._descriptor.frozen:
            self.close()
        self._descriptor.name = resolved
        self._notify("filename")

    @property
    def header(self) -> list[str]:
        return list(self._descriptor.header)

    @header.setter
    def header(self, header: Sequence[str]) -> None:
        header = list(header)
        if header == self._descriptor.header:
            return
        if self._descriptor.frozen:
            logger.warning(
                f"Header of {self.filename} cannot change until the log is closed"
            )
            return
        self._descriptor.header = header
        self._notify("header")

    @property
    def log_time(self) -> bool:
        return self._descriptor.log_time

    @log_time.setter
    def log_time(self, log_time: bool) -> None:
        if log_time == self._descriptor.log_time:
            return
        if self._descriptor.frozen:
            logger.warning(
                f"logTime of {self.filename} cannot change until the log is closed"
            )
            return
        self._descriptor.log_time = log_time
        self._notify("log_time")

    @property
    def log_millis(self) -> bool:
        return self._descriptor.log_millis

    @log_millis.setter
    def log_millis(self, log_millis: bool) -> None:
        self._descriptor.log_millis = log_millis

    @property
    def precision(self) -> int:
        return self._descriptor.precision

    @precision.setter
    def precision(self, precision: int) -> None:
        self._descriptor.precision = max(int(precision), 0)

    @property
    def server_url(self) -> str:
        return self._server_url

    @server_url.setter
    def server_url(self, server_url: str) -> None:
        if server_url == self._server_url:
            return
        if self._syncer.transport is not None:
            self._retired.append(self._syncer.transport)
        self._server_url = server_url
        self._syncer.set_transport(
            _http_transport(server_url, self._sync_config) if server_url else None
        )
        logger.info(f"Remote URL set to {server_url or '(none)'}")

    @property
    def ledger(self) -> SyncLedger:
        return self._ledger

    @property
    def syncer(self) -> RemoteSyncer:
        return self._syncer

    @property
    def logging_started(self) -> bool:
        return self._descriptor.frozen

    # Logging

    async def log(self, row: Sequence[Any], now: datetime | None = None) -> int:
        """Log one row and trigger a push of the backlog.

        Args:
            row: Field values, ideally one per header field.
            now: Timestamp to use instead of the current local time.

        Returns:
            Bytes written to the log file.

        Raises:
            LocalWriteFailure: If the row could not be written; it is lost.
        """
        name = self._descriptor.name
        if not name:
            raise LocalWriteFailure("No log filename configured")

        async with self._syncer.lock(name):
            if name not in self._reconciled:
                try:
                    self._ledger.reconcile(name, self._store.count_rows(name))
                except OSError as e:
                    raise LocalWriteFailure(
                        f"Cannot recover row count of {name}: {e}", log_name=name
                    ) from e
                self._reconciled.add(name)

            line = self._formatter.data_line(self._descriptor, row, now)
            written = self._store.append(
                name, line, self._formatter.header_line(self._descriptor)
            )
            self._descriptor.freeze()

            try:
                self._ledger.record_local_write(name)
            except OSError as e:
                # The row is in the file; reconcile() recovers the count
                logger.error(f"Cannot persist ledger after writing {name}: {e}")

        if self.to_console:
            print(line)

        if self._syncer.transport is not None:
            self._syncer.schedule(name)

        return written

    async def sync(self) -> SyncResult:
        """Push the backlog of the current log and wait for the outcome."""
        return await self._syncer.sync(self._descriptor.name)

    def close(self) -> None:
        """End the current logging session.

        Header and logTime may be changed again afterwards.
        """
        if self._descriptor.frozen:
            logger.debug(f"Closing log {self._descriptor.name}")
        self._descriptor.unfreeze()

    # Background retry

    async def start(self) -> None:
        """Start periodic retries if an interval is configured."""
        interval = self._sync_config.retry_interval_seconds
        if self._retry_task or interval <= 0:
            return

        self._stop_event = asyncio.Event()
        self._retry_task = asyncio.create_task(
            self._syncer.sync_loop(interval, self._stop_event)
        )

    async def aclose(self) -> None:
        """Close the log, abandon in-flight pushes and release transports."""
        self.close()

        if self._retry_task:
            self._stop_event.set()
            self._retry_task.cancel()
            try:
                await self._retry_task
            except asyncio.CancelledError:
                pass
            self._retry_task = None

        await self._syncer.cancel_all()

        for transport in self._retired:
            await transport.close()
        self._retired.clear()
        if self._syncer.transport is not None:
            await self._syncer.transport.close()

    def get_status(self) -> dict[str, Any]:
        """Get current logger and sync status."""
        entry = self._ledger.get(self._descriptor.name)
        return {
            "filename": self._descriptor.name,
            "header": self.header,
            "log_time": self.log_time,
            "log_millis": self.log_millis,
            "precision": self.precision,
            "logging_started": self.logging_started,
            "server_url": self._server_url,
            "local_count": entry.local_count,
            "remote_count": entry.remote_count,
            "sync": self._syncer.get_sync_status(),
        }


def _http_transport(server_url: str, sync_config: SyncConfig) -> HttpPushTransport:
    return HttpPushTransport(
        server_url,
        max_retries=sync_config.max_retries,
        timeout=sync_config.timeout_seconds,
    )
