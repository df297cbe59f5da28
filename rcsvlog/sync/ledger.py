"""Persisted per-log sync progress.

Maps each log name to the number of rows written locally and the number
acknowledged by the remote store. The whole ledger is rewritten on every
mutation.
"""

import csv
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..exceptions import LedgerCorruption

logger = logging.getLogger(__name__)

LEDGER_FILENAME = "logManager.csv"


@dataclass
class LedgerEntry:
    """Sync progress of a single log."""

    local_count: int = 0
    remote_count: int = 0

    @property
    def pending(self) -> int:
        """Rows written locally but not yet acknowledged."""
        return self.local_count - self.remote_count

    def to_dict(self) -> dict[str, int]:
        return {
            "local_count": self.local_count,
            "remote_count": self.remote_count,
            "pending": self.pending,
        }


class SyncLedger:
    """CSV-backed mapping of log name to (local_count, remote_count).

    Invariant: remote_count <= local_count for every entry.
    """

    def __init__(self, path: str | Path):
        """Initialize the ledger.

        Args:
            path: Path to the ledger CSV file.
        """
        self.path = Path(path).expanduser()
        self._entries: dict[str, LedgerEntry] = {}

    def load(self) -> None:
        """Read the ledger file, replacing in-memory state.

        A missing file is an empty ledger. Malformed rows are skipped and
        out-of-range counts are clamped.
        """
        self._entries = {}
        if not self.path.exists():
            logger.info(f"No ledger at {self.path}, starting empty")
            return

        with open(self.path, newline="", encoding="utf-8") as f:
            for line_no, row in enumerate(csv.reader(f), start=1):
                if not row:
                    continue
                try:
                    name, entry = self._parse_row(row)
                except LedgerCorruption as e:
                    logger.warning(f"Ledger {self.path} line {line_no}: {e}")
                    continue
                self._entries[name] = entry

        logger.info(f"Loaded ledger {self.path} with {len(self._entries)} logs")

    @staticmethod
    def _parse_row(row: list[str]) -> tuple[str, LedgerEntry]:
        if len(row) != 3:
            raise LedgerCorruption(f"expected 3 fields, got {len(row)}")

        name = row[0]
        try:
            local_count = int(row[1])
            remote_count = int(row[2])
        except ValueError as e:
            raise LedgerCorruption(f"bad count: {e}", log_name=name) from e

        local_count = max(local_count, 0)
        if remote_count > local_count:
            logger.warning(
                f"Ledger entry {name} has remote={remote_count} > "
                f"local={local_count}, clamping"
            )
        remote_count = min(max(remote_count, 0), local_count)
        return name, LedgerEntry(local_count, remote_count)

    def save(self) -> None:
        """Persist the whole ledger.

        Writes a sibling temp file and renames it over the ledger so a crash
        leaves either the previous or the new content.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        with open(tmp_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, lineterminator="\n")
            for name, entry in self._entries.items():
                writer.writerow([name, entry.local_count, entry.remote_count])
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, self.path)

    def get(self, log_name: str) -> LedgerEntry:
        """Get a copy of an entry; unseen names report zero counts."""
        entry = self._entries.get(log_name, LedgerEntry())
        return LedgerEntry(entry.local_count, entry.remote_count)

    def record_local_write(self, log_name: str) -> LedgerEntry:
        """Count one more locally written row and persist.

        Args:
            log_name: Log that was appended to.

        Returns:
            The updated entry.
        """
        entry = self._entries.setdefault(log_name, LedgerEntry())
        entry.local_count += 1
        self.save()
        return self.get(log_name)

    def record_remote_ack(self, log_name: str, count: int) -> LedgerEntry:
        """Advance the acknowledged row count and persist.

        Never moves the count backwards or past the local count, so stale
        or duplicate acknowledgments are no-ops.

        Args:
            log_name: Log that was pushed.
            count: Local row count at the time of the push.

        Returns:
            The updated entry.
        """
        entry = self._entries.setdefault(log_name, LedgerEntry())
        new_remote = max(entry.remote_count, min(count, entry.local_count))
        if new_remote != entry.remote_count:
            entry.remote_count = new_remote
            self.save()
        return self.get(log_name)

    def reconcile(self, log_name: str, file_rows: int) -> LedgerEntry:
        """Raise the local count to the rows actually present in the file.

        Covers a crash between a file append and the ledger save. The local
        count is never lowered.

        Args:
            log_name: Log to reconcile.
            file_rows: Complete data rows in the log file.

        Returns:
            The possibly updated entry.
        """
        entry = self._entries.get(log_name)
        current = entry.local_count if entry else 0
        if file_rows > current:
            logger.warning(
                f"Log {log_name} has {file_rows} rows but ledger records "
                f"{current}, recovering"
            )
            entry = self._entries.setdefault(log_name, LedgerEntry())
            entry.local_count = file_rows
            self.save()
        return self.get(log_name)

    def pending(self, log_name: str) -> int:
        return self.get(log_name).pending

    def names(self) -> list[str]:
        return list(self._entries.keys())

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return {name: entry.to_dict() for name, entry in self._entries.items()}
