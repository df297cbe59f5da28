"""Sync infrastructure for offline-first CSV logs.

Tracks per-log progress in a persisted ledger and pushes unsent rows to a
remote store whenever a push can be attempted.
"""

from .ledger import LEDGER_FILENAME, LedgerEntry, SyncLedger
from .syncer import RemoteSyncer, SyncResult, SyncStatus
from .transport import HttpPushTransport, PushTransport

__all__ = [
    "LEDGER_FILENAME",
    "HttpPushTransport",
    "LedgerEntry",
    "PushTransport",
    "RemoteSyncer",
    "SyncLedger",
    "SyncResult",
    "SyncStatus",
]
