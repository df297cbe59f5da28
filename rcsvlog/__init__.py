"""rcsvlog: offline-first CSV logging with remote catch-up sync."""

from .exceptions import LedgerCorruption, LocalWriteFailure, RCSVLogError, RemoteSyncFailure
from .logger import CSVLogger

__version__ = "0.1.0"

__all__ = [
    "CSVLogger",
    "LedgerCorruption",
    "LocalWriteFailure",
    "RCSVLogError",
    "RemoteSyncFailure",
]
