"""Local storage for CSV log files."""

from .local_store import ENCODING, LocalLogStore

__all__ = ["ENCODING", "LocalLogStore"]
