"""Row values and CSV line formatting."""

from .formatter import LogDescriptor, RowFormatter, format_timestamp
from .values import Value, ValueKind

__all__ = [
    "LogDescriptor",
    "RowFormatter",
    "Value",
    "ValueKind",
    "format_timestamp",
]
