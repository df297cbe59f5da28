"""Header and data line rendering for CSV logs."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from .values import Value, single_line

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "timestamp"
SEPARATOR = ","


@dataclass
class LogDescriptor:
    """Identity and formatting policy of one log.

    header and log_time are frozen from the first successful append until
    the log is closed.
    """

    name: str
    header: list[str] = field(default_factory=list)
    log_time: bool = True
    log_millis: bool = True
    precision: int = 2
    frozen: bool = False

    def freeze(self) -> None:
        self.frozen = True

    def unfreeze(self) -> None:
        self.frozen = False


class RowFormatter:
    """Turns rows into CSV text lines.

    Fields are joined with commas and never escaped; field content is
    assumed to be comma-free. Line breaks inside a field become spaces.
    """

    def header_line(self, descriptor: LogDescriptor) -> str:
        """Build the one-time header line.

        Args:
            descriptor: Log whose header to render.

        Returns:
            Header line without a trailing newline.
        """
        fields = [single_line(name) for name in descriptor.header]
        if descriptor.log_time:
            fields.insert(0, TIMESTAMP_HEADER)
        return SEPARATOR.join(fields)

    def data_line(
        self,
        descriptor: LogDescriptor,
        row: Sequence[Any],
        now: datetime | None = None,
    ) -> str:
        """Build a data line.

        Args:
            descriptor: Log the row belongs to.
            row: Field values, ideally one per header field.
            now: Timestamp to use instead of the current local time.

        Returns:
            Data line without a trailing newline.
        """
        if descriptor.header and len(row) != len(descriptor.header):
            logger.warning(
                f"Row for {descriptor.name} has {len(row)} fields, "
                f"header has {len(descriptor.header)}"
            )

        fields = [Value.of(raw).render(descriptor.precision) for raw in row]
        if descriptor.log_time:
            fields.insert(
                0, format_timestamp(now or datetime.now(), descriptor.log_millis)
            )
        return SEPARATOR.join(fields)


def format_timestamp(moment: datetime, millis: bool = True) -> str:
    """Format as yyyy-MM-dd HH:mm:ss[.zzz]."""
    text = moment.strftime("%Y-%m-%d %H:%M:%S")
    if millis:
        text += f".{moment.microsecond // 1000:03d}"
    return text
