"""Append-only local storage for CSV logs."""

import logging
import os
from pathlib import Path

from ..exceptions import LocalWriteFailure

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
NEWLINE = b"\n"


class LocalLogStore:
    """One append-only UTF-8 file per log name.

    The log name is the file path. Files are created lazily on first append
    and never truncated. Callers serialize access per log name.
    """

    def append(self, log_name: str, line: str, header_line: str | None = None) -> int:
        """Append one line, writing the header first if the file is empty.

        The write is flushed and fsynced before returning.

        Args:
            log_name: Path of the log file.
            line: Formatted data line without newline.
            header_line: Header to write when the file is empty.

        Returns:
            Number of bytes written, header included.

        Raises:
            LocalWriteFailure: If the file cannot be created or written.
        """
        path = Path(log_name)
        payload = b""

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "ab") as f:
                if header_line is not None and f.tell() == 0:
                    payload += header_line.encode(ENCODING) + NEWLINE
                    logger.info(f"Writing header to new log {path}")
                payload += line.encode(ENCODING) + NEWLINE
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise LocalWriteFailure(
                f"Cannot append to {path}: {e}", log_name=log_name
            ) from e

        logger.debug(f"Appended {len(payload)} bytes to {path}")
        return len(payload)

    def read_rows_from(self, log_name: str, byte_offset: int = 0) -> list[str]:
        """Read complete lines from a byte offset to end of file.

        A trailing line without a newline is not returned.

        Args:
            log_name: Path of the log file.
            byte_offset: Offset of the first byte to read.

        Returns:
            Lines without their newline; empty if the file does not exist.
        """
        path = Path(log_name)
        if not path.exists():
            return []

        with open(path, "rb") as f:
            f.seek(byte_offset)
            data = f.read()

        end = data.rfind(NEWLINE)
        if end < 0:
            return []
        return [raw.decode(ENCODING) for raw in data[:end].split(NEWLINE)]

    def read_header(self, log_name: str) -> str | None:
        """First complete line of the file, or None if there is none."""
        path = Path(log_name)
        if not path.exists():
            return None

        with open(path, "rb") as f:
            raw = f.readline()
        if not raw.endswith(NEWLINE):
            return None
        return raw[:-1].decode(ENCODING)

    def row_offset(self, log_name: str, index: int) -> int:
        """Byte offset of a data row.

        Args:
            log_name: Path of the log file.
            index: 0-based data row index; the header is not counted.

        Returns:
            Offset of the row's first byte, or the offset just past the last
            complete line if the file has fewer rows.
        """
        path = Path(log_name)
        if not path.exists():
            return 0

        offset = 0
        with open(path, "rb") as f:
            # Skip the header plus `index` data rows
            for _ in range(index + 1):
                raw = f.readline()
                if not raw.endswith(NEWLINE):
                    break
                offset += len(raw)
        return offset

    def count_rows(self, log_name: str) -> int:
        """Number of complete data rows, header excluded."""
        path = Path(log_name)
        if not path.exists():
            return 0

        lines = 0
        with open(path, "rb") as f:
            for raw in f:
                if raw.endswith(NEWLINE):
                    lines += 1
        return max(lines - 1, 0)

    def exists(self, log_name: str) -> bool:
        return Path(log_name).exists()

    def size(self, log_name: str) -> int:
        path = Path(log_name)
        return path.stat().st_size if path.exists() else 0
