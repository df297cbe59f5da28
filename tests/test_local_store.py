"""Tests for LocalLogStore append-only files."""

import pytest

from rcsvlog.exceptions import LocalWriteFailure
from rcsvlog.store import LocalLogStore


@pytest.fixture
def log_path(tmp_path):
    return str(tmp_path / "logs" / "flight.csv")


class TestAppend:
    """Tests for appending lines."""

    def test_first_append_writes_header(self, store, log_path):
        written = store.append(log_path, "1,2", "a,b")

        with open(log_path, encoding="utf-8") as f:
            assert f.read() == "a,b\n1,2\n"
        assert written == len("a,b\n1,2\n")

    def test_header_written_once(self, store, log_path):
        for i in range(5):
            store.append(log_path, f"{i},{i}", "a,b")

        lines = store.read_rows_from(log_path, 0)
        assert lines.count("a,b") == 1
        assert lines[0] == "a,b"
        assert len(lines) == 6

    def test_later_append_returns_line_bytes(self, store, log_path):
        store.append(log_path, "1,2", "a,b")
        assert store.append(log_path, "3,4", "a,b") == 4

    def test_header_skipped_for_existing_file(self, store, tmp_path):
        path = tmp_path / "existing.csv"
        path.write_text("old,header\n9,9\n", encoding="utf-8")

        store.append(str(path), "1,2", "a,b")

        assert path.read_text(encoding="utf-8") == "old,header\n9,9\n1,2\n"

    def test_utf8_encoding(self, store, log_path):
        written = store.append(log_path, "température,é", "h")
        assert written == len("h\ntempérature,é\n".encode("utf-8"))
        assert store.read_rows_from(log_path, 0) == ["h", "température,é"]

    def test_creates_parent_directories(self, store, tmp_path):
        path = tmp_path / "a" / "b" / "c.csv"
        store.append(str(path), "x", "h")
        assert path.exists()

    def test_unwritable_path_raises(self, store, tmp_path):
        with pytest.raises(LocalWriteFailure) as exc_info:
            store.append(str(tmp_path), "x", "h")
        assert exc_info.value.log_name == str(tmp_path)


class TestRead:
    """Tests for reading lines back."""

    def test_missing_file(self, store, log_path):
        assert store.read_rows_from(log_path, 0) == []
        assert store.read_header(log_path) is None
        assert store.count_rows(log_path) == 0
        assert store.row_offset(log_path, 3) == 0
        assert store.size(log_path) == 0
        assert not store.exists(log_path)

    def test_round_trip(self, store, log_path):
        lines = ["1,2", "3,4", "5,6"]
        for line in lines:
            store.append(log_path, line, "a,b")

        assert store.read_rows_from(log_path, 0) == ["a,b"] + lines

    def test_partial_trailing_line_not_returned(self, store, tmp_path):
        path = tmp_path / "partial.csv"
        path.write_bytes(b"h\nr1\npart")

        assert store.read_rows_from(str(path), 0) == ["h", "r1"]
        assert store.count_rows(str(path)) == 1

    def test_read_from_offset(self, store, log_path):
        for line in ["r1", "r2", "r3"]:
            store.append(log_path, line, "h")

        offset = store.row_offset(log_path, 1)
        assert store.read_rows_from(log_path, offset) == ["r2", "r3"]

    def test_row_offsets(self, store, log_path):
        for line in ["r1", "r2"]:
            store.append(log_path, line, "h")

        assert store.row_offset(log_path, 0) == 2
        assert store.row_offset(log_path, 1) == 5
        assert store.row_offset(log_path, 2) == 8
        assert store.row_offset(log_path, 10) == 8
        assert store.read_rows_from(log_path, 8) == []

    def test_read_header(self, store, log_path):
        store.append(log_path, "1", "timestamp,a")
        assert store.read_header(log_path) == "timestamp,a"

    def test_empty_header_line(self, store, log_path):
        store.append(log_path, "1", "")
        assert store.read_rows_from(log_path, 0) == ["", "1"]
        assert store.read_header(log_path) == ""
        assert store.count_rows(log_path) == 1

    def test_count_rows_excludes_header(self, store, log_path):
        for i in range(4):
            store.append(log_path, str(i), "h")
        assert store.count_rows(log_path) == 4
        assert store.size(log_path) == len("h\n0\n1\n2\n3\n")
