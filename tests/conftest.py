"""Shared fixtures."""

import asyncio

import pytest

from rcsvlog.store import LocalLogStore
from rcsvlog.sync import PushTransport, SyncLedger


class FakeTransport(PushTransport):
    """In-memory push target.

    Each entry in `failures` is consumed by one push; an exception is raised
    after the rows were recorded as received, None lets the push succeed.
    """

    def __init__(self):
        self.calls: list[tuple[str, str, list[str], int]] = []
        self.received: list[str] = []
        self.failures: list[Exception | None] = []
        self.gate: asyncio.Event | None = None
        self.started: asyncio.Event | None = None
        self.closed = False

    async def push(self, log_name, header, rows, first_row):
        self.calls.append((log_name, header, list(rows), first_row))
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        self.received.extend(rows)
        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_transport():
    """Create an in-memory push transport."""
    return FakeTransport()


@pytest.fixture
def store():
    return LocalLogStore()


@pytest.fixture
def ledger(tmp_path):
    """Create an empty ledger under a temporary directory."""
    ledger = SyncLedger(tmp_path / "logManager.csv")
    ledger.load()
    return ledger
