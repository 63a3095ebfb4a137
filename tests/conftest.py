"""Pytest fixtures for test suite."""

import threading

import pytest

from getlogs_invariants.errors import RpcQueryError
from getlogs_invariants.log_entry import LogEntry


def entry(index, address, *topics, block_number=None):
    return LogEntry(
        address=address,
        topics=tuple(topics),
        log_index=index,
        block_number=block_number,
    )


class FakeLogQueries:
    """
    In-memory node.

    Filtered queries are answered from the unfiltered data (a healthy
    index) unless an override is registered for that key. Every call is
    recorded as a tuple in `calls`.
    """

    def __init__(self, blocks=None):
        self.blocks = dict(blocks or {})
        self.address_overrides = {}
        self.topic_overrides = {}
        self.errors = {}
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, call):
        with self._lock:
            self.calls.append(call)
        if call in self.errors:
            raise self.errors[call]

    def _logs(self, block_from, block_to):
        out = []
        for bn in range(block_from, block_to + 1):
            out.extend(self.blocks.get(bn, []))
        return out

    def query_logs_unfiltered(self, block_number):
        self._record(("unfiltered", block_number))
        return list(self.blocks.get(block_number, []))

    def query_logs_by_address(self, block_from, block_to, address):
        self._record(("address", block_from, address))
        key = (block_from, address)
        if key in self.address_overrides:
            return list(self.address_overrides[key])
        return [l for l in self._logs(block_from, block_to) if l.address == address]

    def query_logs_by_address_and_topic(self, block_from, block_to, address, topic):
        self._record(("topic", block_from, address, topic))
        key = (block_from, address, topic)
        if key in self.topic_overrides:
            return list(self.topic_overrides[key])
        return [
            l for l in self._logs(block_from, block_to)
            if l.address == address and l.first_topic == topic
        ]

    def latest_block(self):
        return max(self.blocks, default=0)

    # -------- helpers --------
    def fail(self, call, detail="connection reset"):
        self.errors[call] = RpcQueryError("eth_getLogs", f"transport error: {detail}")

    def calls_of(self, kind):
        return [c for c in self.calls if c[0] == kind]

    def checked_blocks(self):
        return [c[1] for c in self.calls_of("unfiltered")]


@pytest.fixture
def healthy_blocks():
    """Blocks 100-139, each with two logs from different addresses."""
    blocks = {}
    for bn in range(100, 140):
        blocks[bn] = [
            entry(0, "0xaa", "0x01", block_number=bn),
            entry(1, "0xbb", "0x02", "0x03", block_number=bn),
        ]
    return blocks
