import threading
import time
from typing import Iterable, Protocol

from getlogs_invariants.errors import FailureKind, RpcQueryError, VerificationFailure
from getlogs_invariants.log_entry import LogEntry
from getlogs_invariants.logging import log
from getlogs_invariants.metrics import (
    BLOCK_VERIFY_SECONDS,
    BLOCKS_VERIFIED,
    FILTERED_QUERIES,
    LOGS_CHECKED,
)


class LogQueries(Protocol):
    def query_logs_unfiltered(self, block_number: int) -> list[LogEntry]: ...

    def query_logs_by_address(
        self, block_from: int, block_to: int, address: str
    ) -> list[LogEntry]: ...

    def query_logs_by_address_and_topic(
        self, block_from: int, block_to: int, address: str, topic: str
    ) -> list[LogEntry]: ...


def find_duplicate_index(logs: Iterable[LogEntry]) -> int | None:
    """
    Return the smallest log_index that occurs more than once, or None.
    """
    indices = sorted(l.log_index for l in logs)
    for prev, cur in zip(indices, indices[1:]):
        if prev == cur:
            return cur
    return None


class BlockInvariantChecker:
    """
    Check that one block's logs are reachable through the address and
    topic indexes.

    invariant1: a log visible without a filter is visible when filtered by
                its address (the address is indexed)
    invariant2: same for the (address, first topic) filter (the topic is
                indexed)

    No result set, filtered or not, may repeat a log_index.
    """

    def __init__(self, queries: LogQueries, chain: str = "unknown", cancel_event=None):
        self.queries = queries
        self.chain = chain
        self.cancel_event = cancel_event or threading.Event()

    def verify(self, bn: int) -> None:
        start = time.perf_counter()

        logs = self._query(bn, self.queries.query_logs_unfiltered, bn)
        self._no_duplicates(bn, logs)
        LOGS_CHECKED.labels(chain=self.chain).inc(len(logs))

        saw_addr = set()  # don't check same addr / topic twice in this block
        saw_topic = set()
        for l in logs:
            if self.cancel_event.is_set():
                raise VerificationFailure.cancelled(bn)

            # a seen address skips the whole entry, topic included
            if l.address in saw_addr:
                continue
            saw_addr.add(l.address)
            self._check_address(bn, l.address)

            topic = l.first_topic
            if topic is None or topic in saw_topic:
                continue
            saw_topic.add(topic)
            self._check_topic(bn, l.address, topic)

        BLOCKS_VERIFIED.labels(chain=self.chain).inc()
        BLOCK_VERIFY_SECONDS.labels(chain=self.chain).observe(time.perf_counter() - start)
        log.debug(
            "block_verified",
            extra={
                "block_num": bn,
                "logs": len(logs),
                "addresses": len(saw_addr),
                "topics": len(saw_topic),
            },
        )

    def _check_address(self, bn: int, address: str) -> None:
        FILTERED_QUERIES.labels(chain=self.chain, filter="address").inc()
        filtered = self._query(bn, self.queries.query_logs_by_address, bn, bn, address)
        if not filtered:
            raise VerificationFailure(
                FailureKind.ADDRESS_NOT_INDEXED,
                bn,
                address=address,
                detail="account not indexed",
            )
        self._no_duplicates(bn, filtered, address=address)

    def _check_topic(self, bn: int, address: str, topic: str) -> None:
        FILTERED_QUERIES.labels(chain=self.chain, filter="address_topic").inc()
        filtered = self._query(
            bn, self.queries.query_logs_by_address_and_topic, bn, bn, address, topic
        )
        if not filtered:
            raise VerificationFailure(
                FailureKind.TOPIC_NOT_INDEXED,
                bn,
                address=address,
                topic=topic,
                detail="topic not indexed",
            )
        self._no_duplicates(bn, filtered, address=address, topic=topic)

    @staticmethod
    def _query(bn: int, fn, *args) -> list[LogEntry]:
        try:
            return fn(*args)
        except RpcQueryError as e:
            raise VerificationFailure(
                FailureKind.TRANSPORT_ERROR, bn, detail=str(e)
            ) from e

    @staticmethod
    def _no_duplicates(bn: int, logs: list[LogEntry], address=None, topic=None) -> None:
        if len(logs) <= 1:
            return
        dup = find_duplicate_index(logs)
        if dup is not None:
            raise VerificationFailure(
                FailureKind.DUPLICATE_INDEX,
                bn,
                address=address,
                topic=topic,
                log_index=dup,
                detail="duplicated log_index",
            )
