import threading
import time
from typing import Callable, Optional

from getlogs_invariants.checker import BlockInvariantChecker, LogQueries
from getlogs_invariants.errors import VerificationFailure
from getlogs_invariants.execution import BatchContext, ParallelBatchExecutor
from getlogs_invariants.logging import log
from getlogs_invariants.metrics import RANGE_END_BLOCK, VIOLATIONS
from getlogs_invariants.planning import BatchPlanner, BlockRange
from getlogs_invariants.progress import ProgressReporter

BATCH_SIZE = 10
PROGRESS_INTERVAL = 20.0


class RangeDriver:
    """
    Verify eth_getLogs indexing invariants over [block_from, block_to).

    Blocks are checked in batches of batch_size; a batch must finish
    before the next one is dispatched. The run stops at the first failure.
    """

    def __init__(
        self,
        queries: LogQueries,
        *,
        chain: str = "unknown",
        batch_size: int = BATCH_SIZE,
        max_workers: int | None = None,
        progress_interval: float = PROGRESS_INTERVAL,
        on_progress: Optional[Callable[[int], None]] = None,
    ):
        self.queries = queries
        self.chain = chain
        self.batch_size = batch_size
        self.executor = ParallelBatchExecutor(max_workers=max_workers)
        self.progress_interval = progress_interval
        self.on_progress = on_progress

    @property
    def max_workers(self) -> int:
        return self.executor.max_workers

    def run(
        self,
        block_from: int,
        block_to: int,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """
        Return None when every block passes; raise the first
        VerificationFailure otherwise.
        """
        block_range = BlockRange(block_from, block_to)
        if block_range.empty:
            return

        cancel_event = cancel_event or threading.Event()
        planner = BatchPlanner(block_range, self.batch_size)
        checker = BlockInvariantChecker(self.queries, chain=self.chain, cancel_event=cancel_event)
        progress = ProgressReporter(
            interval=self.progress_interval,
            chain=self.chain,
            on_progress=self.on_progress,
        )
        ctx = BatchContext(checker=checker, cancel_event=cancel_event, progress=progress)

        RANGE_END_BLOCK.labels(chain=self.chain).set(block_to)
        log.info(
            "verify_range_start",
            extra={
                "chain": self.chain,
                "block_from": block_from,
                "block_to": block_to,
                "batch_size": self.batch_size,
                "max_workers": self.max_workers,
            },
        )

        started = time.perf_counter()
        with progress:
            for batch in planner:
                if cancel_event.is_set():
                    self._fail(VerificationFailure.cancelled(batch.start_block))
                try:
                    result = self.executor.execute(ctx, batch)
                except VerificationFailure as e:
                    self._fail(e)

                log.debug(
                    "batch_verified",
                    extra={
                        "range_id": result["range_id"],
                        "range_start": batch.start_block,
                        "range_end": batch.end_block,
                        "blocks": result["block_count"],
                    },
                )

        log.info(
            "verify_range_done",
            extra={
                "chain": self.chain,
                "block_from": block_from,
                "block_to": block_to,
                "cost_sec": round(time.perf_counter() - started, 2),
            },
        )

    def _fail(self, failure: VerificationFailure):
        VIOLATIONS.labels(chain=self.chain, kind=failure.kind.value).inc()
        if failure.is_violation:
            log.error("invariant_violation", extra=failure.to_log_extra())
        else:
            log.warning("verification_stopped", extra=failure.to_log_extra())
        raise failure

    def verify_block(self, block_number: int) -> None:
        BlockInvariantChecker(self.queries, chain=self.chain).verify(block_number)
