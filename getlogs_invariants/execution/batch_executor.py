import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from getlogs_invariants.checker import BlockInvariantChecker
from getlogs_invariants.errors import VerificationFailure
from getlogs_invariants.logging import log
from getlogs_invariants.planning import BlockRange
from getlogs_invariants.progress import ProgressReporter


def almost_all_cpus() -> int:
    """Worker cap: every CPU but a small reserve, at least one."""
    cpus = os.cpu_count() or 1
    if cpus == 1:
        return 1
    return max(1, min(cpus * 15 // 16, cpus - 1))


@dataclass
class BatchContext:
    checker: BlockInvariantChecker
    cancel_event: threading.Event
    progress: ProgressReporter | None = None


def verify_block(ctx: BatchContext, bn: int) -> int:
    if ctx.cancel_event.is_set():
        raise VerificationFailure.cancelled(bn)
    ctx.checker.verify(bn)
    return bn


class ParallelBatchExecutor:
    """
    Verify every block of one batch on a bounded thread pool.

    execute() is the batch barrier: it returns only after every dispatched
    block has reported. The first failure cancels blocks that have not
    started yet; if several blocks fail, the lowest block number among the
    failures observed wins.
    """

    def __init__(self, max_workers: int | None = None):
        self.max_workers = max_workers or almost_all_cpus()

    def execute(self, ctx: BatchContext, batch: BlockRange) -> dict:
        failures: list[VerificationFailure] = []
        verified: set[int] = set()

        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="getlogs-verify",
        ) as pool:

            future_map = {}
            for bn in batch:
                if ctx.cancel_event.is_set():
                    break
                future_map[pool.submit(verify_block, ctx, bn)] = bn
                if ctx.progress is not None:
                    ctx.progress.update(bn)

            for future in as_completed(future_map):
                bn = future_map[future]
                if future.cancelled():
                    continue
                try:
                    verified.add(future.result())

                except VerificationFailure as e:
                    failures.append(e)
                    # fail-fast: blocks still queued never start
                    for pending in future_map:
                        pending.cancel()

                except Exception as e:
                    log.exception(
                        "block_verify_crashed",
                        extra={
                            "block_num": bn,
                            "error": str(e)[:200],
                        },
                    )
                    for pending in future_map:
                        pending.cancel()
                    raise

        # in-flight results are ignored once cancellation is observed
        if ctx.cancel_event.is_set():
            unverified = [bn for bn in batch if bn not in verified]
            raise VerificationFailure.cancelled(
                unverified[0] if unverified else batch.end_block
            )

        if failures:
            raise min(failures, key=lambda f: f.block_number)

        return {
            "range_id": batch.range_id,
            "block_count": len(verified),
        }
