"""Tests for batched, bounded-concurrency range verification."""

import threading
from collections import Counter

import pytest

from getlogs_invariants.driver import RangeDriver
from getlogs_invariants.errors import FailureKind, VerificationFailure

from conftest import FakeLogQueries, entry


class BlockHookQueries(FakeLogQueries):
    """Runs hooks[bn]() inside the unfiltered query for block bn."""

    def __init__(self, blocks, hooks):
        super().__init__(blocks)
        self.hooks = hooks

    def query_logs_unfiltered(self, block_number):
        hook = self.hooks.get(block_number)
        if hook is not None:
            hook()
        return super().query_logs_unfiltered(block_number)


def test_range_coverage_each_block_once(healthy_blocks):
    queries = FakeLogQueries(healthy_blocks)
    driver = RangeDriver(queries, batch_size=10, max_workers=4)

    driver.run(100, 130)

    checked = Counter(queries.checked_blocks())
    assert sorted(checked) == list(range(100, 130))
    assert set(checked.values()) == {1}


def test_empty_range_makes_no_calls():
    queries = FakeLogQueries({0: [entry(0, "0xa")]})

    RangeDriver(queries).run(0, 0)
    RangeDriver(queries).run(50, 50)

    assert queries.calls == []


def test_inverted_range_rejected():
    with pytest.raises(ValueError):
        RangeDriver(FakeLogQueries()).run(10, 5)


def test_partial_last_batch(healthy_blocks):
    queries = FakeLogQueries(healthy_blocks)

    RangeDriver(queries, batch_size=10, max_workers=3).run(100, 123)

    assert sorted(queries.checked_blocks()) == list(range(100, 123))


def test_fail_fast_stops_after_failing_batch(healthy_blocks):
    queries = FakeLogQueries(healthy_blocks)
    queries.address_overrides[(115, "0xbb")] = []

    with pytest.raises(VerificationFailure) as exc_info:
        RangeDriver(queries, batch_size=10, max_workers=2).run(100, 140)

    failure = exc_info.value
    assert failure.kind == FailureKind.ADDRESS_NOT_INDEXED
    assert failure.block_number == 115
    assert failure.address == "0xbb"
    assert max(queries.checked_blocks()) < 120
    assert set(range(100, 110)) <= set(queries.checked_blocks())


def test_lowest_block_wins_within_batch(healthy_blocks):
    both_running = threading.Barrier(2, timeout=5)
    queries = BlockHookQueries(
        healthy_blocks,
        {112: both_running.wait, 117: both_running.wait},
    )
    queries.address_overrides[(112, "0xaa")] = []
    queries.topic_overrides[(117, "0xaa", "0x01")] = []

    with pytest.raises(VerificationFailure) as exc_info:
        RangeDriver(queries, batch_size=10, max_workers=10).run(110, 120)

    assert exc_info.value.block_number == 112
    assert exc_info.value.kind == FailureKind.ADDRESS_NOT_INDEXED


def test_transport_error_surfaces_with_block_context(healthy_blocks):
    queries = FakeLogQueries(healthy_blocks)
    queries.fail(("unfiltered", 104), detail="read timeout")

    with pytest.raises(VerificationFailure) as exc_info:
        RangeDriver(queries, max_workers=2).run(100, 110)

    failure = exc_info.value
    assert failure.kind == FailureKind.TRANSPORT_ERROR
    assert failure.block_number == 104
    assert "read timeout" in str(failure)


def test_preset_cancellation_checks_nothing(healthy_blocks):
    queries = FakeLogQueries(healthy_blocks)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(VerificationFailure) as exc_info:
        RangeDriver(queries).run(100, 130, cancel)

    assert exc_info.value.kind == FailureKind.CANCELLED
    assert exc_info.value.block_number == 100
    assert not exc_info.value.is_violation
    assert queries.calls == []


def test_cancellation_mid_run_stops_at_batch(healthy_blocks):
    cancel = threading.Event()
    queries = BlockHookQueries(healthy_blocks, {105: cancel.set})

    with pytest.raises(VerificationFailure) as exc_info:
        RangeDriver(queries, batch_size=10, max_workers=1).run(100, 140, cancel)

    failure = exc_info.value
    assert failure.kind == FailureKind.CANCELLED
    assert 100 <= failure.block_number < 110
    assert max(queries.checked_blocks()) < 110


def test_cancellation_in_last_block_of_batch_stops_run(healthy_blocks):
    cancel = threading.Event()
    queries = BlockHookQueries(healthy_blocks, {119: cancel.set})

    with pytest.raises(VerificationFailure) as exc_info:
        RangeDriver(queries, batch_size=10, max_workers=1).run(110, 130, cancel)

    assert exc_info.value.kind == FailureKind.CANCELLED
    assert 120 not in queries.checked_blocks()


def test_progress_callback_receives_block_numbers(healthy_blocks):
    seen = []
    reported = threading.Event()

    def on_progress(bn):
        seen.append(bn)
        reported.set()

    queries = BlockHookQueries(
        healthy_blocks, {139: lambda: reported.wait(timeout=5)}
    )
    driver = RangeDriver(
        queries,
        batch_size=10,
        max_workers=2,
        progress_interval=0.01,
        on_progress=on_progress,
    )

    driver.run(100, 140)

    assert seen
    assert all(100 <= bn < 140 for bn in seen)


def test_verify_block_single(healthy_blocks):
    queries = FakeLogQueries(healthy_blocks)

    RangeDriver(queries).verify_block(100)

    assert queries.checked_blocks() == [100]
    assert len(queries.calls_of("address")) == 2
