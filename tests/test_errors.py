"""Tests for failure reporting."""

from getlogs_invariants.errors import FailureKind, RpcQueryError, VerificationFailure


def test_message_embeds_all_detail():
    failure = VerificationFailure(
        FailureKind.TOPIC_NOT_INDEXED,
        17,
        address="0xaa",
        topic="0x01",
        detail="topic not indexed",
    )

    assert str(failure) == (
        "eth_getLogs: topic-not-indexed at blockNum=17, address 0xaa, "
        "topic 0x01, topic not indexed"
    )
    assert failure.to_log_extra() == {
        "kind": "topic-not-indexed",
        "block_num": 17,
        "address": "0xaa",
        "topic": "0x01",
        "log_index": None,
        "detail": "topic not indexed",
    }


def test_cancelled_is_not_a_violation():
    failure = VerificationFailure.cancelled(5)

    assert failure.kind == FailureKind.CANCELLED
    assert failure.block_number == 5
    assert not failure.is_violation


def test_duplicate_is_a_violation():
    failure = VerificationFailure(FailureKind.DUPLICATE_INDEX, 3, log_index=0)
    assert failure.is_violation
    assert "log_index 0" in str(failure)


def test_rpc_query_error_fields():
    err = RpcQueryError("eth_getLogs", "error response -32000 boom", code=-32000, message="boom")
    assert str(err) == "eth_getLogs: error response -32000 boom"
    assert err.code == -32000
    assert err.message == "boom"
