from enum import Enum


class FailureKind(str, Enum):
    DUPLICATE_INDEX = "duplicate-index"
    ADDRESS_NOT_INDEXED = "address-not-indexed"
    TOPIC_NOT_INDEXED = "topic-not-indexed"
    TRANSPORT_ERROR = "transport-error"
    CANCELLED = "cancelled"


class RpcQueryError(Exception):
    """
    Raised by the log-query layer when eth_getLogs cannot produce a result.

    code / message are set when the node answered with a JSON-RPC error
    object; both are None for transport failures.
    """

    def __init__(self, method: str, detail: str, code=None, message=None):
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"{method}: {detail}")


class VerificationFailure(Exception):
    """
    The single failure surfaced by a verification run.

    Everything needed to diagnose the problem is carried on the instance:
    the kind, the block number and, depending on the kind, the address,
    topic and log index involved.
    """

    def __init__(
        self,
        kind: FailureKind,
        block_number: int,
        *,
        address: str | None = None,
        topic: str | None = None,
        log_index: int | None = None,
        detail: str | None = None,
    ):
        self.kind = kind
        self.block_number = block_number
        self.address = address
        self.topic = topic
        self.log_index = log_index
        self.detail = detail
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts = [f"eth_getLogs: {self.kind.value} at blockNum={self.block_number}"]
        if self.address is not None:
            parts.append(f"address {self.address}")
        if self.topic is not None:
            parts.append(f"topic {self.topic}")
        if self.log_index is not None:
            parts.append(f"log_index {self.log_index}")
        if self.detail:
            parts.append(self.detail)
        return ", ".join(parts)

    @property
    def is_violation(self) -> bool:
        """True for a real indexing bug, False for transport errors and cancellation."""
        return self.kind not in (FailureKind.TRANSPORT_ERROR, FailureKind.CANCELLED)

    def to_log_extra(self) -> dict:
        return {
            "kind": self.kind.value,
            "block_num": self.block_number,
            "address": self.address,
            "topic": self.topic,
            "log_index": self.log_index,
            "detail": self.detail,
        }

    @classmethod
    def cancelled(cls, block_number: int) -> "VerificationFailure":
        return cls(FailureKind.CANCELLED, block_number, detail="verification cancelled")
