from dataclasses import dataclass, field
from typing import Any, Mapping

from getlogs_invariants.web3_utils import to_hex, to_int


@dataclass(frozen=True)
class LogEntry:
    """
    One eth_getLogs result item.

    Only address, topics and log_index take part in verification; the
    remaining fields are carried along for error context.
    """
    address: str
    topics: tuple[str, ...]
    log_index: int
    block_number: int | None = None
    transaction_hash: str | None = None
    data: str = field(default="0x", repr=False)

    @property
    def first_topic(self) -> str | None:
        return self.topics[0] if self.topics else None

    @classmethod
    def from_rpc(cls, raw: Mapping[str, Any]) -> "LogEntry":
        """
        Build from a web3 AttributeDict or a raw JSON-RPC log object.
        """
        block_number = raw.get("blockNumber")
        tx_hash = raw.get("transactionHash")
        data = raw.get("data")
        return cls(
            address=to_hex(raw["address"]),
            topics=tuple(to_hex(t) for t in raw.get("topics") or ()),
            log_index=to_int(raw["logIndex"]),
            block_number=to_int(block_number) if block_number is not None else None,
            transaction_hash=to_hex(tx_hash) if tx_hash is not None else None,
            data=to_hex(data) if data else "0x",
        )


def normalize_logs(raw_logs) -> list[LogEntry]:
    return [LogEntry.from_rpc(item) for item in raw_logs or []]
