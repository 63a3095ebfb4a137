from getlogs_invariants.checker import BlockInvariantChecker, find_duplicate_index
from getlogs_invariants.driver import RangeDriver
from getlogs_invariants.errors import FailureKind, RpcQueryError, VerificationFailure
from getlogs_invariants.log_entry import LogEntry
from getlogs_invariants.planning import BlockRange

__all__ = [
    "BlockInvariantChecker",
    "BlockRange",
    "FailureKind",
    "LogEntry",
    "RangeDriver",
    "RpcQueryError",
    "VerificationFailure",
    "find_duplicate_index",
]
