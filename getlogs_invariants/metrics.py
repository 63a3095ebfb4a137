from prometheus_client import Counter, Gauge, Histogram

# -----------------------------
# Progress
# -----------------------------
PROGRESS_BLOCK = Gauge(
    "getlogs_invariants_progress_block",
    "Highest block number dispatched for verification",
    ["chain"],
)
RANGE_END_BLOCK = Gauge(
    "getlogs_invariants_range_end_block",
    "Exclusive upper bound of the range being verified",
    ["chain"],
)

# -----------------------------
# Throughput
# -----------------------------
BLOCKS_VERIFIED = Counter(
    "getlogs_invariants_blocks_verified_total",
    "Blocks that passed every indexing invariant",
    ["chain"],
)
LOGS_CHECKED = Counter(
    "getlogs_invariants_logs_checked_total",
    "Logs returned by unfiltered queries and walked by the checker",
    ["chain"],
)
FILTERED_QUERIES = Counter(
    "getlogs_invariants_filtered_queries_total",
    "Filtered eth_getLogs re-queries issued",
    ["chain", "filter"],  # filter: address | address_topic
)
BLOCK_VERIFY_SECONDS = Histogram(
    "getlogs_invariants_block_verify_seconds",
    "Wall time spent verifying one block",
    ["chain"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)

# -----------------------------
# Failures
# -----------------------------
VIOLATIONS = Counter(
    "getlogs_invariants_failures_total",
    "Verification failures by kind",
    ["chain", "kind"],
)

# -----------------------------
# RPC
# -----------------------------
RPC_REQUESTS = Counter(
    "rpc_requests_total",
    "RPC requests by provider",
    ["chain", "rpc"]
)
RPC_ERRORS = Counter(
    "rpc_errors_total",
    "RPC errors by provider",
    ["chain", "rpc"]
)
