# -----------------------------
# import deps
# -----------------------------
import signal
import sys
import threading
from prometheus_client import start_http_server
from getlogs_invariants.config import Settings, load_rpc_configs
from getlogs_invariants.driver import RangeDriver
from getlogs_invariants.errors import FailureKind, RpcQueryError, VerificationFailure
from getlogs_invariants.log_queries import Web3LogQueries
from getlogs_invariants.logging import log
from getlogs_invariants.rpc_provider import RpcPool, Web3Router

EXIT_OK = 0
EXIT_VIOLATION = 1
EXIT_TRANSPORT = 2
EXIT_USAGE = 64
EXIT_CANCELLED = 130


def exit_code_for(failure: VerificationFailure | None) -> int:
    if failure is None:
        return EXIT_OK
    if failure.kind == FailureKind.CANCELLED:
        return EXIT_CANCELLED
    if failure.kind == FailureKind.TRANSPORT_ERROR:
        return EXIT_TRANSPORT
    return EXIT_VIOLATION


def install_signal_handlers(cancel_event: threading.Event):
    def _handler(signum, frame):
        log.warning("shutdown_requested", extra={"signal": signal.Signals(signum).name})
        cancel_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def build_queries(settings: Settings) -> Web3LogQueries:
    rpc_configs = load_rpc_configs(settings.rpc_config_path)
    rpc_pool = RpcPool.from_config(rpc_configs, settings.chain)
    web3_router = Web3Router(
        rpc_pool=rpc_pool,
        chain=settings.chain,
        timeout=settings.rpc_timeout,
        penalize_seconds=settings.penalize_seconds,
    )
    return Web3LogQueries(web3_router)


def run(settings: Settings, queries=None, cancel_event: threading.Event | None = None) -> int:
    queries = queries or build_queries(settings)
    cancel_event = cancel_event or threading.Event()

    try:
        latest_block = queries.latest_block()
    except RpcQueryError as e:
        log.error("latest_block_failed", extra={"chain": settings.chain, "error": str(e)})
        return EXIT_TRANSPORT

    log.info(
        "job_start",
        extra={
            "chain": settings.chain,
            "block_from": settings.block_from,
            "block_to": settings.block_to,
            "latest_block": latest_block,
            "batch_size": settings.batch_size,
            "max_workers": settings.max_workers,
        },
    )
    if settings.block_to > latest_block + 1:
        log.warning(
            "range_beyond_chain_head",
            extra={"block_to": settings.block_to, "latest_block": latest_block},
        )

    driver = RangeDriver(
        queries,
        chain=settings.chain,
        batch_size=settings.batch_size,
        max_workers=settings.max_workers,
        progress_interval=settings.progress_interval,
    )

    try:
        driver.run(settings.block_from, settings.block_to, cancel_event)
    except VerificationFailure as failure:
        return exit_code_for(failure)

    log.info("job_done", extra={"chain": settings.chain})
    return EXIT_OK


def main() -> int:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        log.error("invalid_settings", extra={"error": str(e)})
        return EXIT_USAGE

    if settings.metrics_port:
        # Prometheus metrics endpoint
        start_http_server(settings.metrics_port)

    cancel_event = threading.Event()
    install_signal_handlers(cancel_event)

    try:
        return run(settings, cancel_event=cancel_event)
    except Exception as e:
        log.exception(
            "fatal_runtime_error",
            extra={"chain": settings.chain, "error_type": type(e).__name__},
        )
        raise


# Entrypoint
if __name__ == "__main__":
    sys.exit(main())
