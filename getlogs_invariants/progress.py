import threading
from typing import Callable, Optional

from getlogs_invariants.logging import log
from getlogs_invariants.metrics import PROGRESS_BLOCK


class ProgressReporter:
    """
    Periodic progress event, driven by its own timer thread.

    The verification loop only calls update(); it never waits on the
    reporter, and the reporter never touches verification state.
    """

    def __init__(
        self,
        interval: float = 20.0,
        chain: str = "unknown",
        on_progress: Optional[Callable[[int], None]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self.interval = interval
        self.chain = chain
        self.on_progress = on_progress

        self._block_num: Optional[int] = None
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def block_num(self) -> Optional[int]:
        with self._lock:
            return self._block_num

    def update(self, block_num: int) -> None:
        with self._lock:
            self._block_num = block_num

    def start(self) -> "ProgressReporter":
        if self._thread is not None:
            return self
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._run, name="getlogs-progress", daemon=True
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def report(self) -> None:
        bn = self.block_num
        if bn is None:
            return
        PROGRESS_BLOCK.labels(chain=self.chain).set(bn)
        log.info("getlogs_invariants_progress", extra={"block_num": bn})
        if self.on_progress is not None:
            self.on_progress(bn)

    def _run(self):
        # wait() returns True once stop() was called
        while not self._stopped.wait(self.interval):
            try:
                self.report()
            except Exception:
                log.exception("progress_callback_failed")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False
