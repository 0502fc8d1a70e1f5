"""
Auto-Save Scheduler

Runs a persistence callback on a fixed interval in a daemon thread. The
callback is responsible for taking the ledger lock; this module only keeps
time.
"""

import threading
from typing import Callable, Optional

from .logging_config import get_logger


class AutoSaveScheduler:
    """
    Periodic save-then-backup trigger.
    Default = 300 seconds (5 minutes).
    """

    def __init__(self, callback: Callable[[], None], interval_seconds: float = 300.0,
                 name: str = "retail-ledger-autosave"):
        if interval_seconds <= 0:
            raise ValueError("Auto-save interval must be positive")
        self.callback = callback
        self.interval = interval_seconds
        self.name = name
        self.logger = get_logger("retail_ledger.scheduler")
        self.runs = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        self.logger.info(f"Auto-save scheduled every {self.interval} seconds")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the scheduler; an in-flight cycle is allowed to finish."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _run(self) -> None:
        """Internal loop that fires the callback on a fixed schedule."""
        while not self._stop.wait(self.interval):
            try:
                self.callback()
                self.runs += 1
            except Exception:
                self.logger.exception("Error during auto-save")
