"""
ReconciliationRunner -- In-process polling loop for voucher reconciliation.

Contract:
    Runs VoucherReconciliationJob every ``interval_seconds`` on a daemon
    thread.  ``tick()`` runs one pass synchronously and is what the thread
    calls.

Architecture: procurement_batch.  An alternative to an external cron that
    invokes scripts/reconcile_vouchers.py; both call the same job.

Invariants enforced:
    - Graceful shutdown: stop() sets the stop event; the loop exits after
      the current pass.
    - A failing pass is logged and the loop continues.
"""

from __future__ import annotations

import threading

from procurement_batch.reconciliation import VoucherReconciliationJob
from procurement_batch.types import ReconciliationSummary
from procurement_kernel.logging_config import get_logger

logger = get_logger("batch.runner")


class ReconciliationRunner:
    """Background polling loop around one VoucherReconciliationJob.

    Non-goals:
        - NOT a distributed scheduler; overlapping runners are tolerated by
          the job's idempotent writes, not prevented.
    """

    def __init__(
        self,
        job: VoucherReconciliationJob,
        interval_seconds: float = 300.0,
    ):
        self._job = job
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_summary: ReconciliationSummary | None = None

    def tick(self) -> ReconciliationSummary | None:
        """Run one reconciliation pass (public for testing)."""
        try:
            self.last_summary = self._job.run()
            return self.last_summary
        except Exception:
            logger.exception("reconciliation_tick_failed")
            return None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="voucher-reconciliation",
            daemon=True,
        )
        self._thread.start()
        logger.info("reconciliation_runner_started", extra={"interval_seconds": self._interval})

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("reconciliation_runner_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called; returns True if stopped."""
        return self._stop_event.wait(timeout=timeout)

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._interval)
