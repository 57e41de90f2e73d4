"""Background workers — run scans and batch jobs off the UI thread.

Each worker owns one unit of work.  Results come back as Qt signals so
a widget can connect to them without touching the core directly.
"""

from __future__ import annotations

from PySide6.QtCore import QObject, QThread, Signal
from loguru import logger

from romshelf.core.batch import BatchOrchestrator, Operation
from romshelf.core.scanner import ScanReconciler
from romshelf.models.batch import BatchJob, CancellationToken
from romshelf.models.results import ScanLocation


class ScanWorker(QThread):
    """Background thread for library reconciliation."""

    location_started = Signal(int, int, str)  # (index, total, path)
    completed = Signal(object)  # ScanOutcome
    error = Signal(str)

    def __init__(
        self,
        reconciler: ScanReconciler,
        locations: list[ScanLocation],
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._reconciler = reconciler
        self._locations = list(locations)

    def run(self) -> None:
        try:
            outcome = self._reconciler.reconcile(
                self._locations, on_location=self.location_started.emit
            )
            self.completed.emit(outcome)
        except Exception as e:
            logger.exception("Scan worker failed")
            self.error.emit(str(e))


class BatchWorker(QThread):
    """Background thread for one batch job; :meth:`cancel` is safe from any thread."""

    progress = Signal(object)  # BatchProgress
    completed = Signal(object)  # BatchResult
    error = Signal(str)

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        job: BatchJob,
        operation: Operation,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._orchestrator = orchestrator
        self._job = job
        self._operation = operation
        self._token = CancellationToken()

    @property
    def job(self) -> BatchJob:
        return self._job

    def cancel(self) -> None:
        self._token.cancel()

    def run(self) -> None:
        try:
            result = self._orchestrator.run(
                self._job,
                self._operation,
                token=self._token,
                on_progress=self.progress.emit,
            )
            self.completed.emit(result)
        except Exception as e:
            logger.exception("Batch worker failed")
            self.error.emit(str(e))
