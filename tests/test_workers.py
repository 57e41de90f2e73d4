import pytest
from PySide6.QtCore import QCoreApplication

from romshelf.core.batch import BatchOrchestrator
from romshelf.core.scanner import ScanReconciler
from romshelf.models.batch import BatchJob, ItemStatus, JobState
from romshelf.models.game import GameCreate
from romshelf.models.results import ScanLocation
from romshelf.workers import BatchWorker, ScanWorker

from conftest import touch


@pytest.fixture(scope="module", autouse=True)
def qt_app():
    return QCoreApplication.instance() or QCoreApplication([])


def test_scan_worker_reports_locations_and_outcome(tmp_path, store, matchers):
    touch(tmp_path / "a" / "Kirby.gb")
    touch(tmp_path / "b" / "Zelda.gba")
    locations = [ScanLocation(str(tmp_path / "a")), ScanLocation(str(tmp_path / "b"))]
    started, outcomes = [], []

    worker = ScanWorker(ScanReconciler(store, matchers), locations)
    worker.location_started.connect(lambda i, n, p: started.append((i, n)))
    worker.completed.connect(outcomes.append)
    worker.run()

    assert started == [(0, 2), (1, 2)]
    assert outcomes[0].games_added == 2


def test_batch_worker_cancel_before_run(store):
    game = store.add_game(GameCreate(title="Kirby", rom_path="/r/k.gb", platform_id="gb"))
    results = []

    worker = BatchWorker(BatchOrchestrator(store), BatchJob([game.id]), lambda g: None)
    worker.completed.connect(results.append)
    worker.cancel()
    worker.run()

    assert results[0].cancelled
    assert worker.job.items[0].status is ItemStatus.PENDING


def test_batch_worker_emits_progress(store):
    game = store.add_game(GameCreate(title="Kirby", rom_path="/r/k.gb", platform_id="gb"))
    events, results = [], []

    worker = BatchWorker(BatchOrchestrator(store), BatchJob([game.id]), lambda g: None)
    worker.progress.connect(lambda p: events.append(p.status))
    worker.completed.connect(results.append)
    worker.run()

    assert events == [ItemStatus.IN_PROGRESS, ItemStatus.SUCCEEDED]
    assert results[0].successful == 1


def test_batch_worker_reports_errors(store):
    errors = []

    def explode(game):
        raise AssertionError("unreachable")

    worker = BatchWorker(BatchOrchestrator(store), BatchJob([]), explode)
    worker.error.connect(errors.append)
    worker.job.state = JobState.RUNNING
    worker.run()

    assert errors and "already" in errors[0]
