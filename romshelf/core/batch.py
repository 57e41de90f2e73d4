"""Batch operation orchestrator — sequential, cancellable bulk actions.

A batch walks its working set strictly in order, one game at a time.
Before each game it checks the job's :class:`CancellationToken`; once
cancelled the loop stops and the remaining games stay ``PENDING``.
A failing game is marked ``FAILED`` and recorded as ``"<title>:
<reason>"`` in the aggregate errors; the batch carries on with the next
game.  Whatever happened, the library is reloaded exactly once at the
end so the UI sees every change made so far.

Only a :class:`StorageError` escapes the loop: the library file itself
is unusable, so the batch stops (after the reload) and re-raises.
"""

from __future__ import annotations

from typing import Callable

from loguru import logger

from romshelf.core.library import LibraryStore
from romshelf.core.metadata import MetadataScraper
from romshelf.errors import GameNotFoundError, StorageError
from romshelf.models.batch import (
    BatchJob,
    BatchProgress,
    BatchResult,
    CancellationToken,
    ItemStatus,
    JobState,
)
from romshelf.models.game import Game

Operation = Callable[[Game], object]
ProgressFn = Callable[[BatchProgress], None]


class DeleteOperation:
    """Removes each game from the library."""

    label = "delete"

    def __init__(self, store: LibraryStore) -> None:
        self._store = store

    def __call__(self, game: Game) -> None:
        self._store.delete_game(game.id)


class ScrapeOperation:
    """Fetches catalog metadata for each game; a miss is a failure."""

    label = "scrape"

    def __init__(self, scraper: MetadataScraper) -> None:
        self._scraper = scraper

    def __call__(self, game: Game) -> list[str]:
        return self._scraper.apply_metadata(game)


class BatchOrchestrator:
    """Runs one :class:`BatchJob` at a time against the library."""

    def __init__(
        self,
        store: LibraryStore,
        on_reload: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._on_reload = on_reload

    def run(
        self,
        job: BatchJob,
        operation: Operation,
        token: CancellationToken | None = None,
        on_progress: ProgressFn | None = None,
    ) -> BatchResult:
        """Process *job* and return the aggregate result."""
        if job.state is not JobState.IDLE:
            raise RuntimeError(f"Batch job already {job.state.value}")

        label = getattr(operation, "label", "batch")
        errors: list[str] = []
        job.state = JobState.RUNNING
        logger.info("Starting {} of {} games", label, job.total)

        try:
            for index, item in enumerate(job.items):
                if token is not None and token.is_cancelled:
                    job.state = JobState.CANCELLED
                    logger.info("{} cancelled after {} of {} games", label, index, job.total)
                    break

                game = self._store.get_game(item.game_id)
                title = game.title if game is not None else item.game_id
                item.status = ItemStatus.IN_PROGRESS
                self._emit(on_progress, job, index, title)

                try:
                    if game is None:
                        raise GameNotFoundError(item.game_id)
                    operation(game)
                except StorageError as e:
                    item.status = ItemStatus.FAILED
                    item.error = str(e)
                    raise
                except Exception as e:
                    item.status = ItemStatus.FAILED
                    item.error = str(e)
                    errors.append(f"{title}: {e}")
                    logger.warning("{} failed for '{}': {}", label, title, e)
                else:
                    item.status = ItemStatus.SUCCEEDED

                self._emit(on_progress, job, index, title)
            else:
                job.state = JobState.COMPLETED
        except StorageError:
            job.state = JobState.CANCELLED
            logger.error("{} aborted: library storage failed", label)
            raise
        finally:
            self._reload()

        result = BatchResult.from_job(job, errors)
        logger.info(
            "{} finished: {}/{} succeeded, {} failed{}",
            label, result.successful, result.total, result.failed,
            " (cancelled)" if result.cancelled else "",
        )
        return result

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _emit(
        on_progress: ProgressFn | None,
        job: BatchJob,
        index: int,
        title: str,
    ) -> None:
        if on_progress is None:
            return
        item = job.items[index]
        on_progress(BatchProgress(
            index=index,
            total=job.total,
            game_id=item.game_id,
            title=title,
            status=item.status,
            error=item.error,
        ))

    def _reload(self) -> None:
        try:
            self._store.reload()
        except StorageError as e:
            logger.error("Library reload failed: {}", e)
        if self._on_reload is not None:
            self._on_reload()
