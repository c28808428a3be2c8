"""Business logic for reclaiming expired files."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final, final

from django.db import close_old_connections
from django.utils import timezone

from server.apps.files.errors import Failure
from server.apps.files.infrastructure.cache_purge import CachePurger, NullCachePurger
from server.apps.files.logic.file_operations import FileStore, PurgeOutcome
from server.apps.files.models import StoredFile

logger = logging.getLogger(__name__)

_DEFAULT_BATCH_SIZE: Final = 1000


@final
@dataclass(slots=True)
class SweepReport:
    """Summary of one sweep."""

    purged: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def purged_count(self) -> int:
        """Number of files removed."""
        return len(self.purged)

    @property
    def failed_count(self) -> int:
        """Number of files left for the next sweep."""
        return len(self.failed)


@final
class ExpirationSweeper:
    """Removes expired files and their index rows.

    A row is only deleted after its file is confirmed gone, so a failed
    delete is retried on the next sweep instead of leaking the file.
    """

    def __init__(
        self,
        file_store: FileStore,
        cache_purger: CachePurger | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> None:
        """Initialize the sweeper.

        Args:
            file_store: Store whose purge path is used.
            cache_purger: Notified with the public URL of each purged file.
            batch_size: Max records per sweep.
        """
        self._file_store = file_store
        self._cache_purger = cache_purger or NullCachePurger()
        self._batch_size = batch_size

    def expired(self, now: datetime | None = None, batch_size: int | None = None) -> list[StoredFile]:
        """Expired records, oldest first."""
        limit = batch_size or self._batch_size
        return list(StoredFile.objects.expired(now)[:limit])

    def sweep(
        self,
        now: datetime | None = None,
        batch_size: int | None = None,
    ) -> SweepReport:
        """Run one sweep.

        Each record is handled on its own: a failure is logged and counted,
        and processing continues with the next record.

        Args:
            now: Reference moment, defaults to the current time.
            batch_size: Max records for this sweep.

        Returns:
            What was purged, skipped and left behind.
        """
        now = now or timezone.now()
        report = SweepReport()

        for record in self.expired(now, batch_size):
            label = record.storage_name
            try:
                outcome = self._file_store.purge(record, now)
            except Exception:
                logger.exception('Unexpected error while purging: %s', label)
                report.failed.append(label)
                continue

            if isinstance(outcome, Failure):
                report.failed.append(label)
            elif outcome is PurgeOutcome.STILL_ACTIVE:
                report.skipped.append(label)
            else:
                report.purged.append(label)
                self._notify(record)

        if report.purged or report.failed:
            logger.info(
                'Sweep finished: %d purged, %d failed, %d skipped',
                report.purged_count,
                report.failed_count,
                len(report.skipped),
            )
        return report

    def _notify(self, record: StoredFile) -> None:
        """Tell the CDN to drop its copy; never undoes the purge."""
        url = self._file_store.public_url(record)
        try:
            self._cache_purger.purge([url])
        except Exception:
            logger.exception('Cache purge failed for: %s', url)


@final
class PeriodicSweeper:
    """Runs sweeps on a fixed interval in a background thread."""

    def __init__(self, sweeper: ExpirationSweeper, interval: float) -> None:
        """Initialize the scheduler.

        Args:
            sweeper: Sweeper to run.
            interval: Seconds between the end of one sweep and the next.
        """
        if interval <= 0:
            raise ValueError('Sweep interval must be positive')
        self._sweeper = sweeper
        self._interval = interval
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Whether the background thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread. The first sweep runs immediately."""
        if self.is_running:
            return
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._run,
            name='expiration-sweeper',
            daemon=True,
        )
        self._thread.start()
        logger.info('Expiration sweeper started, interval %ss', self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Ask the thread to stop and wait for it."""
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info('Expiration sweeper stopped')

    def run_once(self) -> SweepReport | None:
        """Run a single sweep, logging instead of raising."""
        try:
            return self._sweeper.sweep()
        except Exception:
            logger.exception('Expiration sweep failed')
            return None

    def _run(self) -> None:
        while not self._stopped.is_set():
            # Drop stale DB connections between cycles
            close_old_connections()
            self.run_once()
            close_old_connections()
            self._stopped.wait(self._interval)
