"""Prometheus instruments fed from restic results.

The instruments are registered on an explicit CollectorRegistry. Counters
fed from absolute readings (snapshot and lock counts) only ever advance
by the positive difference from the previous reading.
"""

from typing import Dict, Iterable, Optional, Set
import logging
import time

from prometheus_client import CollectorRegistry, Counter, Gauge

from .errors import ResticError
from .events import SummaryEvent
from .models import StatsResult

logger = logging.getLogger(__name__)


class ResticMetrics:
    """The exporter's metric instruments."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        r = self.registry

        self.check_success = Gauge(
            "restic_check_success",
            "Result of restic check operation in the repository",
            registry=r,
        )
        self.locks_total = Counter(
            "restic_locks_total",
            "Total number of locks in the repository",
            registry=r,
        )
        self.snapshots_total = Counter(
            "restic_snapshots_total",
            "Total number of snapshots in the repository",
            registry=r,
        )
        self.backup_timestamp = Gauge(
            "restic_backup_timestamp",
            "Timestamp of the last backup",
            registry=r,
        )
        self.backup_files_total = Counter(
            "restic_backup_files_total",
            "Number of files in the backup",
            registry=r,
        )
        self.backup_size_total = Counter(
            "restic_backup_size_total",
            "Total size of backup in bytes",
            registry=r,
        )
        self.backup_snapshots_total = Counter(
            "restic_backup_snapshots_total",
            "Total number of snapshots",
            registry=r,
        )
        self.scrape_duration_secs = Gauge(
            "restic_scrape_duration_secs",
            "Amount of time each scrape takes",
            registry=r,
        )

        self._last_seen: Dict[str, int] = {}
        self._previous_locks: Set[str] = set()

    def _advance(self, key: str, counter: Counter, value: int) -> None:
        delta = value - self._last_seen.get(key, 0)
        if delta > 0:
            counter.inc(delta)
        self._last_seen[key] = value

    def record_backup(self, summary: SummaryEvent, timestamp: Optional[float] = None) -> None:
        """Account for one completed backup run."""
        self.backup_timestamp.set(timestamp if timestamp is not None else time.time())
        self.backup_files_total.inc(summary.total_files_processed)
        self.backup_size_total.inc(summary.total_bytes_processed)
        if summary.snapshot_id:
            self.backup_snapshots_total.inc()

    def record_stats(self, stats: StatsResult) -> None:
        self._advance("snapshots", self.snapshots_total, stats.snapshots_count)

    def record_locks(self, lock_ids: Iterable[str]) -> None:
        """Count locks that were not present in the previous reading."""
        current = set(lock_ids)
        new = current - self._previous_locks
        if new:
            self.locks_total.inc(len(new))
        self._previous_locks = current

    def record_check(self, ok: bool) -> None:
        self.check_success.set(1 if ok else 0)

    def observe_scrape(self, seconds: float) -> None:
        self.scrape_duration_secs.set(seconds)


def scrape(repo, metrics: ResticMetrics, check_flags: Iterable[str] = ()) -> None:
    """Query ``repo`` once and update the repository-level instruments.

    Covers snapshots, locks, check success and scrape duration. The
    ``restic_backup_*`` instruments are fed only by
    ``ResticMetrics.record_backup``, called by whoever runs the backup.

    Args:
        repo: ResticRepository to query
        metrics: Instruments to update
        check_flags: Extra flags for `restic check`

    Raises:
        ResticError: If stats or locks cannot be collected; the check gauge
            is set to 0 before re-raising
    """
    start = time.monotonic()
    try:
        metrics.record_stats(repo.stats())
        metrics.record_locks(repo.locks())
        metrics.record_check(repo.check(flags=tuple(check_flags)))
    except ResticError:
        metrics.record_check(False)
        raise
    finally:
        elapsed = time.monotonic() - start
        metrics.observe_scrape(elapsed)
    logger.debug("Scrape of %s took %.3fs", repo.handle.path, elapsed)
