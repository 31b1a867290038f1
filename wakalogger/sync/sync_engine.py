"""Sync engine - walks WakaTime day by day into the gist log."""

import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from .dates import days_before, iter_days, to_key
from .gist_store import GistSaveError, GistStoreError
from .models import DayStatus
from .protocols import AggregateStoreProtocol, DurationSourceProtocol

__all__ = ["SyncEngine", "SyncState", "SyncStats"]

logger = logging.getLogger(__name__)


class SyncState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    ITERATING = "iterating"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncStats:
    """Statistics from a sync run."""

    state: SyncState = SyncState.IDLE
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    days_fetched: int = 0
    days_empty: int = 0
    failed_dates: list[str] = field(default_factory=list)
    entries_added: int = 0
    created_gist_id: Optional[str] = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is SyncState.DONE


class SyncEngine:
    """Brings the aggregate up to date, one run at a time.

    A run loads the aggregate, fetches every day from the high-water-mark up
    to but excluding today, appends the records, moves the high-water-mark
    to today and saves once. Today is never fetched because its data is
    still growing; it becomes the first day of the next run.
    """

    def __init__(
        self,
        source: DurationSourceProtocol,
        store: AggregateStoreProtocol,
        lookback_days: int = 15,
        today: Callable[[], date] = date.today,
    ):
        self.source = source
        self.store = store
        self.lookback_days = lookback_days
        self._today = today
        self.state = SyncState.IDLE

    def _set_state(self, state: SyncState, stats: SyncStats) -> None:
        logger.debug(f"Sync state {self.state.value} -> {state.value}")
        self.state = state
        stats.state = state

    def run(self) -> SyncStats:
        """Perform one sync run.

        Storage failures end the run in ``FAILED``; failed days are only
        recorded in ``failed_dates``.
        """
        stats = SyncStats()
        today = to_key(self._today())
        stats.end_date = today

        try:
            self._set_state(SyncState.LOADING, stats)
            aggregate = self.store.load()
            if self.store.created:
                stats.created_gist_id = self.store.gist_id
            if not aggregate.high_water_mark:
                aggregate.high_water_mark = days_before(today, self.lookback_days)
            if aggregate.projects is None:
                aggregate.projects = {}

            self._set_state(SyncState.ITERATING, stats)
            stats.start_date = aggregate.high_water_mark
            if stats.start_date > today:
                logger.warning(
                    f"High-water-mark {stats.start_date} is after today ({today}), nothing to fetch"
                )
            for cursor in iter_days(aggregate.high_water_mark, today):
                result = self.source.fetch_day(cursor)
                if result.status is DayStatus.OK:
                    added = aggregate.merge_day(result)
                    stats.days_fetched += 1
                    stats.entries_added += added
                    logger.info(f"{cursor}: merged {added} entries")
                elif result.status is DayStatus.EMPTY:
                    stats.days_empty += 1
                    logger.debug(f"{cursor}: no data")
                else:
                    stats.failed_dates.append(cursor)
                    logger.warning(f"{cursor}: fetch failed, skipping ({result.error})")

            self._set_state(SyncState.FINALIZING, stats)
            aggregate.high_water_mark = today
            if not self.store.save(aggregate):
                raise GistSaveError("GitHub did not confirm the gist update")

        except GistStoreError as e:
            logger.error(f"Sync failed: {e}")
            stats.errors.append(str(e))
            self._set_state(SyncState.FAILED, stats)
            return stats

        self._set_state(SyncState.DONE, stats)
        logger.info(
            f"Synced {stats.start_date}..{today}: {stats.entries_added} entries added, "
            f"{stats.days_empty} empty days, {len(stats.failed_dates)} failed days"
        )
        return stats
