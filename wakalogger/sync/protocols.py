"""Protocol types for SyncEngine dependencies."""

from typing import Optional, Protocol, runtime_checkable

from .models import Aggregate, DayResult


@runtime_checkable
class DurationSourceProtocol(Protocol):
    """Interface for reading one day of tracked durations."""

    def fetch_day(self, date: str) -> DayResult: ...


@runtime_checkable
class AggregateStoreProtocol(Protocol):
    """Interface for loading and saving the aggregate log."""

    gist_id: Optional[str]
    created: bool

    def load(self) -> Aggregate: ...

    def save(self, aggregate: Aggregate) -> bool: ...
