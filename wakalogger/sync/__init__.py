"""Sync module - reads WakaTime durations and keeps the gist log current."""

from .gist_store import GistStore, GistStoreError
from .models import Aggregate, DayResult, DayStatus, Entry
from .protocols import AggregateStoreProtocol, DurationSourceProtocol
from .retry import RetryConfig, retry_with_backoff
from .sync_engine import SyncEngine, SyncState, SyncStats
from .wakatime_client import WakaTimeClient

__all__ = [
    "Aggregate",
    "AggregateStoreProtocol",
    "DayResult",
    "DayStatus",
    "DurationSourceProtocol",
    "Entry",
    "GistStore",
    "GistStoreError",
    "RetryConfig",
    "retry_with_backoff",
    "SyncEngine",
    "SyncState",
    "SyncStats",
    "WakaTimeClient",
]
