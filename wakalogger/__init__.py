"""WakaLogger - keeps a gist log of daily WakaTime durations."""

__version__ = "1.0.0"
