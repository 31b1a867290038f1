"""Data model for the persisted log and per-day fetch results."""

import enum
from dataclasses import dataclass, field
from typing import Optional

__all__ = [
    "Entry",
    "Aggregate",
    "DayResult",
    "DayStatus",
    "UNKNOWN_PROJECT",
]

# WakaTime leaves "project" empty for time outside a known project.
UNKNOWN_PROJECT = "Unknown"


@dataclass(frozen=True)
class Entry:
    """One duration slice recorded by WakaTime."""

    created_at: str
    duration: float  # seconds
    time: float  # start, unix timestamp

    @classmethod
    def from_dict(cls, data: dict) -> "Entry":
        """Create an Entry from a WakaTime record or a stored entry."""
        return cls(
            created_at=data.get("created_at", ""),
            duration=data.get("duration", 0),
            time=data.get("time", 0),
        )

    def to_dict(self) -> dict:
        return {
            "created_at": self.created_at,
            "duration": self.duration,
            "time": self.time,
        }


class DayStatus(enum.Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class DayResult:
    """Outcome of fetching a single day.

    ``FAILED`` is kept apart from ``EMPTY`` so callers can report errors
    even though both leave the log untouched.
    """

    date: str
    status: DayStatus
    records: list[tuple[str, Entry]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def ok(cls, date: str, records: list[tuple[str, Entry]]) -> "DayResult":
        return cls(date=date, status=DayStatus.OK, records=records)

    @classmethod
    def empty(cls, date: str) -> "DayResult":
        return cls(date=date, status=DayStatus.EMPTY)

    @classmethod
    def failed(cls, date: str, error: str) -> "DayResult":
        return cls(date=date, status=DayStatus.FAILED, error=error)


@dataclass
class Aggregate:
    """The persisted log: project name -> entries, plus the resume point.

    ``high_water_mark`` is the first day the next run will fetch. Every day
    before it has already been merged into ``projects``.
    """

    high_water_mark: Optional[str] = None
    projects: dict[str, list[Entry]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Aggregate":
        """Create an Aggregate from its stored JSON form.

        Missing fields stay unset; the caller decides the defaults.

        Raises:
            ValueError: If the data does not have the stored shape
        """
        high_water_mark = data.get("high_water_mark") or None
        if high_water_mark is not None and not isinstance(high_water_mark, str):
            raise ValueError(f"high_water_mark must be a string, got {high_water_mark!r}")

        raw_projects = data.get("projects") or {}
        if not isinstance(raw_projects, dict):
            raise ValueError("projects must be an object mapping names to entry lists")

        projects = {}
        for name, entries in raw_projects.items():
            if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
                raise ValueError(f"projects[{name!r}] must be a list of entry objects")
            projects[name] = [Entry.from_dict(entry) for entry in entries]
        return cls(high_water_mark=high_water_mark, projects=projects)

    def to_dict(self) -> dict:
        return {
            "high_water_mark": self.high_water_mark,
            "projects": {
                name: [entry.to_dict() for entry in entries]
                for name, entries in self.projects.items()
            },
        }

    def merge_day(self, result: DayResult) -> int:
        """Append a day's records to their projects, in fetch order.

        Returns:
            Number of entries appended
        """
        if result.status is not DayStatus.OK:
            return 0
        for project, entry in result.records:
            self.projects.setdefault(project, []).append(entry)
        return len(result.records)

    @property
    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.projects.values())
