# domain.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List

NON_WORK_MARKER = "**"


def is_non_work(label: str) -> bool:
    """Labels ending with '**' mark the span they close as not worked."""
    return label.endswith(NON_WORK_MARKER)


@dataclass
class Entry:
    """A single 'YYYY-MM-DD HH:MM: label' line of the timelog."""
    timestamp: datetime
    label: str

    @property
    def is_work(self) -> bool:
        return not is_non_work(self.label)

    @property
    def weekday(self) -> int:
        return self.timestamp.weekday()

    @property
    def iso_year_week(self) -> tuple[int, int]:
        """Returns (ISO year, ISO week number)."""
        iso = self.timestamp.isocalendar()
        return (iso[0], iso[1])


@dataclass
class Span:
    """Time between the previous timestamp of the day and `end`."""
    end: datetime
    is_work: bool


@dataclass
class Day:
    weekday: int
    start: datetime
    spans: List[Span] = field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: Entry) -> "Day":
        return cls(weekday=entry.weekday, start=entry.timestamp)

    @property
    def date(self) -> date:
        return self.start.date()


@dataclass
class Week:
    """All days of one ISO (year, week) seen in the log."""
    year: int
    iso_week: int
    days: List[Day] = field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: Entry) -> "Week":
        year, week = entry.iso_year_week
        return cls(year=year, iso_week=week, days=[Day.from_entry(entry)])

    @property
    def key(self) -> tuple[int, int]:
        return (self.year, self.iso_week)

    @property
    def last_day(self) -> Day:
        return self.days[-1]
