# services.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Iterator, List, Tuple

from domain import Day, Entry, Span, Week

EXPECTED_DAILY_H = 7.0


@dataclass
class WeekSummary:
    """Computed totals for one finished week."""
    year: int
    iso_week: int
    days: List[Tuple[date, timedelta]] = field(default_factory=list)
    total: timedelta = timedelta(0)
    expected: timedelta = timedelta(0)
    daily_average: timedelta = timedelta(0)

    @property
    def overtime(self) -> timedelta:
        return self.total - self.expected

    @property
    def is_over(self) -> bool:
        return self.overtime > timedelta(0)

    @property
    def balance(self) -> timedelta:
        """Absolute over/under time."""
        return abs(self.overtime)


class WorkHoursCalculator:
    """Business rules for worked time and over/under time."""
    def __init__(self, daily_threshold: float = EXPECTED_DAILY_H):
        self.daily_threshold = daily_threshold

    def worked(self, day: Day) -> timedelta:
        """Sum of work spans. Non-work spans still move the cursor forward."""
        total = timedelta(0)
        cursor = day.start
        for span in day.spans:
            if span.is_work:
                total += span.end - cursor
            cursor = span.end
        return total

    def expected(self, days: int) -> timedelta:
        return timedelta(hours=self.daily_threshold) * days

    def summarize(self, week: Week) -> WeekSummary:
        if not week.days:
            raise ValueError(f"week {week.year}-W{week.iso_week:02d} has no days")
        rows = [(day.date, self.worked(day)) for day in week.days]
        total = sum((w for _, w in rows), timedelta(0))
        n = len(rows)
        return WeekSummary(
            year=week.year,
            iso_week=week.iso_week,
            days=rows,
            total=total,
            expected=self.expected(n),
            daily_average=total // n,
        )


class WeekAggregator:
    """
    Groups a chronological entry stream into weeks and days.

    Only the current week is kept. observe() hands back the previous week
    once an entry from another ISO week shows up; flush() hands back the
    last one at end of input.
    """
    def __init__(self):
        self.current: Week | None = None

    def observe(self, entry: Entry) -> Week | None:
        week = self.current
        if week is None or week.key != entry.iso_year_week:
            self.current = Week.from_entry(entry)
            if week is not None and week.days:
                return week
            return None

        day = week.last_day
        if day.weekday == entry.weekday:
            day.spans.append(Span(end=entry.timestamp, is_work=entry.is_work))
        else:
            # the entry opening a day only sets its start
            week.days.append(Day.from_entry(entry))
        return None

    def flush(self) -> Week | None:
        week, self.current = self.current, None
        if week is None or not week.days:
            return None
        return week


def iter_weeks(entries: Iterable[Entry]) -> Iterator[Week]:
    """Yields each week as soon as the next one starts, then the last one."""
    agg = WeekAggregator()
    for entry in entries:
        done = agg.observe(entry)
        if done is not None:
            yield done
    last = agg.flush()
    if last is not None:
        yield last
