# tests.py
"""
Unit tests for the weekly timelog summary
"""
import copy
import io
import os
import tempfile
import unittest
from datetime import datetime, timedelta
from unittest import mock

import gtl
from domain import Day, Entry, Span, Week, is_non_work
from repository import TimelogRepository, TimelogUnavailable, default_timelog_path, load_text
from services import WeekAggregator, WorkHoursCalculator, iter_weeks
from timelog import TimelogError, iter_entries, parse_line, parse_timestamp
from utils import (
    format_duration, render_week, summaries_to_pdf,
    weekly_totals_dataframe, weeks_to_dataframe, write_report,
)

SCENARIO_A = (
    "2024-06-03 09:00: start\n"
    "2024-06-03 12:00: lunch**\n"
    "2024-06-03 17:00: done\n"
)

TWO_WEEKS = (
    "# my timelog\n"
    "2024-06-06 09:00: arrived\n"
    "2024-06-06 17:00: coding\n"
    "\n"
    "2024-06-07 08:00: arrived\n"
    "2024-06-07 12:00: coding\n"
    "2024-06-07 13:00: lunch **\n"
    "2024-06-07 16:00: review\n"
    "\n"
    "2024-06-10 09:00: arrived\n"
    "2024-06-10 14:00: meetings\n"
)


def entry(ts, label="work"):
    return Entry(timestamp=datetime.strptime(ts, "%Y-%m-%d %H:%M"), label=label)


def weeks_of(text):
    return list(iter_weeks(iter_entries(load_text(text))))


class TestParseLine(unittest.TestCase):
    """Recognizing entries in the timelog"""

    def test_entry_line(self):
        e = parse_line("2024-06-03 09:00: start\n")
        self.assertEqual(e.timestamp, datetime(2024, 6, 3, 9, 0))
        self.assertEqual(e.label, "start")
        self.assertTrue(e.is_work)

    def test_label_kept_verbatim(self):
        e = parse_line("2024-06-03 09:00: project: fix bug #12  ")
        self.assertEqual(e.label, "project: fix bug #12  ")

    def test_empty_label(self):
        e = parse_line("2024-06-03 09:00: ")
        self.assertEqual(e.label, "")

    def test_non_work_marker(self):
        self.assertFalse(parse_line("2024-06-03 12:00: lunch**").is_work)
        self.assertFalse(parse_line("2024-06-03 12:00: lunch **\r\n").is_work)
        self.assertTrue(parse_line("2024-06-03 12:00: **lunch").is_work)
        self.assertTrue(parse_line("2024-06-03 12:00: lunch*").is_work)

    def test_lines_that_are_not_entries(self):
        for line in ["", "\n", "# comment", "# 2024-06-03 09:00: commented out",
                     "random text", " 2024-06-03 09:00: indented",
                     "2024-06-03 09:00:no space", "2024-06-03 9:00: short hour",
                     "24-06-03 09:00: short year",
                     "٢٠٢٤-٠٦-٠٣ ٠٩:٠٠: arabic-indic digits",
                     "２０２４-０６-０３ ０９:００: fullwidth digits"]:
            with self.subTest(line=line):
                self.assertIsNone(parse_line(line))

    def test_invalid_calendar_date_is_fatal(self):
        with self.assertRaises(TimelogError) as cm:
            parse_line("2024-13-01 10:00: bad month")
        self.assertIn("2024-13-01 10:00", str(cm.exception))

    def test_invalid_time_is_fatal(self):
        with self.assertRaises(TimelogError):
            parse_timestamp("2024-06-03 25:00")
        with self.assertRaises(TimelogError):
            parse_timestamp("2023-02-29 10:00")

    def test_error_reports_line_number(self):
        lines = ["# header\n", "2024-06-03 09:00: ok\n", "2024-06-32 10:00: bad\n"]
        with self.assertRaises(TimelogError) as cm:
            list(iter_entries(lines))
        self.assertEqual(cm.exception.lineno, 3)
        self.assertIsInstance(cm.exception, ValueError)

    def test_is_non_work(self):
        self.assertTrue(is_non_work("break**"))
        self.assertFalse(is_non_work("break"))


class TestWeekAggregator(unittest.TestCase):
    """Grouping entries into weeks and days"""

    def test_first_entry_opens_week_and_day(self):
        agg = WeekAggregator()
        self.assertIsNone(agg.observe(entry("2024-06-03 09:00")))
        week = agg.current
        self.assertEqual(week.key, (2024, 23))
        self.assertEqual(len(week.days), 1)
        self.assertEqual(week.days[0].start, datetime(2024, 6, 3, 9, 0))
        self.assertEqual(week.days[0].spans, [])

    def test_same_day_appends_span(self):
        agg = WeekAggregator()
        agg.observe(entry("2024-06-03 09:00"))
        agg.observe(entry("2024-06-03 12:00", "lunch**"))
        agg.observe(entry("2024-06-03 17:00"))
        day = agg.current.last_day
        self.assertEqual(day.spans, [
            Span(end=datetime(2024, 6, 3, 12, 0), is_work=False),
            Span(end=datetime(2024, 6, 3, 17, 0), is_work=True),
        ])

    def test_new_weekday_opens_day_without_span(self):
        agg = WeekAggregator()
        agg.observe(entry("2024-06-03 09:00"))
        agg.observe(entry("2024-06-03 17:00"))
        agg.observe(entry("2024-06-04 08:30", "arrived"))
        week = agg.current
        self.assertEqual(len(week.days), 2)
        self.assertEqual(len(week.days[0].spans), 1)
        self.assertEqual(week.days[1].start, datetime(2024, 6, 4, 8, 30))
        self.assertEqual(week.days[1].spans, [])

    def test_iso_week_change_finalizes_week(self):
        agg = WeekAggregator()
        agg.observe(entry("2024-12-29 10:00"))  # Sunday, 2024-W52
        done = agg.observe(entry("2024-12-30 09:00"))  # Monday, 2025-W01
        self.assertIsNotNone(done)
        self.assertEqual(done.key, (2024, 52))
        self.assertEqual(agg.current.key, (2025, 1))
        self.assertEqual(len(agg.current.days), 1)

    def test_year_end_days_in_same_iso_week(self):
        weeks = weeks_of(
            "2024-12-31 09:00: a\n2024-12-31 17:00: b\n"
            "2025-01-02 09:00: c\n2025-01-02 16:00: d\n"
        )
        self.assertEqual(len(weeks), 1)
        self.assertEqual(weeks[0].key, (2025, 1))
        self.assertEqual(len(weeks[0].days), 2)

    def test_flush_returns_open_week_and_resets(self):
        agg = WeekAggregator()
        self.assertIsNone(agg.flush())
        agg.observe(entry("2024-06-03 09:00"))
        week = agg.flush()
        self.assertEqual(week.key, (2024, 23))
        self.assertIsNone(agg.current)
        self.assertIsNone(agg.flush())

    def test_skipped_lines_do_not_change_state(self):
        noisy = ""
        for line in TWO_WEEKS.splitlines(keepends=True):
            noisy += line + "# comment\n# comment\n\ngarbage\ngarbage\n"
        self.assertEqual(weeks_of(noisy), weeks_of(TWO_WEEKS))

        agg = WeekAggregator()
        agg.observe(entry("2024-06-03 09:00"))
        before = copy.deepcopy(agg.current)
        for e in iter_entries(["# comment\n", "# comment\n", "\n", "garbage\n", "garbage\n"]):
            agg.observe(e)
        self.assertEqual(agg.current, before)

    def test_out_of_order_entries_pass_through(self):
        weeks = weeks_of(
            "2024-06-03 17:00: end\n2024-06-03 09:00: start\n"
        )
        self.assertEqual(weeks[0].days[0].start, datetime(2024, 6, 3, 17, 0))
        self.assertEqual(weeks[0].days[0].spans[0].end, datetime(2024, 6, 3, 9, 0))


class TestWorkHoursCalculator(unittest.TestCase):
    """Worked time and over/under time"""

    def setUp(self):
        self.calc = WorkHoursCalculator()

    def test_worked_skips_non_work_spans(self):
        day = Day(weekday=0, start=datetime(2024, 6, 3, 9, 0), spans=[
            Span(datetime(2024, 6, 3, 10, 0), True),
            Span(datetime(2024, 6, 3, 10, 30), False),
            Span(datetime(2024, 6, 3, 12, 0), True),
        ])
        self.assertEqual(self.calc.worked(day), timedelta(hours=2, minutes=30))

    def test_all_non_work_is_zero(self):
        day = Day(weekday=0, start=datetime(2024, 6, 3, 9, 0), spans=[
            Span(datetime(2024, 6, 3, 10, 0), False),
            Span(datetime(2024, 6, 3, 11, 0), False),
        ])
        self.assertEqual(self.calc.worked(day), timedelta(0))

    def test_day_without_spans_is_zero(self):
        day = Day(weekday=0, start=datetime(2024, 6, 3, 9, 0))
        self.assertEqual(self.calc.worked(day), timedelta(0))

    def test_summary_over(self):
        week = weeks_of("2024-06-03 09:00: in\n2024-06-03 17:30: out\n")[0]
        s = self.calc.summarize(week)
        self.assertTrue(s.is_over)
        self.assertEqual(s.balance, timedelta(hours=1, minutes=30))

    def test_summary_exactly_expected_is_under(self):
        week = weeks_of("2024-06-03 09:00: in\n2024-06-03 16:00: out\n")[0]
        s = self.calc.summarize(week)
        self.assertFalse(s.is_over)
        self.assertEqual(s.balance, timedelta(0))

    def test_daily_average_truncates(self):
        week = Week(year=2024, iso_week=23, days=[
            Day(0, datetime(2024, 6, 3, 9, 0), [Span(datetime(2024, 6, 3, 9, 1), True)]),
            Day(1, datetime(2024, 6, 4, 9, 0)),
            Day(2, datetime(2024, 6, 5, 9, 0)),
        ])
        s = self.calc.summarize(week)
        self.assertEqual(s.daily_average, timedelta(seconds=20))
        self.assertEqual(s.expected, timedelta(hours=21))

    def test_custom_threshold(self):
        calc = WorkHoursCalculator(daily_threshold=8.0)
        s = calc.summarize(weeks_of(SCENARIO_A)[0])
        self.assertEqual(s.expected, timedelta(hours=8))
        self.assertEqual(s.balance, timedelta(hours=3))

    def test_empty_week_rejected(self):
        with self.assertRaises(ValueError):
            self.calc.summarize(Week(year=2024, iso_week=23))


class TestScenarios(unittest.TestCase):
    """End-to-end behaviour of the weekly report"""

    def test_scenario_a_non_work_span(self):
        weeks = weeks_of(SCENARIO_A)
        self.assertEqual(len(weeks), 1)
        s = WorkHoursCalculator().summarize(weeks[0])
        self.assertEqual((s.year, s.iso_week), (2024, 23))
        self.assertEqual(s.days, [(datetime(2024, 6, 3).date(), timedelta(hours=5))])
        self.assertEqual(s.expected, timedelta(hours=7))
        self.assertFalse(s.is_over)
        self.assertEqual(s.balance, timedelta(hours=2))
        self.assertEqual(render_week(s), [
            "2024 week 23:",
            "  2024-06-03: 5h0m0s",
            "   daily: 5h0m0s",
            "  worked: 5h0m0s",
            "  expect: 7h0m0s",
            "   under: 2h0m0s",
            "",
        ])

    def test_scenario_b_two_weeks_streamed(self):
        lines = list(load_text(TWO_WEEKS))
        consumed = []

        def source():
            for line in lines:
                consumed.append(line)
                yield line

        weeks = iter_weeks(iter_entries(source()))
        first = next(weeks)
        self.assertEqual(first.key, (2024, 23))
        # nothing after the first entry of the next week has been read
        self.assertEqual(consumed[-1], "2024-06-10 09:00: arrived\n")
        second = next(weeks)
        self.assertEqual(second.key, (2024, 24))
        self.assertEqual(list(weeks), [])

        calc = WorkHoursCalculator()
        s1, s2 = calc.summarize(first), calc.summarize(second)
        self.assertEqual(s1.total, timedelta(hours=8 + 4 + 3))
        self.assertEqual(s1.expected, timedelta(hours=14))
        self.assertTrue(s1.is_over)
        self.assertEqual(s2.total, timedelta(hours=5))
        self.assertEqual(s2.balance, timedelta(hours=2))

    def test_scenario_c_single_entry(self):
        s = WorkHoursCalculator().summarize(weeks_of("2024-06-03 09:00: start\n")[0])
        self.assertEqual(s.total, timedelta(0))
        lines = render_week(s)
        self.assertIn("  2024-06-03: 0s", lines)
        self.assertIn("   under: 7h0m0s", lines)
        self.assertFalse(any(l.strip().startswith("over") for l in lines))

    def test_no_entries_no_output(self):
        sink = io.StringIO()
        self.assertEqual(write_report(iter_weeks(iter_entries(load_text("# nothing\n\n"))), sink), 0)
        self.assertEqual(sink.getvalue(), "")

    def test_summaries_kept_only_when_collected(self):
        sink = io.StringIO()
        self.assertEqual(write_report(iter_weeks(iter_entries(load_text(TWO_WEEKS))), sink), 2)
        kept = []
        n = write_report(iter_weeks(iter_entries(load_text(TWO_WEEKS))), io.StringIO(), collect=kept)
        self.assertEqual(n, 2)
        self.assertEqual([(s.year, s.iso_week) for s in kept], [(2024, 23), (2024, 24)])

    def test_fatal_error_keeps_finished_weeks(self):
        text = TWO_WEEKS + "2024-06-10 25:00: broken\n2024-06-11 09:00: later\n"
        sink = io.StringIO()
        with self.assertRaises(TimelogError):
            write_report(iter_weeks(iter_entries(load_text(text))), sink)
        out = sink.getvalue()
        self.assertIn("2024 week 23:", out)
        self.assertNotIn("2024 week 24:", out)


class TestFormatting(unittest.TestCase):

    def test_format_duration(self):
        self.assertEqual(format_duration(timedelta(0)), "0s")
        self.assertEqual(format_duration(timedelta(minutes=25)), "25m0s")
        self.assertEqual(format_duration(timedelta(hours=31, minutes=5)), "31h5m0s")
        self.assertEqual(format_duration(timedelta(seconds=8, microseconds=571428)), "8s")

    def test_dataframes(self):
        calc = WorkHoursCalculator()
        summaries = [calc.summarize(w) for w in weeks_of(TWO_WEEKS)]
        df = weeks_to_dataframe(summaries)
        self.assertEqual(len(df), 3)
        self.assertEqual(list(df["Date"]), ["2024-06-06", "2024-06-07", "2024-06-10"])
        self.assertEqual(list(df["Day"]), ["Thursday", "Friday", "Monday"])
        self.assertEqual(list(df["Hours"]), [8.0, 7.0, 5.0])
        totals = weekly_totals_dataframe(summaries)
        self.assertEqual(list(totals["ISO Week"]), ["2024-W23", "2024-W24"])
        self.assertEqual(list(totals["Over/Under"]), ["1:00", "-2:00"])

    def test_pdf(self):
        summaries = [WorkHoursCalculator().summarize(w) for w in weeks_of(SCENARIO_A)]
        pdf = summaries_to_pdf(summaries)
        self.assertTrue(pdf.startswith(b"%PDF"))


class TestRepository(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "timelog.txt")
        with open(self.path, "w", encoding="utf-8") as fh:
            fh.write(SCENARIO_A)

    def tearDown(self):
        self.tmp.cleanup()

    def test_iter_lines(self):
        repo = TimelogRepository(self.path)
        self.assertEqual(list(repo.iter_lines()), SCENARIO_A.splitlines(keepends=True))

    def test_missing_file(self):
        with self.assertRaises(TimelogUnavailable):
            TimelogRepository(os.path.join(self.tmp.name, "nope.txt"))

    def test_default_path_from_env(self):
        with mock.patch.dict(os.environ, {"GTL_TIMELOG": self.path}):
            self.assertEqual(str(default_timelog_path()), self.path)
            self.assertEqual(str(TimelogRepository().path), self.path)

    def test_default_path_in_home(self):
        env = {k: v for k, v in os.environ.items() if k != "GTL_TIMELOG"}
        with mock.patch.dict(os.environ, env, clear=True):
            path = default_timelog_path()
        self.assertEqual(path.parts[-2:], (".gtimelog", "timelog.txt"))

    def test_unresolvable_home(self):
        env = {k: v for k, v in os.environ.items() if k != "GTL_TIMELOG"}
        for exc in (RuntimeError("no home"), KeyError("HOME")):
            with self.subTest(exc=exc), mock.patch.dict(os.environ, env, clear=True), \
                    mock.patch("repository.Path.home", side_effect=exc):
                with self.assertRaises(TimelogUnavailable):
                    default_timelog_path()

    def test_undecodable_bytes_are_replaced(self):
        with open(self.path, "wb") as fh:
            fh.write(b"# caf\xe9 notes\n" + SCENARIO_A.encode("utf-8"))
        lines = list(TimelogRepository(self.path).iter_lines())
        self.assertEqual(lines[0], "# caf\ufffd notes\n")
        self.assertEqual(len(weeks_of("".join(lines))), 1)

    def test_load_text_bytes(self):
        lines = list(load_text(b"# caf\xe9\n2024-06-03 09:00: start\n"))
        self.assertEqual(lines, ["# caf\ufffd\n", "2024-06-03 09:00: start\n"])


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, name, text):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
        return path

    def test_report(self):
        out = io.StringIO()
        rc = gtl.main([self.write("t.txt", TWO_WEEKS)], out=out)
        self.assertEqual(rc, 0)
        text = out.getvalue()
        self.assertIn("2024 week 23:\n  2024-06-06: 8h0m0s\n  2024-06-07: 7h0m0s\n", text)
        self.assertIn("    over: 1h0m0s\n", text)
        self.assertIn("2024 week 24:\n", text)
        self.assertIn("   under: 2h0m0s\n", text)

    def test_exports(self):
        csv_path = os.path.join(self.tmp.name, "days.csv")
        pdf_path = os.path.join(self.tmp.name, "report.pdf")
        rc = gtl.main([self.write("t.txt", TWO_WEEKS), "--csv", csv_path, "--pdf", pdf_path],
                      out=io.StringIO())
        self.assertEqual(rc, 0)
        with open(csv_path, encoding="utf-8") as fh:
            self.assertEqual(fh.readline().strip(), "ISO Week,Date,Day,Worked,Hours")
        with open(pdf_path, "rb") as fh:
            self.assertEqual(fh.read(4), b"%PDF")

    def test_corrupt_timestamp(self):
        out = io.StringIO()
        rc = gtl.main([self.write("bad.txt", SCENARIO_A + "2024-13-01 10:00: x\n")], out=out)
        self.assertEqual(rc, 1)
        self.assertEqual(out.getvalue(), "")

    def test_missing_timelog(self):
        rc = gtl.main([os.path.join(self.tmp.name, "missing.txt")], out=io.StringIO())
        self.assertEqual(rc, 1)

    def test_non_utf8_comment(self):
        path = os.path.join(self.tmp.name, "latin1.txt")
        with open(path, "wb") as fh:
            fh.write(b"# caf\xe9 notes\n" + SCENARIO_A.encode("utf-8"))
        out = io.StringIO()
        rc = gtl.main([path], out=out)
        self.assertEqual(rc, 0)
        self.assertIn("   under: 2h0m0s\n", out.getvalue())

    def test_non_ascii_digits_skipped(self):
        out = io.StringIO()
        rc = gtl.main([self.write("t.txt", "٢٠٢٤-٠٦-٠٣ ٠٩:٠٠: x\n" + SCENARIO_A)], out=out)
        self.assertEqual(rc, 0)
        self.assertIn("  2024-06-03: 5h0m0s\n", out.getvalue())


if __name__ == '__main__':
    unittest.main(verbosity=2)
