#!/usr/bin/env python3
# gtl.py
"""
gtl: weekly worked time from a gtimelog timelog.

    gtl [TIMELOG] [--expected-hours H] [--csv FILE] [--pdf FILE]
"""
from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser
from typing import List, Optional, Sequence

from repository import TimelogRepository, TimelogUnavailable
from services import EXPECTED_DAILY_H, WeekSummary, WorkHoursCalculator, iter_weeks
from timelog import TimelogError, iter_entries
from utils import summaries_to_pdf, weeks_to_dataframe, write_report

LOGGER = logging.getLogger("gtl")


def setup_logging(verbose: bool = False) -> None:
    if not LOGGER.handlers:
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        LOGGER.addHandler(h)
    LOGGER.setLevel(logging.DEBUG if verbose else logging.INFO)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="gtl", description="Summarize worked time per ISO week.")
    parser.add_argument("timelog", nargs="?", default=None,
                        help="timelog file (default: $GTL_TIMELOG or ~/.gtimelog/timelog.txt)")
    parser.add_argument("--expected-hours", type=float, default=EXPECTED_DAILY_H,
                        help="expected hours per worked day (default: %(default)s)")
    parser.add_argument("--csv", metavar="FILE", help="also write the daily rows as CSV")
    parser.add_argument("--pdf", metavar="FILE", help="also write the report as PDF")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None, out=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    out = out or sys.stdout

    try:
        repo = TimelogRepository(args.timelog)
    except TimelogUnavailable as e:
        LOGGER.error("%s", e)
        return 1

    calc = WorkHoursCalculator(daily_threshold=args.expected_hours)
    summaries: Optional[List[WeekSummary]] = [] if (args.csv or args.pdf) else None
    try:
        n = write_report(iter_weeks(iter_entries(repo.iter_lines())), out, calc, collect=summaries)
    except TimelogError as e:
        LOGGER.error("%s: %s", repo.path, e)
        return 1
    except TimelogUnavailable as e:
        LOGGER.error("%s", e)
        return 1

    LOGGER.debug("%d week(s) reported", n)
    if args.csv:
        weeks_to_dataframe(summaries).to_csv(args.csv, index=False)
        LOGGER.info("CSV written to %s", args.csv)
    if args.pdf:
        with open(args.pdf, "wb") as fh:
            fh.write(summaries_to_pdf(summaries, title=f"Weekly timelog: {repo.path.name}"))
        LOGGER.info("PDF written to %s", args.pdf)
    return 0


if __name__ == "__main__":
    sys.exit(main())
