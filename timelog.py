# timelog.py
"""
Parsing of gtimelog-style timelog files.

Every line of the form

    YYYY-MM-DD HH:MM: label

is an entry; anything else (blank day separators, '#' comments, stray text)
is ignored. Lines are expected in chronological order but this is not
checked.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterable, Iterator

from domain import Entry

log = logging.getLogger("gtl.timelog")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
ENTRY_RE = re.compile(r"(\d\d\d\d-\d\d-\d\d \d\d:\d\d): (.*)", re.ASCII)


class TimelogError(ValueError):
    """A timestamp that looks right but is not a real date/time."""

    def __init__(self, text: str, lineno: int | None = None):
        self.text = text
        self.lineno = lineno
        where = f"line {lineno}: " if lineno is not None else ""
        super().__init__(f"{where}bad timestamp {text!r}")


def parse_timestamp(text: str, lineno: int | None = None) -> datetime:
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError:
        raise TimelogError(text, lineno) from None


def parse_line(line: str, lineno: int | None = None) -> Entry | None:
    """Returns the entry on this line, or None when the line is not an entry."""
    m = ENTRY_RE.match(line.rstrip("\r\n"))
    if not m:
        return None
    return Entry(timestamp=parse_timestamp(m.group(1), lineno), label=m.group(2))


def iter_entries(lines: Iterable[str]) -> Iterator[Entry]:
    skipped = 0
    for lineno, line in enumerate(lines, start=1):
        entry = parse_line(line, lineno)
        if entry is None:
            skipped += 1
            continue
        yield entry
    log.debug("%d non-entry lines skipped", skipped)
