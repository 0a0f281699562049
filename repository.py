# repository.py
from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Iterator

log = logging.getLogger("gtl.repository")

DEFAULT_TIMELOG = ".gtimelog/timelog.txt"
ENV_TIMELOG = "GTL_TIMELOG"


class TimelogUnavailable(RuntimeError):
    """The timelog cannot be located or opened."""


def default_timelog_path() -> Path:
    """$GTL_TIMELOG if set, else ~/.gtimelog/timelog.txt."""
    env = os.getenv(ENV_TIMELOG)
    if env:
        return Path(env).expanduser()
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise TimelogUnavailable(f"Could not resolve home directory: {e}") from e
    return home / DEFAULT_TIMELOG


class TimelogRepository:
    """Read-only access to a timelog file, one line at a time."""
    def __init__(self, path: str | os.PathLike | None = None):
        self.path = Path(path) if path is not None else default_timelog_path()

        # fail fast, before anything is parsed
        if not self.path.is_file():
            raise TimelogUnavailable(f"Timelog not found: {self.path}")
        if not os.access(self.path, os.R_OK):
            raise TimelogUnavailable(f"Timelog not readable: {self.path}")

    def iter_lines(self) -> Iterator[str]:
        log.debug("reading %s", self.path)
        try:
            with open(self.path, "r", encoding="utf-8", errors="replace") as fh:
                yield from fh
        except OSError as e:
            raise TimelogUnavailable(f"Could not read {self.path}: {e}") from e


def load_text(data: str | bytes) -> Iterator[str]:
    """Lines of an in-memory timelog (e.g. an uploaded file)."""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    return iter(io.StringIO(data))


__all__ = ["TimelogRepository", "TimelogUnavailable", "default_timelog_path", "load_text"]
