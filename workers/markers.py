"""Run markers for once-per-year jobs.

A marker key (e.g. ``seasonal_option_reset_2026``) records that a job already
ran. Markers never expire on their own; ``reset`` is for operators and tests.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Dict, Optional, Protocol

from league_repo import LeagueRepo


class RunMarkerStore(Protocol):
    def is_done(self, key: str, *, cur: Optional[sqlite3.Cursor] = None) -> bool:
        ...

    def mark_done(self, key: str, value: str, *, cur: Optional[sqlite3.Cursor] = None) -> None:
        ...

    def reset(self, key: str) -> None:
        ...


class SqliteRunMarkers:
    """Markers in ``system_counters``; pass the job's cursor so the marker commits with it."""

    def __init__(self, repo: LeagueRepo) -> None:
        self.repo = repo

    def is_done(self, key: str, *, cur: Optional[sqlite3.Cursor] = None) -> bool:
        return self.repo.get_counter(key, cur=cur) is not None

    def mark_done(self, key: str, value: str, *, cur: Optional[sqlite3.Cursor] = None) -> None:
        self.repo.set_counter(key, value, cur=cur)

    def reset(self, key: str) -> None:
        self.repo.delete_counter(key)


class MemoryRunMarkers:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, str] = {}

    def is_done(self, key: str, *, cur: Optional[sqlite3.Cursor] = None) -> bool:
        with self._lock:
            return key in self._values

    def mark_done(self, key: str, value: str, *, cur: Optional[sqlite3.Cursor] = None) -> None:
        with self._lock:
            self._values[key] = value

    def reset(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._values)
