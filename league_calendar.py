"""League calendar and per-year settings.

Absent rows mean "open" for windows and default limits for settings.
"""

from __future__ import annotations

import datetime as _dt
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from config import (
    DEFAULT_LUXURY_TAX_LIMIT,
    DEFAULT_OPENING_DAY,
    DEFAULT_ROSTER_26_LIMIT,
    DEFAULT_ROSTER_40_LIMIT,
    DEFAULT_SP_26_LIMIT,
)
from errors import INVALID_INPUT, ValidationError
from identity import Caller, require_commissioner
from ledger_ops import log_transaction
from league_repo import LeagueRepo
from schema import ALLOWED_DATE_TYPES, DATE_OPENING_DAY, TX_COMMISSIONER, coerce_now


@dataclass(frozen=True)
class LeagueSettings:
    roster_26_limit: int = DEFAULT_ROSTER_26_LIMIT
    roster_40_limit: int = DEFAULT_ROSTER_40_LIMIT
    sp_26_limit: int = DEFAULT_SP_26_LIMIT
    luxury_tax_limit: float = DEFAULT_LUXURY_TAX_LIMIT


def parse_event_date(value: str) -> _dt.date:
    return _dt.date.fromisoformat(str(value)[:10])


def get_date(
    repo: LeagueRepo,
    league_id: str,
    year: int,
    date_type: str,
    *,
    cur: sqlite3.Cursor | None = None,
) -> Optional[_dt.date]:
    raw = repo.get_league_date(league_id, year, date_type, cur=cur)
    if raw is None:
        return None
    return parse_event_date(raw)


def is_window_open(
    repo: LeagueRepo,
    league_id: str,
    year: int,
    open_type: str,
    close_type: str,
    today: _dt.date,
    *,
    cur: sqlite3.Cursor | None = None,
) -> Tuple[bool, str]:
    """(open?, reason). Each unconfigured bound counts as open."""
    opens = get_date(repo, league_id, year, open_type, cur=cur)
    closes = get_date(repo, league_id, year, close_type, cur=cur)
    if opens is not None and today < opens:
        return False, f"window opens {opens.isoformat()}"
    if closes is not None and today > closes:
        return False, f"window closed {closes.isoformat()}"
    return True, "open"


def opening_day(repo: LeagueRepo, league_id: str, year: int, *, cur: sqlite3.Cursor | None = None) -> _dt.date:
    configured = get_date(repo, league_id, year, DATE_OPENING_DAY, cur=cur)
    if configured is not None:
        return configured
    month, day = DEFAULT_OPENING_DAY
    return _dt.date(year, month, day)


def get_league_settings(
    repo: LeagueRepo,
    league_id: str,
    year: int,
    *,
    cur: sqlite3.Cursor | None = None,
) -> LeagueSettings:
    row = repo.get_league_settings_row(league_id, year, cur=cur)
    if row is None:
        return LeagueSettings()
    return LeagueSettings(
        roster_26_limit=int(row["roster_26_limit"]),
        roster_40_limit=int(row["roster_40_limit"]),
        sp_26_limit=int(row["sp_26_limit"]),
        luxury_tax_limit=float(row["luxury_tax_limit"]),
    )


def validate_date_type(date_type: str) -> str:
    if date_type not in ALLOWED_DATE_TYPES:
        raise ValidationError(INVALID_INPUT, "Unknown league date type", {"date_type": date_type})
    return date_type


_SETTING_FIELDS = ("roster_26_limit", "roster_40_limit", "sp_26_limit", "luxury_tax_limit")


def set_league_date(
    repo: LeagueRepo,
    caller: Caller,
    league_id: str,
    year: int,
    date_type: str,
    event_date: Any,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    """Commissioner write of one calendar row."""
    validate_date_type(date_type)
    try:
        parsed = event_date if isinstance(event_date, _dt.date) else parse_event_date(event_date)
    except (TypeError, ValueError):
        raise ValidationError(INVALID_INPUT, "event_date must be YYYY-MM-DD", {"event_date": event_date}) from None
    ts = coerce_now(now)
    with repo.transaction() as cur:
        require_commissioner(repo, caller, league_id, cur=cur)
        repo.set_league_date(league_id, int(year), date_type, parsed.isoformat(), cur=cur)
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_COMMISSIONER,
            league_id=league_id,
            summary=f"League date {date_type} for {int(year)} set to {parsed.isoformat()}",
            now=ts,
        )
    return {"league_id": league_id, "year": int(year), "date_type": date_type, "event_date": parsed.isoformat()}


def set_league_settings(
    repo: LeagueRepo,
    caller: Caller,
    league_id: str,
    year: int,
    values: Mapping[str, Any],
    *,
    now: Optional[_dt.datetime] = None,
) -> LeagueSettings:
    unknown = sorted(k for k in values if k not in _SETTING_FIELDS)
    if unknown:
        raise ValidationError(INVALID_INPUT, "Unknown league settings", {"fields": unknown})
    clean: Dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(INVALID_INPUT, f"{key} must be a number", {key: value}) from None
        if number < 0:
            raise ValidationError(INVALID_INPUT, f"{key} must not be negative", {key: value})
        clean[key] = number if key == "luxury_tax_limit" else int(number)
    ts = coerce_now(now)
    with repo.transaction() as cur:
        require_commissioner(repo, caller, league_id, cur=cur)
        repo.upsert_league_settings(league_id, int(year), clean, cur=cur)
        settings = get_league_settings(repo, league_id, int(year), cur=cur)
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_COMMISSIONER,
            league_id=league_id,
            summary=f"League settings for {int(year)} updated",
            now=ts,
            settings=clean,
        )
    return settings
