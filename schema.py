# schema.py
from __future__ import annotations

import datetime as _dt
import re
import uuid
from typing import Any, Iterable, Literal, NewType, Optional, Tuple

# ============================================================================
# 0) Single Source of Truth: IDs / Versions
# ============================================================================

SCHEMA_VERSION: str = "1.0"

# IMPORTANT:
# - Always treat IDs as str. Ids come from imports (UUIDs or legacy numeric keys).
PlayerId = NewType("PlayerId", str)
TeamId = NewType("TeamId", str)
LeagueId = NewType("LeagueId", str)
UserId = NewType("UserId", str)
TradeId = NewType("TradeId", str)

ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-\.]{0,63}$")


def _normalize_id(value: Any, what: str, *, strict: bool) -> str:
    if value is None:
        raise ValueError(f"{what} is empty")
    s = str(value).strip()
    if not s:
        raise ValueError(f"{what} is empty")
    if strict and not ID_RE.match(s):
        raise ValueError(f"invalid {what} '{s}'")
    return s


def normalize_player_id(value: Any, *, strict: bool = True) -> PlayerId:
    return PlayerId(_normalize_id(value, "player_id", strict=strict))


def normalize_team_id(value: Any, *, strict: bool = True) -> TeamId:
    return TeamId(_normalize_id(value, "team_id", strict=strict))


def normalize_league_id(value: Any, *, strict: bool = True) -> LeagueId:
    return LeagueId(_normalize_id(value, "league_id", strict=strict))


def normalize_user_id(value: Any, *, strict: bool = False) -> UserId:
    return UserId(_normalize_id(value, "user_id", strict=strict))


def make_trade_id() -> TradeId:
    return TradeId("T" + uuid.uuid4().hex[:16].upper())


def make_action_id() -> str:
    return "A" + uuid.uuid4().hex[:16].upper()


def make_log_id() -> str:
    return "X" + uuid.uuid4().hex[:16].upper()


def assert_unique_ids(ids: Iterable[str], *, what: str = "player_id") -> None:
    seen: set[str] = set()
    dups: set[str] = set()
    for x in ids:
        if x in seen:
            dups.add(x)
        seen.add(x)
    if dups:
        raise ValueError(f"duplicate {what}(s): {sorted(dups)[:20]}")


# ============================================================================
# 1) Status vocabularies
# ============================================================================

FaStatus = Literal["available", "pending_bid", "on_waivers", "rostered"]
FA_AVAILABLE: str = "available"
FA_PENDING_BID: str = "pending_bid"
FA_ON_WAIVERS: str = "on_waivers"
FA_ROSTERED: str = "rostered"
ALLOWED_FA_STATUSES: Tuple[str, ...] = (FA_AVAILABLE, FA_PENDING_BID, FA_ON_WAIVERS, FA_ROSTERED)

BidType = Literal["standard", "ifa"]
BID_STANDARD: str = "standard"
BID_IFA: str = "ifa"

ClearAction = Literal["release", "minors"]
CLEAR_RELEASE: str = "release"
CLEAR_MINORS: str = "minors"
ALLOWED_CLEAR_ACTIONS: Tuple[str, ...] = (CLEAR_RELEASE, CLEAR_MINORS)

CLAIM_PENDING: str = "pending"
CLAIM_PROCESSED: str = "processed"
CLAIM_INVALID: str = "invalid"

TRADE_PROPOSED: str = "PROPOSED"
TRADE_ACCEPTED: str = "ACCEPTED"
TRADE_REJECTED: str = "REJECTED"
TRADE_REVERSED: str = "REVERSED"
TRADE_COUNTERED: str = "COUNTERED"

ACTION_ARBITRATION: str = "ARBITRATION"
ACTION_EXTENSION: str = "EXTENSION"
ACTION_RESTRUCTURE: str = "RESTRUCTURE"
ACTION_PENDING: str = "PENDING"
ACTION_APPROVED: str = "APPROVED"
ACTION_REJECTED: str = "REJECTED"

# transactions_log.tx_type values
TX_ADD: str = "Added Player"
TX_DROP: str = "Dropped Player"
TX_ROSTER_MOVE: str = "Roster Move"
TX_WAIVERS: str = "Waivers"
TX_TRADE: str = "TRADE"
TX_COMMISSIONER: str = "COMMISSIONER"
TX_SEASONAL: str = "SEASONAL"
TX_TEAM_OPTION: str = "Team Option"
TX_BID: str = "Bid"
TX_COMPLETED: str = "COMPLETED"

# dead_cap_penalties.source values
DEAD_CAP_ADMIN: str = "admin"
DEAD_CAP_TRADE_RETENTION: str = "trade_retention"
DEAD_CAP_TEAM_OPTION: str = "team_option"
DEAD_CAP_DFA_RELEASE: str = "dfa_release"

# Notification categories
NOTIFY_TRANSACTIONS: str = "transactions"
NOTIFY_TRADE_BLOCK: str = "trade_block"


# ============================================================================
# 2) League calendar date types
# ============================================================================

DATE_OPENING_DAY = "opening_day"
DATE_TRADE_DEADLINE = "trade_deadline"
DATE_EXTENSION_DEADLINE = "extension_deadline"
DATE_OPTION_DEADLINE = "option_deadline"
DATE_IFA_OPEN = "ifa_window_open"
DATE_IFA_CLOSE = "ifa_window_close"
DATE_MILB_FA_OPEN = "milb_fa_window_open"
DATE_MILB_FA_CLOSE = "milb_fa_window_close"
DATE_ROSTER_EXPANSION_START = "roster_expansion_start"
DATE_ROSTER_EXPANSION_END = "roster_expansion_end"

ALLOWED_DATE_TYPES: Tuple[str, ...] = (
    DATE_OPENING_DAY,
    DATE_TRADE_DEADLINE,
    DATE_EXTENSION_DEADLINE,
    DATE_OPTION_DEADLINE,
    DATE_IFA_OPEN,
    DATE_IFA_CLOSE,
    DATE_MILB_FA_OPEN,
    DATE_MILB_FA_CLOSE,
    DATE_ROSTER_EXPANSION_START,
    DATE_ROSTER_EXPANSION_END,
)


# ============================================================================
# 3) Timestamps
# ============================================================================
# Stored as UTC ISO strings with a trailing "Z" and no microseconds, so that
# lexicographic comparison in SQL matches chronological order.

def utc_now() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0)


def as_utc(value: _dt.datetime) -> _dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.timezone.utc)
    return value.astimezone(_dt.timezone.utc)


def to_iso(value: _dt.datetime) -> str:
    return as_utc(value).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_iso(value: Any) -> Optional[_dt.datetime]:
    """Parse a stored timestamp; None/empty -> None."""
    if value is None:
        return None
    if isinstance(value, _dt.datetime):
        return as_utc(value)
    s = str(value).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return as_utc(_dt.datetime.fromisoformat(s))


def coerce_now(now: Optional[_dt.datetime]) -> _dt.datetime:
    return utc_now() if now is None else as_utc(now).replace(microsecond=0)
