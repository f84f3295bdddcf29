import os
from datetime import timedelta
from typing import Dict, Tuple

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[WARN] {name}={raw!r} is not a number; using {default}")
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


# -------------------------------------------------------------------------
# Runtime settings (env overrides)
# -------------------------------------------------------------------------
LEAGUE_DB_PATH: str = os.environ.get("LEAGUE_DB_PATH", os.path.join(BASE_DIR, "league.db"))

# Background worker cadence (seconds)
AUCTION_TICK_SECONDS: float = _env_float("AUCTION_TICK_SECONDS", 60.0)
WAIVER_TICK_SECONDS: float = _env_float("WAIVER_TICK_SECONDS", 120.0)
SEASONAL_TICK_SECONDS: float = _env_float("SEASONAL_TICK_SECONDS", 3600.0)
WORKERS_ENABLED: bool = _env_flag("WORKERS_ENABLED", True)

# Outbound notification delivery
SLACK_API_URL: str = os.environ.get("SLACK_API_URL", "https://slack.com/api/chat.postMessage")
NOTIFY_TIMEOUT_SECONDS: float = _env_float("NOTIFY_TIMEOUT_SECONDS", 10.0)


# -------------------------------------------------------------------------
# Contract years
# -------------------------------------------------------------------------
CONTRACT_FIRST_YEAR: int = 2026
CONTRACT_LAST_YEAR: int = 2040
CONTRACT_YEARS: Tuple[int, ...] = tuple(range(CONTRACT_FIRST_YEAR, CONTRACT_LAST_YEAR + 1))


# -------------------------------------------------------------------------
# Free-agent auction
# -------------------------------------------------------------------------
BID_MULTIPLIERS: Dict[int, float] = {1: 2.0, 2: 1.8, 3: 1.6, 4: 1.4, 5: 1.2}
MIN_BID_YEARS: int = 1
MAX_BID_YEARS: int = 5
MIN_BID_AAV: float = 1_000_000.0
MIN_BID_POINTS: float = 1.0
MIN_OUTBID_POINTS: float = 1.0
BID_WINDOW: timedelta = timedelta(hours=24)


# -------------------------------------------------------------------------
# Waivers
# -------------------------------------------------------------------------
WAIVER_WINDOW: timedelta = timedelta(hours=48)
DEFAULT_CLAIM_PRIORITY: int = 0
DFA_CURRENT_YEAR_DEAD_CAP_PCT: float = 0.75
DFA_FUTURE_YEAR_DEAD_CAP_PCT: float = 0.50


# -------------------------------------------------------------------------
# Roster limits (used when league_settings has no row for league/year)
# -------------------------------------------------------------------------
DEFAULT_ROSTER_26_LIMIT: int = 26
DEFAULT_ROSTER_40_LIMIT: int = 40
DEFAULT_SP_26_LIMIT: int = 6
DEFAULT_LUXURY_TAX_LIMIT: float = 0.0


# -------------------------------------------------------------------------
# Trades
# -------------------------------------------------------------------------
# (month, day) used when league_dates has no opening_day row.
DEFAULT_OPENING_DAY: Tuple[int, int] = (3, 30)
# Retention bands after opening day: inclusive (month, day) upper bound -> pct.
RETENTION_BANDS: Tuple[Tuple[Tuple[int, int], float], ...] = (
    ((4, 30), 0.10),
    ((5, 31), 0.25),
)
RETENTION_LATE_SEASON: float = 0.50
RETAIN_SALARY_EXTRA_PCT: float = 0.50
# Offseason trade window: always open from (10, 15) through (3, 15).
OFFSEASON_START: Tuple[int, int] = (10, 15)
OFFSEASON_END: Tuple[int, int] = (3, 15)


# -------------------------------------------------------------------------
# Contracts
# -------------------------------------------------------------------------
TEAM_OPTION_BUYOUT_PCT: float = 0.30
MAX_EXTENSION_YEARS: int = 8


# -------------------------------------------------------------------------
# Seasonal resets (month, day)
# -------------------------------------------------------------------------
OPTION_RESET_DATE: Tuple[int, int] = (11, 1)
IL_CLEAR_DATE: Tuple[int, int] = (10, 15)
