"""Once-a-year bulk resets, checked by the seasonal worker every hour.

    Nov 1   option_years_used -> 0        marker seasonal_option_reset_{year}
    Oct 15  IL labels cleared             marker seasonal_il_clear_{year}

The marker is read before the update and written in the same transaction
after it, so repeated ticks on the day do the bulk write once.
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, List, Optional

from config import IL_CLEAR_DATE, OPTION_RESET_DATE
from ledger_ops import log_transaction
from league_repo import LeagueRepo
from schema import TX_SEASONAL, coerce_now, to_iso

from .markers import RunMarkerStore, SqliteRunMarkers

logger = logging.getLogger(__name__)

OPTION_RESET_KEY = "seasonal_option_reset_{year}"
IL_CLEAR_KEY = "seasonal_il_clear_{year}"


def _on(ts: _dt.datetime, month_day) -> bool:
    return (ts.month, ts.day) == tuple(month_day)


def run_option_reset(repo: LeagueRepo, markers: RunMarkerStore, *, now: Optional[_dt.datetime] = None) -> Optional[int]:
    """Reset option years for every player. None when already done this year."""
    ts = coerce_now(now)
    key = OPTION_RESET_KEY.format(year=ts.year)
    with repo.transaction() as cur:
        if markers.is_done(key, cur=cur):
            return None
        count = repo.reset_option_years(cur=cur)
        markers.mark_done(key, to_iso(ts), cur=cur)
    logger.info("seasonal: reset option_years_used for %d players", count)
    return count


def run_il_clear(repo: LeagueRepo, markers: RunMarkerStore, *, now: Optional[_dt.datetime] = None) -> Optional[int]:
    ts = coerce_now(now)
    key = IL_CLEAR_KEY.format(year=ts.year)
    with repo.transaction() as cur:
        if markers.is_done(key, cur=cur):
            return None
        count = repo.clear_injured_list(cur=cur)
        markers.mark_done(key, to_iso(ts), cur=cur)
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_SEASONAL,
            league_id=None,
            summary=f"End of season IL clear: {count} players activated",
            now=ts,
            related_id=key,
            count=count,
        )
    logger.info("seasonal: cleared IL for %d players", count)
    return count


def run_seasonal_resets(
    repo: LeagueRepo,
    *,
    markers: Optional[RunMarkerStore] = None,
    now: Optional[_dt.datetime] = None,
) -> List[Dict[str, Any]]:
    """One tick: run whichever reset is due today."""
    ts = coerce_now(now)
    store = markers if markers is not None else SqliteRunMarkers(repo)
    ran: List[Dict[str, Any]] = []
    if _on(ts, OPTION_RESET_DATE):
        count = run_option_reset(repo, store, now=ts)
        if count is not None:
            ran.append({"job": "option_reset", "key": OPTION_RESET_KEY.format(year=ts.year), "count": count})
    if _on(ts, IL_CLEAR_DATE):
        count = run_il_clear(repo, store, now=ts)
        if count is not None:
            ran.append({"job": "il_clear", "key": IL_CLEAR_KEY.format(year=ts.year), "count": count})
    return ran
