"""Background workers: auction finalize, waiver resolve, seasonal resets.

Each tick opens its own LeagueRepo connection; workers and request handlers
coordinate only through the database transaction.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from auction.finalize import finalize_expired_auctions
from config import AUCTION_TICK_SECONDS, SEASONAL_TICK_SECONDS, WAIVER_TICK_SECONDS
from league_repo import LeagueRepo
from notifications import Notifier
from waivers.resolve import resolve_expired_waivers

from .loop import PeriodicWorker
from .markers import MemoryRunMarkers, RunMarkerStore, SqliteRunMarkers
from .seasonal import IL_CLEAR_KEY, OPTION_RESET_KEY, run_il_clear, run_option_reset, run_seasonal_resets


def auction_tick(db_path: str, notifier: Optional[Notifier] = None) -> List[Dict[str, Any]]:
    with LeagueRepo(db_path) as repo:
        return finalize_expired_auctions(repo, notifier=notifier)


def waiver_tick(db_path: str, notifier: Optional[Notifier] = None) -> List[Dict[str, Any]]:
    with LeagueRepo(db_path) as repo:
        return resolve_expired_waivers(repo, notifier=notifier)


def seasonal_tick(db_path: str, markers: Optional[RunMarkerStore] = None) -> List[Dict[str, Any]]:
    with LeagueRepo(db_path) as repo:
        return run_seasonal_resets(repo, markers=markers)


def build_workers(
    db_path: str,
    *,
    notifier: Optional[Notifier] = None,
    auction_interval: float = AUCTION_TICK_SECONDS,
    waiver_interval: float = WAIVER_TICK_SECONDS,
    seasonal_interval: float = SEASONAL_TICK_SECONDS,
) -> List[PeriodicWorker]:
    return [
        PeriodicWorker("auction", auction_interval, lambda: auction_tick(db_path, notifier)),
        PeriodicWorker("waivers", waiver_interval, lambda: waiver_tick(db_path, notifier)),
        PeriodicWorker("seasonal", seasonal_interval, lambda: seasonal_tick(db_path)),
    ]


async def start_all(workers: List[PeriodicWorker]) -> None:
    for worker in workers:
        await worker.start()


async def stop_all(workers: List[PeriodicWorker]) -> None:
    for worker in workers:
        await worker.stop()


__all__ = [
    "PeriodicWorker",
    "RunMarkerStore",
    "SqliteRunMarkers",
    "MemoryRunMarkers",
    "OPTION_RESET_KEY",
    "IL_CLEAR_KEY",
    "run_option_reset",
    "run_il_clear",
    "run_seasonal_resets",
    "auction_tick",
    "waiver_tick",
    "seasonal_tick",
    "build_workers",
    "start_all",
    "stop_all",
]
