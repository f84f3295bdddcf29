from __future__ import annotations

"""league_service.py

Operation facade over the engines.

Every mutating operation of the ledger (auction, waivers, roster moves, trades,
contracts, dead cap, calendar, seasonal resets) is reachable here with plain
identifiers and primitives, so the HTTP handlers and any automated caller
invoke exactly the same code. Each call returns a plain dict (or list) or
raises a ``LedgerError`` subtype; ``sqlite3.Error`` escaping an engine is
re-raised as ``PersistenceError`` after the engine's transaction rolled back.
"""

import contextlib
import datetime as _dt
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)
_WARN_COUNTS: Dict[str, int] = {}


def _warn_limited(code: str, msg: str, *, limit: int = 5) -> None:
    """Log a WARNING with traceback, but cap repeats per code.

    This avoids spamming logs in hot loops while still recording error types.
    """
    n = _WARN_COUNTS.get(code, 0)
    if n < limit:
        logger.warning("%s %s", code, msg, exc_info=True)
    _WARN_COUNTS[code] = n + 1


from auction import bids as _bids
from auction import finalize as _finalize
from contracts import options as _options
from contracts import payroll as _payroll
from contracts import pending_actions as _actions
from errors import DB_ERROR, PersistenceError
from identity import Caller, resolve_single_team, teams_owned_in_league
import league_calendar as _calendar
from league_repo import LeagueRepo
from notifications import Notifier
from roster import moves as _moves
from schema import ACTION_PENDING, CLEAR_RELEASE
import trades as _trades
from waivers import claims as _claims
from waivers import dfa as _dfa
from waivers import resolve as _resolve
from workers import seasonal as _seasonal
from workers.markers import RunMarkerStore


class LeagueService:
    """High-level operation API built on LeagueRepo."""

    def __init__(
        self,
        repo: LeagueRepo,
        *,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], _dt.datetime]] = None,
    ):
        self.repo = repo
        self.notifier = notifier
        self._clock = clock

    # ----------------------------
    # Internal common helpers
    # ----------------------------
    def _now(self) -> Optional[_dt.datetime]:
        return self._clock() if self._clock is not None else None

    @contextlib.contextmanager
    def _guard(self, op: str):
        """Translate driver failures into PersistenceError."""
        try:
            yield
        except sqlite3.Error as exc:
            _warn_limited(f"DB_{op.upper()}", f"{op} failed: {exc}")
            raise PersistenceError(DB_ERROR, "Database error; the operation was rolled back", {"op": op}) from exc

    def _call(self, op: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self._guard(op):
            return fn(*args, **kwargs)

    # ----------------------------
    # Lifecycle / context helpers
    # ----------------------------
    @classmethod
    @contextmanager
    def open(cls, db_path: str, *, notifier: Optional[Notifier] = None, clock: Optional[Callable[[], _dt.datetime]] = None):
        """Open a repo and yield a service bound to it."""
        with LeagueRepo(db_path) as repo:
            # Make all service calls safe even if caller forgot to init explicitly.
            repo.init_db()
            yield cls(repo, notifier=notifier, clock=clock)

    def init_or_migrate_db(self) -> None:
        self.repo.init_db()

    # ----------------------------
    # (A) Auction
    # ----------------------------
    def submit_bid(self, caller: Caller, player_id: str, years: int, aav: float) -> Dict[str, Any]:
        return self._call("submit_bid", _bids.submit_bid, self.repo, caller, player_id, years, aav, now=self._now(), notifier=self.notifier)

    def finalize_auctions(self) -> List[Dict[str, Any]]:
        return self._call("finalize_auctions", _finalize.finalize_expired_auctions, self.repo, now=self._now(), notifier=self.notifier)

    def bid_history(self, player_id: str) -> List[Dict[str, Any]]:
        return self._call("bid_history", _bids.get_bid_history, self.repo, player_id)

    def pending_auctions(self, league_id: str) -> List[Dict[str, Any]]:
        return self._call("pending_auctions", _bids.list_pending_auctions, self.repo, league_id)

    # ----------------------------
    # (W) Waivers
    # ----------------------------
    def designate_for_assignment(
        self,
        caller: Caller,
        player_id: str,
        team_id: Optional[str] = None,
        clear_action: str = CLEAR_RELEASE,
    ) -> Dict[str, Any]:
        if team_id is None:
            team_id = self.repo.get_player(player_id)["team_id"]
        return self._call(
            "dfa", _dfa.designate_for_assignment, self.repo, caller, player_id, team_id, clear_action,
            now=self._now(), notifier=self.notifier,
        )

    def submit_claim(self, caller: Caller, player_id: str, team_id: Optional[str] = None) -> Dict[str, Any]:
        if team_id is None:
            team_id = resolve_single_team(self.repo, caller, self.repo.get_player(player_id)["league_id"])
        return self._call("submit_claim", _claims.submit_claim, self.repo, caller, player_id, team_id, now=self._now())

    def list_claims(self, player_id: str) -> List[Dict[str, Any]]:
        return self._call("list_claims", _claims.list_claims, self.repo, player_id)

    def resolve_waivers(self) -> List[Dict[str, Any]]:
        return self._call("resolve_waivers", _resolve.resolve_expired_waivers, self.repo, now=self._now(), notifier=self.notifier)

    def heal_waivers(self, league_id: str, feed: _resolve.WaiverFeed) -> List[str]:
        return self._call("heal_waivers", _resolve.heal_stale_waivers, self.repo, league_id, feed, now=self._now())

    # ----------------------------
    # (R) Roster moves
    # ----------------------------
    def promote_to_40(self, caller: Caller, player_id: str) -> Dict[str, Any]:
        return self._call("promote_40", _moves.promote_to_40, self.repo, caller, player_id, now=self._now())

    def promote_to_26(self, caller: Caller, player_id: str) -> Dict[str, Any]:
        return self._call("promote_26", _moves.promote_to_26, self.repo, caller, player_id, now=self._now())

    def option_to_minors(self, caller: Caller, player_id: str) -> Dict[str, Any]:
        return self._call("option", _moves.option_to_minors, self.repo, caller, player_id, now=self._now())

    def place_on_injured_list(self, caller: Caller, player_id: str, days: int) -> Dict[str, Any]:
        return self._call("place_il", _moves.place_on_injured_list, self.repo, caller, player_id, days, now=self._now())

    def activate_from_injured_list(self, caller: Caller, player_id: str) -> Dict[str, Any]:
        return self._call("activate_il", _moves.activate_from_injured_list, self.repo, caller, player_id, now=self._now())

    # ----------------------------
    # (T) Trades
    # ----------------------------
    def propose_trade(
        self,
        caller: Caller,
        proposing_team_id: str,
        receiving_team_id: str,
        *,
        offered_player_ids: Iterable[Any] = (),
        requested_player_ids: Iterable[Any] = (),
        isbp_offered: Any = 0,
        isbp_requested: Any = 0,
        retain_player_ids: Iterable[Any] = (),
    ) -> Dict[str, Any]:
        return self._call(
            "propose_trade",
            _trades.propose_trade,
            self.repo,
            caller,
            proposing_team_id,
            receiving_team_id,
            offered_player_ids=offered_player_ids,
            requested_player_ids=requested_player_ids,
            isbp_offered=isbp_offered,
            isbp_requested=isbp_requested,
            retain_player_ids=retain_player_ids,
            now=self._now(),
        )

    def counter_trade(
        self,
        caller: Caller,
        parent_trade_id: str,
        *,
        offered_player_ids: Iterable[Any] = (),
        requested_player_ids: Iterable[Any] = (),
        isbp_offered: Any = 0,
        isbp_requested: Any = 0,
        retain_player_ids: Iterable[Any] = (),
    ) -> Dict[str, Any]:
        return self._call(
            "counter_trade",
            _trades.counter_trade,
            self.repo,
            caller,
            parent_trade_id,
            offered_player_ids=offered_player_ids,
            requested_player_ids=requested_player_ids,
            isbp_offered=isbp_offered,
            isbp_requested=isbp_requested,
            retain_player_ids=retain_player_ids,
            now=self._now(),
        )

    def accept_trade(self, caller: Caller, trade_id: str) -> Dict[str, Any]:
        return self._call("accept_trade", _trades.accept_trade, self.repo, caller, trade_id, now=self._now(), notifier=self.notifier)

    def reject_trade(self, caller: Caller, trade_id: str) -> Dict[str, Any]:
        return self._call("reject_trade", _trades.reject_trade, self.repo, caller, trade_id, now=self._now())

    def reverse_trade(self, caller: Caller, trade_id: str) -> Dict[str, Any]:
        return self._call("reverse_trade", _trades.reverse_trade, self.repo, caller, trade_id, now=self._now(), notifier=self.notifier)

    def get_trade(self, trade_id: str) -> Dict[str, Any]:
        return self._call("get_trade", _trades.get_trade, self.repo, trade_id)

    def list_trades(self, league_id: str, *, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._call("list_trades", _trades.list_trades, self.repo, league_id, status=status)

    # ----------------------------
    # (C) Contracts, options, dead cap
    # ----------------------------
    def team_payroll(self, team_id: str, year: int) -> Dict[str, Any]:
        return self._call("team_payroll", _payroll.team_payroll, self.repo, team_id, int(year))

    def list_dead_cap(self, team_id: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._call("list_dead_cap", _payroll.list_dead_cap, self.repo, team_id, year)

    def add_dead_cap(
        self,
        caller: Caller,
        team_id: str,
        amount: float,
        year: int,
        note: str,
        *,
        player_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._call(
            "add_dead_cap", _payroll.add_dead_cap, self.repo, caller, team_id, amount, year, note,
            player_id=player_id, now=self._now(),
        )

    def delete_dead_cap(self, caller: Caller, penalty_id: int) -> Dict[str, Any]:
        return self._call("delete_dead_cap", _payroll.delete_dead_cap, self.repo, caller, penalty_id, now=self._now())

    def list_team_options(self, team_id: str, year: int) -> List[Dict[str, Any]]:
        return self._call("list_team_options", _options.list_team_options, self.repo, team_id, year)

    def exercise_option(self, caller: Caller, player_id: str, year: int) -> Dict[str, Any]:
        return self._call("exercise_option", _options.exercise_option, self.repo, caller, player_id, year, now=self._now())

    def decline_option(self, caller: Caller, player_id: str, year: int) -> Dict[str, Any]:
        return self._call("decline_option", _options.decline_option, self.repo, caller, player_id, year, now=self._now())

    def submit_arbitration(
        self,
        caller: Caller,
        player_id: str,
        year: int,
        amount: Optional[float] = None,
        *,
        decline: bool = False,
    ) -> Dict[str, Any]:
        return self._call(
            "submit_arbitration", _actions.submit_arbitration, self.repo, caller, player_id, year, amount,
            decline=decline, now=self._now(),
        )

    def submit_extension(self, caller: Caller, player_id: str, years: int, aav: float) -> Dict[str, Any]:
        return self._call("submit_extension", _actions.submit_extension, self.repo, caller, player_id, years, aav, now=self._now())

    def submit_restructure(self, caller: Caller, player_id: str, from_year: int, to_year: int, amount: float) -> Dict[str, Any]:
        return self._call(
            "submit_restructure", _actions.submit_restructure, self.repo, caller, player_id, from_year, to_year, amount,
            now=self._now(),
        )

    def process_action(self, caller: Caller, action_id: str, decision: str) -> Dict[str, Any]:
        return self._call("process_action", _actions.process_action, self.repo, caller, action_id, decision, now=self._now())

    def list_pending_actions(self, league_id: Optional[str] = None, status: Optional[str] = ACTION_PENDING) -> List[Dict[str, Any]]:
        return self._call("list_pending_actions", _actions.list_pending_actions, self.repo, league_id, status)

    # ----------------------------
    # (L) Calendar / settings
    # ----------------------------
    def set_league_date(self, caller: Caller, league_id: str, year: int, date_type: str, event_date: Any) -> Dict[str, Any]:
        return self._call(
            "set_league_date", _calendar.set_league_date, self.repo, caller, league_id, year, date_type, event_date,
            now=self._now(),
        )

    def set_league_settings(self, caller: Caller, league_id: str, year: int, values: Mapping[str, Any]) -> Dict[str, Any]:
        settings = self._call(
            "set_league_settings", _calendar.set_league_settings, self.repo, caller, league_id, year, values,
            now=self._now(),
        )
        return {"league_id": league_id, "year": int(year), **asdict(settings)}

    def league_settings(self, league_id: str, year: int) -> Dict[str, Any]:
        settings = self._call("league_settings", _calendar.get_league_settings, self.repo, league_id, int(year))
        return {"league_id": league_id, "year": int(year), **asdict(settings)}

    # ----------------------------
    # (S) Seasonal
    # ----------------------------
    def run_seasonal_resets(self, *, markers: Optional[RunMarkerStore] = None) -> List[Dict[str, Any]]:
        return self._call("seasonal", _seasonal.run_seasonal_resets, self.repo, markers=markers, now=self._now())

    # ----------------------------
    # (Q) Reads
    # ----------------------------
    def get_player(self, player_id: str) -> Dict[str, Any]:
        return self._call("get_player", self.repo.get_player, player_id)

    def list_players(
        self,
        *,
        league_id: Optional[str] = None,
        team_id: Optional[str] = None,
        fa_status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return self._call("list_players", self.repo.list_players, league_id=league_id, team_id=team_id, fa_status=fa_status)

    def team_roster(self, team_id: str) -> List[Dict[str, Any]]:
        self._call("get_team", self.repo.get_team, team_id)
        return self._call("team_roster", self.repo.get_team_roster, team_id)

    def my_teams(self, caller: Caller, league_id: str) -> List[str]:
        return self._call("my_teams", teams_owned_in_league, self.repo, caller, league_id)

    def list_transactions(
        self,
        *,
        league_id: Optional[str] = None,
        player_id: Optional[str] = None,
        tx_type: Optional[str] = None,
        limit: int = 200,
    ) -> List[Dict[str, Any]]:
        return self._call(
            "list_transactions", self.repo.list_transactions,
            limit=limit, league_id=league_id, player_id=player_id, tx_type=tx_type,
        )


def init_or_migrate_db(db_path: str) -> None:
    with LeagueService.open(db_path) as svc:
        svc.init_or_migrate_db()
