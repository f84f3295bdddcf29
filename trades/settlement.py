"""Trade lifecycle: propose, counter, accept, reject and commissioner reversal.

Every mutation runs inside one ``repo.transaction()`` (BEGIN IMMEDIATE). Rules
are evaluated again at acceptance against rows read under the write lock, so
a player who was DFA'd or a balance that was spent since the proposal turns
into a StateConflictError instead of a half-applied trade.

Statuses::

    PROPOSED -> ACCEPTED -> REVERSED
    PROPOSED -> REJECTED
    PROPOSED -> COUNTERED   (a counter-offer replaced it)
"""

from __future__ import annotations

import datetime as _dt
import logging
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from contracts.models import Fixed, format_contract_map, parse_contract_map
from errors import (
    PLAYER_NOT_OWNED,
    TRADE_NOT_FOUND,
    TRADE_STATUS,
    NotFoundError,
    StateConflictError,
)
from identity import Caller, owns_team, require_commissioner, require_team_owner
from league_calendar import opening_day
from ledger_ops import load_player, roster_move_entry, appended_moves, write_player
from league_repo import LeagueRepo
from notifications import Notifier
from player_state import is_rostered, move_to_team, team_of
from schema import (
    DEAD_CAP_TRADE_RETENTION,
    NOTIFY_TRANSACTIONS,
    TRADE_ACCEPTED,
    TRADE_COUNTERED,
    TRADE_PROPOSED,
    TRADE_REJECTED,
    TRADE_REVERSED,
    coerce_now,
    make_trade_id,
    parse_iso,
    to_iso,
)

from .models import Deal, build_deal, deal_from_trade, serialize_deal, trade_items
from .retention import compute_retention, retention_pct
from .rules import PHASE_ACCEPT, PHASE_PROPOSE
from .transaction_log import append_reversal_transaction, append_trade_transaction, trade_summary
from .validator import validate_deal

logger = logging.getLogger(__name__)


def _load_trade(repo: LeagueRepo, trade_id: str, *, cur: sqlite3.Cursor | None = None) -> Dict[str, Any]:
    trade = repo.get_trade(trade_id, cur=cur)
    if trade is None:
        raise NotFoundError(TRADE_NOT_FOUND, "Trade not found", {"trade_id": trade_id})
    return trade


def _require_status(trade: Dict[str, Any], expected: str) -> None:
    if trade["status"] != expected:
        raise StateConflictError(
            TRADE_STATUS,
            f"Trade is not {expected.lower()}",
            {"trade_id": trade["trade_id"], "status": trade["status"], "expected": expected},
        )


def _persist_proposal(
    repo: LeagueRepo,
    deal: Deal,
    *,
    cur: sqlite3.Cursor,
    ts: _dt.datetime,
    parent_trade_id: Optional[str] = None,
) -> Dict[str, Any]:
    trade_id = make_trade_id()
    row = {
        "trade_id": trade_id,
        "league_id": deal.league_id,
        "proposing_team_id": deal.proposing_team_id,
        "receiving_team_id": deal.receiving_team_id,
        "status": TRADE_PROPOSED,
        "isbp_offered": deal.isbp_sent(deal.proposing_team_id),
        "isbp_requested": deal.isbp_sent(deal.receiving_team_id),
        "parent_trade_id": parent_trade_id,
        "created_at": to_iso(ts),
    }
    repo.insert_trade(row, trade_items(deal), cur=cur)
    return row


def propose_trade(
    repo: LeagueRepo,
    caller: Caller,
    proposing_team_id: str,
    receiving_team_id: str,
    *,
    offered_player_ids: Iterable[Any] = (),
    requested_player_ids: Iterable[Any] = (),
    isbp_offered: Any = 0,
    isbp_requested: Any = 0,
    retain_player_ids: Iterable[Any] = (),
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    ts = coerce_now(now)
    with repo.transaction() as cur:
        team = repo.get_team(proposing_team_id, cur=cur)
        require_team_owner(repo, caller, team["team_id"], cur=cur)
        deal = build_deal(
            team["league_id"],
            proposing_team_id,
            receiving_team_id,
            offered_player_ids=offered_player_ids,
            requested_player_ids=requested_player_ids,
            isbp_offered=isbp_offered,
            isbp_requested=isbp_requested,
            retain_player_ids=retain_player_ids,
        )
        validate_deal(repo, deal, ts.date(), phase=PHASE_PROPOSE, cur=cur)
        row = _persist_proposal(repo, deal, cur=cur, ts=ts)
        summary = trade_summary(repo, deal, cur=cur)
    logger.info("trade proposed trade=%s %s -> %s", row["trade_id"], deal.proposing_team_id, deal.receiving_team_id)
    return {"trade_id": row["trade_id"], "status": TRADE_PROPOSED, "summary": summary, "deal": serialize_deal(deal)}


def counter_trade(
    repo: LeagueRepo,
    caller: Caller,
    parent_trade_id: str,
    *,
    offered_player_ids: Iterable[Any] = (),
    requested_player_ids: Iterable[Any] = (),
    isbp_offered: Any = 0,
    isbp_requested: Any = 0,
    retain_player_ids: Iterable[Any] = (),
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    """Replace a proposal with a counter-offer from its receiving team.

    The counter swaps sides: the parent's receiver proposes, and
    ``offered_player_ids`` are the players the countering team sends.
    """
    ts = coerce_now(now)
    with repo.transaction() as cur:
        parent = _load_trade(repo, parent_trade_id, cur=cur)
        require_team_owner(repo, caller, parent["receiving_team_id"], cur=cur)
        _require_status(parent, TRADE_PROPOSED)
        deal = build_deal(
            parent["league_id"],
            parent["receiving_team_id"],
            parent["proposing_team_id"],
            offered_player_ids=offered_player_ids,
            requested_player_ids=requested_player_ids,
            isbp_offered=isbp_offered,
            isbp_requested=isbp_requested,
            retain_player_ids=retain_player_ids,
        )
        validate_deal(repo, deal, ts.date(), phase=PHASE_PROPOSE, cur=cur)
        repo.set_trade_status(parent["trade_id"], expected=TRADE_PROPOSED, new=TRADE_COUNTERED, cur=cur)
        row = _persist_proposal(repo, deal, cur=cur, ts=ts, parent_trade_id=parent["trade_id"])
        summary = trade_summary(repo, deal, cur=cur)
    logger.info("trade countered parent=%s trade=%s", parent_trade_id, row["trade_id"])
    return {
        "trade_id": row["trade_id"],
        "parent_trade_id": parent["trade_id"],
        "status": TRADE_PROPOSED,
        "summary": summary,
        "deal": serialize_deal(deal),
    }


def _apply_retention(
    repo: LeagueRepo,
    row: Dict[str, Any],
    *,
    sender_team_id: str,
    trade_id: str,
    pct: float,
    retain_salary: bool,
    ts: _dt.datetime,
    cur: sqlite3.Cursor,
) -> Optional[Dict[str, Any]]:
    """Cut this year's salary and charge the sender. Returns the penalty or None."""
    contract = parse_contract_map(row.get("contract"))
    term = contract.get(ts.year)
    if not isinstance(term, Fixed):
        return None
    retention = compute_retention(term.amount, pct, retain_salary=retain_salary)
    if retention is None:
        return None
    contract[ts.year] = Fixed(retention.new_salary)
    penalty_id = repo.insert_dead_cap(
        team_id=sender_team_id,
        player_id=row["player_id"],
        amount=retention.retained,
        year=ts.year,
        note=retention.note,
        source=DEAD_CAP_TRADE_RETENTION,
        trade_id=trade_id,
        created_at=to_iso(ts),
        cur=cur,
    )
    return {
        "penalty_id": penalty_id,
        "player_id": row["player_id"],
        "team_id": sender_team_id,
        "year": ts.year,
        "amount": retention.retained,
        "note": retention.note,
        "contract": format_contract_map(contract),
    }


def _transfer_isbp(repo: LeagueRepo, deltas: Dict[str, int], *, cur: sqlite3.Cursor) -> None:
    for team_id, delta in deltas.items():
        if delta == 0:
            continue
        team = repo.get_team(team_id, cur=cur)
        repo.update_team(
            team_id,
            {"isbp_balance": int(team["isbp_balance"] or 0) + delta},
            expected_version=int(team["version"]),
            cur=cur,
        )


def _isbp_deltas(deal: Deal, *, sign: int = 1) -> Dict[str, int]:
    deltas = {team_id: 0 for team_id in deal.teams}
    for team_id in deal.teams:
        sent = deal.isbp_sent(team_id)
        deltas[team_id] -= sign * sent
        deltas[deal.other_team(team_id)] += sign * sent
    return deltas


def accept_trade(
    repo: LeagueRepo,
    caller: Caller,
    trade_id: str,
    *,
    now: Optional[_dt.datetime] = None,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    ts = coerce_now(now)
    with repo.transaction() as cur:
        trade = _load_trade(repo, trade_id, cur=cur)
        require_team_owner(repo, caller, trade["receiving_team_id"], cur=cur)
        _require_status(trade, TRADE_PROPOSED)
        deal = deal_from_trade(trade)
        validate_deal(repo, deal, ts.date(), phase=PHASE_ACCEPT, cur=cur)

        pct = retention_pct(ts.date(), opening_day(repo, deal.league_id, ts.year, cur=cur))
        # The summary names players as they were before any write.
        summary = trade_summary(repo, deal, cur=cur)
        penalties: List[Dict[str, Any]] = []
        for sender_team_id in deal.teams:
            destination = deal.other_team(sender_team_id)
            for asset in deal.legs.get(sender_team_id, []):
                row, state = load_player(repo, asset.player_id, cur=cur)
                extra: Dict[str, Any] = {}
                penalty = _apply_retention(
                    repo,
                    row,
                    sender_team_id=sender_team_id,
                    trade_id=trade["trade_id"],
                    pct=pct,
                    retain_salary=asset.retain_salary,
                    ts=ts,
                    cur=cur,
                )
                if penalty is not None:
                    extra["contract"] = penalty.pop("contract")
                    penalties.append(penalty)
                extra["roster_moves"] = appended_moves(
                    row,
                    roster_move_entry("trade", destination, ts, from_team_id=sender_team_id, trade_id=trade["trade_id"]),
                )
                write_player(repo, row, move_to_team(state, team_id=destination), cur=cur, extra=extra)

        _transfer_isbp(repo, _isbp_deltas(deal), cur=cur)
        repo.set_trade_status(trade["trade_id"], expected=TRADE_PROPOSED, new=TRADE_ACCEPTED, cur=cur)
        countered = []
        for other_id in repo.trade_chain_ids(trade["trade_id"], cur=cur):
            if other_id == trade["trade_id"]:
                continue
            other = repo.get_trade(other_id, cur=cur)
            if other is not None and other["status"] == TRADE_PROPOSED:
                repo.set_trade_status(other_id, expected=TRADE_PROPOSED, new=TRADE_COUNTERED, cur=cur)
                countered.append(other_id)
        append_trade_transaction(
            repo,
            deal,
            trade["trade_id"],
            cur=cur,
            now=ts,
            extra_meta={"retention_pct": pct, "dead_cap": penalties},
        )

    logger.info("trade accepted trade=%s retention_pct=%.2f penalties=%d", trade_id, pct, len(penalties))
    if notifier is not None:
        notifier.notify(deal.league_id, NOTIFY_TRANSACTIONS, f"TRADE: {summary}")
    return {
        "trade_id": trade["trade_id"],
        "status": TRADE_ACCEPTED,
        "summary": summary,
        "retention_pct": pct,
        "dead_cap": penalties,
        "countered": countered,
    }


def reject_trade(repo: LeagueRepo, caller: Caller, trade_id: str, *, now: Optional[_dt.datetime] = None) -> Dict[str, Any]:
    """Receiving owner declines, or the proposing owner withdraws."""
    with repo.transaction() as cur:
        trade = _load_trade(repo, trade_id, cur=cur)
        if not owns_team(repo, caller, trade["proposing_team_id"], cur=cur):
            require_team_owner(repo, caller, trade["receiving_team_id"], cur=cur)
        _require_status(trade, TRADE_PROPOSED)
        repo.set_trade_status(trade["trade_id"], expected=TRADE_PROPOSED, new=TRADE_REJECTED, cur=cur)
    logger.info("trade rejected trade=%s by=%s", trade_id, caller.user_id)
    return {"trade_id": trade["trade_id"], "status": TRADE_REJECTED}


def _restore_salary(contract: Dict[int, Any], penalty: Dict[str, Any]) -> None:
    year = int(penalty["year"])
    term = contract.get(year)
    if isinstance(term, Fixed):
        contract[year] = Fixed(round(term.amount + float(penalty["amount"]), 2))
    else:
        logger.warning(
            "cannot restore retained salary player=%s year=%s term=%r",
            penalty.get("player_id"),
            year,
            term,
        )


def reverse_trade(
    repo: LeagueRepo,
    caller: Caller,
    trade_id: str,
    *,
    now: Optional[_dt.datetime] = None,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    """Commissioner undo of an accepted trade."""
    ts = coerce_now(now)
    with repo.transaction() as cur:
        trade = _load_trade(repo, trade_id, cur=cur)
        require_commissioner(repo, caller, trade["league_id"], cur=cur)
        _require_status(trade, TRADE_ACCEPTED)
        deal = deal_from_trade(trade)
        accepted_at = parse_iso(trade["created_at"])

        penalties = [
            p
            for p in repo.list_dead_cap(trade_id=trade["trade_id"], cur=cur)
            if p["source"] == DEAD_CAP_TRADE_RETENTION
            and (accepted_at is None or (parse_iso(p["created_at"]) or accepted_at) >= accepted_at)
        ]
        by_player: Dict[str, List[Dict[str, Any]]] = {}
        for p in penalties:
            if p.get("player_id"):
                by_player.setdefault(str(p["player_id"]), []).append(p)

        for sender_team_id in deal.teams:
            destination = deal.other_team(sender_team_id)
            for asset in deal.legs.get(sender_team_id, []):
                row, state = load_player(repo, asset.player_id, cur=cur)
                if not is_rostered(state) or team_of(state) != destination:
                    raise StateConflictError(
                        PLAYER_NOT_OWNED,
                        "Player is no longer on the receiving roster; reverse by hand",
                        {"player_id": asset.player_id, "team_id": destination, "current_team_id": row.get("team_id")},
                    )
                extra: Dict[str, Any] = {}
                if asset.player_id in by_player:
                    contract = parse_contract_map(row.get("contract"))
                    for p in by_player[asset.player_id]:
                        _restore_salary(contract, p)
                    extra["contract"] = format_contract_map(contract)
                extra["roster_moves"] = appended_moves(
                    row,
                    roster_move_entry("trade_reversed", sender_team_id, ts, from_team_id=destination, trade_id=trade["trade_id"]),
                )
                write_player(repo, row, move_to_team(state, team_id=sender_team_id), cur=cur, extra=extra)

        _transfer_isbp(repo, _isbp_deltas(deal, sign=-1), cur=cur)
        deleted = repo.delete_dead_cap([p["penalty_id"] for p in penalties], cur=cur)
        repo.set_trade_status(trade["trade_id"], expected=TRADE_ACCEPTED, new=TRADE_REVERSED, cur=cur)
        append_reversal_transaction(repo, deal, trade["trade_id"], cur=cur, now=ts, reversed_by=caller.user_id)

    logger.warning("trade reversed trade=%s by=%s dead_cap_deleted=%d", trade_id, caller.user_id, deleted)
    if notifier is not None:
        notifier.notify(deal.league_id, NOTIFY_TRANSACTIONS, "Trade reversed by Commissioner")
    return {"trade_id": trade["trade_id"], "status": TRADE_REVERSED, "dead_cap_deleted": deleted}


def get_trade(repo: LeagueRepo, trade_id: str) -> Dict[str, Any]:
    return _load_trade(repo, trade_id)


def list_trades(repo: LeagueRepo, league_id: str, *, status: Optional[str] = None) -> List[Dict[str, Any]]:
    return repo.list_trades(league_id, status=status)
