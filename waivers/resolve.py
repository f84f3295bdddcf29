"""Waiver resolution (run by the waiver worker every two minutes) and heal.

Each expired player resolves in its own write transaction. The oldest pending
claim wins; claims all carry the same priority, so ties fall to insertion
order. With no claim the DFA clear action decides: ``minors`` outrights the
player to the waiving team, ``release`` charges DFA dead cap and returns the
player to free agency.
"""

from __future__ import annotations

import datetime as _dt
import logging
import sqlite3
from typing import Any, Callable, Dict, Iterable, List, Optional

from contracts.models import format_contract_map, parse_contract_map
from contracts.payroll import dfa_release_charges
from ledger_ops import load_player, log_transaction, player_label, team_label, write_player
from league_repo import LeagueRepo
from notifications import Notifier
from player_state import OnWaivers, award_claim, outright, release
from schema import (
    CLAIM_PENDING,
    CLAIM_PROCESSED,
    CLEAR_MINORS,
    DEAD_CAP_DFA_RELEASE,
    FA_ON_WAIVERS,
    NOTIFY_TRANSACTIONS,
    TX_DROP,
    TX_WAIVERS,
    coerce_now,
    parse_iso,
    to_iso,
)

logger = logging.getLogger(__name__)

# Returns the player ids the league feed still lists as on waivers.
WaiverFeed = Callable[[str], Iterable[str]]


def _release_with_dead_cap(repo: LeagueRepo, row: Dict[str, Any], state: OnWaivers, ts: _dt.datetime, cur: sqlite3.Cursor) -> List[Dict[str, Any]]:
    contract = parse_contract_map(row.get("contract"))
    charged = []
    for year, amount, pct in dfa_release_charges(contract, ts.year):
        penalty_id = repo.insert_dead_cap(
            team_id=state.waiving_team_id,
            player_id=row["player_id"],
            amount=amount,
            year=year,
            note=f"DFA Release ({pct * 100:.0f}%)",
            source=DEAD_CAP_DFA_RELEASE,
            created_at=to_iso(ts),
            cur=cur,
        )
        charged.append({"penalty_id": penalty_id, "year": year, "amount": amount})
    write_player(repo, row, release(state), cur=cur, extra={"contract": format_contract_map({})})
    return charged


def resolve_player(repo: LeagueRepo, player_id: str, *, now: Optional[_dt.datetime] = None) -> Optional[Dict[str, Any]]:
    """Resolve one expired waiver clock. Returns None if the player is no longer due."""
    ts = coerce_now(now)
    with repo.transaction() as cur:
        row, state = load_player(repo, player_id, cur=cur)
        if not isinstance(state, OnWaivers):
            return None
        end_time = parse_iso(state.end_time)
        if end_time is None or end_time > ts:
            return None

        claims = repo.list_waiver_claims(row["player_id"], status=CLAIM_PENDING, cur=cur)
        winner = claims[0] if claims else None
        waiving_name = team_label(repo, state.waiving_team_id, cur=cur)
        result: Dict[str, Any] = {
            "player_id": row["player_id"],
            "league_id": row["league_id"],
            "waiving_team_id": state.waiving_team_id,
            "claim_id": None,
            "team_id": None,
            "outcome": None,
            "dead_cap": [],
        }

        if winner is not None:
            write_player(repo, row, award_claim(state, team_id=winner["team_id"]), cur=cur)
            repo.set_claim_status(winner["claim_id"], CLAIM_PROCESSED, cur=cur)
            invalidated = repo.invalidate_pending_claims(row["player_id"], except_claim_id=winner["claim_id"], cur=cur)
            summary = f"{team_label(repo, winner['team_id'], cur=cur)} claimed {player_label(row)} off waivers from {waiving_name}"
            result.update(claim_id=winner["claim_id"], team_id=winner["team_id"], outcome="claimed", invalidated=invalidated)
            tx_type = TX_WAIVERS
            tx_team = winner["team_id"]
        elif state.clear_action == CLEAR_MINORS:
            write_player(repo, row, outright(state), cur=cur)
            summary = f"{player_label(row)} cleared waivers and was outrighted to the minors by {waiving_name}"
            result.update(team_id=state.waiving_team_id, outcome="outrighted")
            tx_type = TX_WAIVERS
            tx_team = state.waiving_team_id
        else:
            charged = _release_with_dead_cap(repo, row, state, ts, cur)
            summary = f"{player_label(row)} cleared waivers and was released by {waiving_name}"
            result.update(outcome="released", dead_cap=charged)
            tx_type = TX_DROP
            tx_team = state.waiving_team_id

        log_transaction(
            repo,
            cur=cur,
            tx_type=tx_type,
            league_id=row["league_id"],
            team_id=tx_team,
            player_id=row["player_id"],
            summary=summary,
            now=ts,
            related_id=str(winner["claim_id"]) if winner else None,
            outcome=result["outcome"],
        )
    result["summary"] = summary
    return result


def resolve_expired_waivers(
    repo: LeagueRepo,
    *,
    now: Optional[_dt.datetime] = None,
    notifier: Optional[Notifier] = None,
) -> List[Dict[str, Any]]:
    ts = coerce_now(now)
    due = repo.list_due_player_ids(FA_ON_WAIVERS, "waiver_end_time", to_iso(ts))
    results: List[Dict[str, Any]] = []
    for player_id in due:
        try:
            result = resolve_player(repo, player_id, now=ts)
        except Exception:
            logger.exception("waiver resolve failed player=%s; will retry next tick", player_id)
            continue
        if result is None:
            continue
        logger.info("waivers resolved player=%s outcome=%s team=%s", player_id, result["outcome"], result["team_id"])
        results.append(result)
        if notifier is not None:
            notifier.notify(result["league_id"], NOTIFY_TRANSACTIONS, result["summary"])
    return results


def heal_stale_waivers(
    repo: LeagueRepo,
    league_id: str,
    feed: WaiverFeed,
    *,
    now: Optional[_dt.datetime] = None,
) -> List[str]:
    """Release players we still hold on waivers that the league feed no longer lists.

    Repair pass for data migrated from the legacy site. No dead cap is charged
    and pending claims are invalidated. Running it again finds nothing to do.
    """
    ts = coerce_now(now)
    listed = {str(pid) for pid in feed(league_id)}
    candidates = [p["player_id"] for p in repo.list_players(league_id=league_id, fa_status=FA_ON_WAIVERS)]
    healed: List[str] = []
    for player_id in candidates:
        if player_id in listed:
            continue
        with repo.transaction() as cur:
            row, state = load_player(repo, player_id, cur=cur)
            if not isinstance(state, OnWaivers):
                continue
            write_player(repo, row, release(state), cur=cur)
            repo.invalidate_pending_claims(row["player_id"], cur=cur)
            log_transaction(
                repo,
                cur=cur,
                tx_type=TX_WAIVERS,
                league_id=row["league_id"],
                team_id=state.waiving_team_id,
                player_id=row["player_id"],
                summary=f"Stale waiver record cleared for {player_label(row)}",
                now=ts,
                outcome="healed",
            )
        healed.append(player_id)
    if healed:
        logger.warning("healed %d stale waiver record(s) league=%s", len(healed), league_id)
    return healed
