"""Team option decisions.

Exercising turns ``$x(TO)`` into a guaranteed ``$x``. Declining charges a 30%
buyout to the team as dead cap, clears the contract from the option year on and
releases the player to free agency. Both are refused after the league's
option deadline.
"""

from __future__ import annotations

import datetime as _dt
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from config import TEAM_OPTION_BUYOUT_PCT
from contracts.models import ContractMap, Fixed, TeamOption, format_contract_map, parse_contract_map, parse_term
from errors import DEADLINE_PASSED, ILLEGAL_TRANSITION, INVALID_INPUT, StateConflictError, ValidationError
from identity import Caller, require_owner_or_commissioner
from ledger_ops import load_player, log_transaction, player_label, team_label, write_player
from league_calendar import get_date
from league_repo import LeagueRepo
from player_state import PlayerState, release, team_of
from schema import DATE_OPTION_DEADLINE, DEAD_CAP_TEAM_OPTION, TX_TEAM_OPTION, coerce_now, to_iso

logger = logging.getLogger(__name__)


def list_team_options(repo: LeagueRepo, team_id: str, year: int) -> List[Dict[str, Any]]:
    out = []
    for p in repo.get_team_roster(team_id):
        term = parse_term((p.get("contract") or {}).get(str(year)))
        if isinstance(term, TeamOption):
            out.append(
                {
                    "player_id": p["player_id"],
                    "name": p["name"],
                    "team_id": team_id,
                    "year": int(year),
                    "salary": term.amount,
                    "buyout": round(term.amount * TEAM_OPTION_BUYOUT_PCT, 2),
                }
            )
    return out


def _check_deadline(repo: LeagueRepo, league_id: str, ts: _dt.datetime, cur: sqlite3.Cursor) -> None:
    deadline = get_date(repo, league_id, ts.year, DATE_OPTION_DEADLINE, cur=cur)
    if deadline is not None and ts.date() > deadline:
        raise StateConflictError(
            DEADLINE_PASSED,
            f"The option deadline has passed ({deadline.isoformat()})",
            {"league_id": league_id, "option_deadline": deadline.isoformat()},
        )


def _load_option(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    year: int,
    ts: _dt.datetime,
    cur: sqlite3.Cursor,
) -> Tuple[Dict[str, Any], PlayerState, str, ContractMap, TeamOption]:
    row, state = load_player(repo, player_id, cur=cur)
    team_id = team_of(state)
    if team_id is None:
        raise StateConflictError(ILLEGAL_TRANSITION, "Player is not under team control", {"player_id": row["player_id"]})
    require_owner_or_commissioner(repo, caller, team_id, row["league_id"], cur=cur)
    _check_deadline(repo, row["league_id"], ts, cur)
    contract = parse_contract_map(row.get("contract"))
    term = contract.get(year)
    if not isinstance(term, TeamOption):
        raise StateConflictError(
            ILLEGAL_TRANSITION,
            f"Player has no team option for {year}",
            {"player_id": row["player_id"], "year": year},
        )
    return row, state, team_id, contract, term


def _option_year(year: Any) -> int:
    try:
        return int(year)
    except (TypeError, ValueError):
        raise ValidationError(INVALID_INPUT, "year must be an integer", {"year": year}) from None


def exercise_option(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    year: int,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    year_i = _option_year(year)
    ts = coerce_now(now)
    with repo.transaction() as cur:
        row, state, team_id, contract, term = _load_option(repo, caller, player_id, year_i, ts, cur)
        contract[year_i] = Fixed(term.amount)
        write_player(repo, row, state, cur=cur, extra={"contract": format_contract_map(contract)})
        summary = f"{team_label(repo, team_id, cur=cur)} EXERCISED the {year_i} Team Option for {player_label(row)} (${term.amount:,.0f})."
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_TEAM_OPTION,
            league_id=row["league_id"],
            team_id=team_id,
            player_id=row["player_id"],
            summary=summary,
            now=ts,
            decision="exercise",
        )
    logger.info("team option exercised player=%s year=%s", player_id, year_i)
    return {"player_id": row["player_id"], "team_id": team_id, "year": year_i, "decision": "exercise", "salary": term.amount}


def decline_option(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    year: int,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    year_i = _option_year(year)
    ts = coerce_now(now)
    with repo.transaction() as cur:
        row, state, team_id, contract, term = _load_option(repo, caller, player_id, year_i, ts, cur)
        buyout = round(term.amount * TEAM_OPTION_BUYOUT_PCT, 2)
        penalty_id = repo.insert_dead_cap(
            team_id=team_id,
            player_id=row["player_id"],
            amount=buyout,
            year=year_i,
            note=f"Team Option Buyout ({TEAM_OPTION_BUYOUT_PCT * 100:.0f}%)",
            source=DEAD_CAP_TEAM_OPTION,
            created_at=to_iso(ts),
            cur=cur,
        )
        remaining = {y: t for y, t in contract.items() if y < year_i}
        write_player(repo, row, release(state), cur=cur, extra={"contract": format_contract_map(remaining)})
        repo.invalidate_pending_claims(row["player_id"], cur=cur)
        summary = (
            f"{team_label(repo, team_id, cur=cur)} DECLINED the {year_i} Team Option for {player_label(row)}. "
            f"Buyout: ${buyout:,.0f}. Player is now a Free Agent."
        )
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_TEAM_OPTION,
            league_id=row["league_id"],
            team_id=team_id,
            player_id=row["player_id"],
            summary=summary,
            now=ts,
            related_id=str(penalty_id),
            decision="decline",
        )
    logger.info("team option declined player=%s year=%s buyout=%.2f", player_id, year_i, buyout)
    return {
        "player_id": row["player_id"],
        "team_id": team_id,
        "year": year_i,
        "decision": "decline",
        "buyout": buyout,
        "penalty_id": penalty_id,
    }
