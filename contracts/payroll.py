"""Payroll totals and dead cap.

Dead cap counts toward a team's total payroll for luxury-tax comparison but
never toward its active payroll.
"""

from __future__ import annotations

import datetime as _dt
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from config import CONTRACT_FIRST_YEAR, CONTRACT_LAST_YEAR, DFA_CURRENT_YEAR_DEAD_CAP_PCT, DFA_FUTURE_YEAR_DEAD_CAP_PCT
from contracts.models import ContractTerm, Fixed, dollar_amount, parse_term
from errors import INVALID_INPUT, PENALTY_NOT_FOUND, NotFoundError, ValidationError
from identity import Caller, require_commissioner
from ledger_ops import log_transaction, team_label
from league_calendar import get_league_settings
from league_repo import LeagueRepo
from schema import DEAD_CAP_ADMIN, TX_COMMISSIONER, coerce_now, to_iso

logger = logging.getLogger(__name__)


def dfa_release_charges(contract: Mapping[int, ContractTerm], current_year: int) -> List[Tuple[int, float, float]]:
    """(year, amount, pct) charged to the waiving team when a DFA'd player is released.

    Current year at 75%, each later guaranteed year at 50%. Past years, option
    years and non-dollar years are not charged.
    """
    charges: List[Tuple[int, float, float]] = []
    for year in sorted(contract):
        if year < current_year:
            continue
        term = contract[year]
        if not isinstance(term, Fixed) or term.amount <= 0:
            continue
        pct = DFA_CURRENT_YEAR_DEAD_CAP_PCT if year == current_year else DFA_FUTURE_YEAR_DEAD_CAP_PCT
        charges.append((year, round(term.amount * pct, 2), pct))
    return charges


def team_payroll(repo: LeagueRepo, team_id: str, year: int) -> Dict[str, Any]:
    team = repo.get_team(team_id)
    active = 0.0
    for p in repo.get_team_roster(team["team_id"]):
        amount = dollar_amount(_term_for_year(p, year))
        if amount is not None:
            active += amount
    dead = sum(float(d["amount"]) for d in repo.list_dead_cap(team_id=team["team_id"], year=year))
    limit = get_league_settings(repo, team["league_id"], year).luxury_tax_limit
    total = active + dead
    return {
        "team_id": team["team_id"],
        "year": int(year),
        "active_payroll": round(active, 2),
        "dead_cap": round(dead, 2),
        "total_payroll": round(total, 2),
        "luxury_tax_limit": limit,
        # Only meaningful when the league has configured a limit.
        "tax_space": round(limit - total, 2) if limit > 0 else None,
    }


def _term_for_year(player: Mapping[str, Any], year: int) -> Optional[ContractTerm]:
    raw = (player.get("contract") or {}).get(str(year))
    return parse_term(raw)


def list_dead_cap(repo: LeagueRepo, team_id: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
    return repo.list_dead_cap(team_id=team_id, year=year)


def add_dead_cap(
    repo: LeagueRepo,
    caller: Caller,
    team_id: str,
    amount: float,
    year: int,
    note: str,
    *,
    player_id: Optional[str] = None,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    """Commissioner-entered dead cap (manual adjustments)."""
    try:
        amount_f = float(amount)
        year_i = int(year)
    except (TypeError, ValueError):
        raise ValidationError(INVALID_INPUT, "amount and year must be numeric", {"amount": amount, "year": year}) from None
    if math.isnan(amount_f) or math.isinf(amount_f) or amount_f <= 0:
        raise ValidationError(INVALID_INPUT, "amount must be positive", {"amount": amount})
    if not CONTRACT_FIRST_YEAR <= year_i <= CONTRACT_LAST_YEAR:
        raise ValidationError(INVALID_INPUT, "year out of range", {"year": year})
    ts = coerce_now(now)
    note_s = str(note or "").strip() or "Commissioner Adjustment"

    with repo.transaction() as cur:
        team = repo.get_team(team_id, cur=cur)
        require_commissioner(repo, caller, team["league_id"], cur=cur)
        if player_id:
            repo.get_player(player_id, cur=cur)
        penalty_id = repo.insert_dead_cap(
            team_id=team["team_id"],
            player_id=player_id,
            amount=amount_f,
            year=year_i,
            note=note_s,
            source=DEAD_CAP_ADMIN,
            created_at=to_iso(ts),
            cur=cur,
        )
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_COMMISSIONER,
            league_id=team["league_id"],
            team_id=team["team_id"],
            player_id=player_id,
            summary=f"Commissioner added ${amount_f:,.0f} dead cap to {team_label(repo, team['team_id'], cur=cur)} for {year_i} ({note_s})",
            now=ts,
            related_id=str(penalty_id),
        )
    logger.info("dead cap added team=%s year=%s amount=%.2f id=%s", team_id, year_i, amount_f, penalty_id)
    return {"penalty_id": penalty_id, "team_id": team["team_id"], "amount": amount_f, "year": year_i, "note": note_s}


def delete_dead_cap(repo: LeagueRepo, caller: Caller, penalty_id: int, *, now: Optional[_dt.datetime] = None) -> Dict[str, Any]:
    ts = coerce_now(now)
    with repo.transaction() as cur:
        penalty = repo.get_dead_cap(penalty_id, cur=cur)
        if penalty is None:
            raise NotFoundError(PENALTY_NOT_FOUND, "Dead cap penalty not found", {"penalty_id": penalty_id})
        team = repo.get_team(penalty["team_id"], cur=cur)
        require_commissioner(repo, caller, team["league_id"], cur=cur)
        repo.delete_dead_cap([penalty["penalty_id"]], cur=cur)
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_COMMISSIONER,
            league_id=team["league_id"],
            team_id=team["team_id"],
            player_id=penalty.get("player_id"),
            summary=f"Commissioner removed ${float(penalty['amount']):,.0f} dead cap ({penalty.get('note') or ''}) from {team_label(repo, team['team_id'], cur=cur)}",
            now=ts,
            related_id=str(penalty["penalty_id"]),
        )
    return {"penalty_id": penalty["penalty_id"], "deleted": True}
