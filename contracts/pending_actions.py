"""Contract requests that need commissioner approval.

Owners submit arbitration salaries, extensions and restructures; nothing is
written to the contract until a commissioner approves the request. Approval
re-reads the contract and applies the change in the same transaction.
"""

from __future__ import annotations

import datetime as _dt
import logging
import math
import sqlite3
from typing import Any, Dict, List, Optional

from config import CONTRACT_FIRST_YEAR, CONTRACT_LAST_YEAR, MAX_EXTENSION_YEARS
from contracts.models import (
    Arbitration,
    ContractMap,
    Fixed,
    dollar_amount,
    format_contract_map,
    format_dollars,
    is_dollar_term,
    parse_contract_map,
    with_amount,
)
from errors import (
    ACTION_NOT_FOUND,
    ACTION_STATUS,
    DEADLINE_PASSED,
    ILLEGAL_TRANSITION,
    INVALID_INPUT,
    INVALID_YEARS,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from identity import Caller, require_commissioner, require_owner_or_commissioner
from ledger_ops import load_player, log_transaction, player_label, team_label, write_player
from league_calendar import get_date
from league_repo import LeagueRepo
from player_state import is_rostered, release, team_of
from schema import (
    ACTION_APPROVED,
    ACTION_ARBITRATION,
    ACTION_EXTENSION,
    ACTION_PENDING,
    ACTION_REJECTED,
    ACTION_RESTRUCTURE,
    DATE_EXTENSION_DEADLINE,
    TX_COMMISSIONER,
    TX_DROP,
    TX_ROSTER_MOVE,
    coerce_now,
    make_action_id,
    to_iso,
)

logger = logging.getLogger(__name__)

ALLOWED_DECISIONS = (ACTION_APPROVED, ACTION_REJECTED)


def _positive_amount(value: Any, field: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(INVALID_INPUT, f"{field} must be a number", {field: value}) from None
    if math.isnan(amount) or math.isinf(amount) or amount <= 0:
        raise ValidationError(INVALID_INPUT, f"{field} must be positive", {field: value})
    return amount


def _contract_year(value: Any, field: str = "year") -> int:
    try:
        year = int(value)
    except (TypeError, ValueError):
        raise ValidationError(INVALID_YEARS, f"{field} must be an integer", {field: value}) from None
    if not CONTRACT_FIRST_YEAR <= year <= CONTRACT_LAST_YEAR:
        raise ValidationError(
            INVALID_YEARS,
            f"{field} must be within {CONTRACT_FIRST_YEAR}-{CONTRACT_LAST_YEAR}",
            {field: value},
        )
    return year


def _load_owned(repo: LeagueRepo, caller: Caller, player_id: str, cur: sqlite3.Cursor):
    row, state = load_player(repo, player_id, cur=cur)
    if not is_rostered(state):
        raise StateConflictError(ILLEGAL_TRANSITION, "Player is not on a roster", {"player_id": row["player_id"]})
    team_id = team_of(state)
    require_owner_or_commissioner(repo, caller, team_id, row["league_id"], cur=cur)
    return row, state, team_id


def _create_action(
    repo: LeagueRepo,
    cur: sqlite3.Cursor,
    *,
    row: Dict[str, Any],
    team_id: str,
    action_type: str,
    summary: str,
    ts: _dt.datetime,
    target_year: Optional[int] = None,
    salary_amount: Optional[float] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    action = {
        "action_id": make_action_id(),
        "league_id": row["league_id"],
        "team_id": team_id,
        "player_id": row["player_id"],
        "action_type": action_type,
        "target_year": target_year,
        "salary_amount": salary_amount,
        "payload": payload or {},
        "summary": summary,
        "status": ACTION_PENDING,
        "created_at": to_iso(ts),
    }
    repo.insert_pending_action(action, cur=cur)
    log_transaction(
        repo,
        cur=cur,
        tx_type=TX_ROSTER_MOVE,
        league_id=row["league_id"],
        team_id=team_id,
        player_id=row["player_id"],
        summary=f"{team_label(repo, team_id, cur=cur)} submitted: {summary}",
        now=ts,
        status=ACTION_PENDING,
        related_id=action["action_id"],
    )
    return action


def submit_arbitration(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    year: int,
    amount: Optional[float] = None,
    *,
    decline: bool = False,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    """Submit an arbitration salary for approval, or decline arbitration (release)."""
    year_i = _contract_year(year)
    amount_f = None if decline else _positive_amount(amount, "amount")
    ts = coerce_now(now)

    with repo.transaction() as cur:
        row, state, team_id = _load_owned(repo, caller, player_id, cur)
        contract = parse_contract_map(row.get("contract"))
        if not isinstance(contract.get(year_i), Arbitration):
            raise StateConflictError(
                ILLEGAL_TRANSITION,
                f"Player is not arbitration-eligible in {year_i}",
                {"player_id": row["player_id"], "year": year_i},
            )

        if decline:
            write_player(repo, row, release(state), cur=cur)
            summary = f"{team_label(repo, team_id, cur=cur)} declined arbitration with {player_label(row)}. Player is now a Free Agent."
            log_transaction(
                repo,
                cur=cur,
                tx_type=TX_DROP,
                league_id=row["league_id"],
                team_id=team_id,
                player_id=row["player_id"],
                summary=summary,
                now=ts,
            )
            logger.info("arbitration declined player=%s team=%s", player_id, team_id)
            return {"player_id": row["player_id"], "team_id": team_id, "released": True}

        if repo.has_pending_action(row["player_id"], ACTION_ARBITRATION, year_i, cur=cur):
            raise StateConflictError(
                ACTION_STATUS,
                "An arbitration request is already pending for this player",
                {"player_id": row["player_id"], "year": year_i},
            )
        action = _create_action(
            repo,
            cur,
            row=row,
            team_id=team_id,
            action_type=ACTION_ARBITRATION,
            summary=f"Arbitration for {player_label(row)}: {format_dollars(amount_f)} in {year_i}",
            ts=ts,
            target_year=year_i,
            salary_amount=amount_f,
        )
    return {"action_id": action["action_id"], "status": ACTION_PENDING, "summary": action["summary"]}


def extension_years(contract: ContractMap, start_from: int, years: int) -> List[int]:
    """Years an extension of `years` would fill, starting at the first non-dollar year."""
    start = None
    for y in range(max(start_from, CONTRACT_FIRST_YEAR), CONTRACT_LAST_YEAR + 1):
        if not is_dollar_term(contract.get(y)):
            start = y
            break
    if start is None or start + years - 1 > CONTRACT_LAST_YEAR:
        raise ValidationError(
            INVALID_YEARS,
            "Not enough contract years available for this extension length",
            {"years": years, "start_year": start},
        )
    return list(range(start, start + years))


def submit_extension(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    years: int,
    aav: float,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    try:
        years_i = int(years)
    except (TypeError, ValueError):
        raise ValidationError(INVALID_YEARS, "years must be an integer", {"years": years}) from None
    if not 1 <= years_i <= MAX_EXTENSION_YEARS:
        raise ValidationError(INVALID_YEARS, f"years must be between 1 and {MAX_EXTENSION_YEARS}", {"years": years})
    aav_f = _positive_amount(aav, "aav")
    ts = coerce_now(now)

    with repo.transaction() as cur:
        row, _state, team_id = _load_owned(repo, caller, player_id, cur)
        deadline = get_date(repo, row["league_id"], ts.year, DATE_EXTENSION_DEADLINE, cur=cur)
        if deadline is not None and ts.date() > deadline:
            raise StateConflictError(
                DEADLINE_PASSED,
                f"The extension deadline has passed ({deadline.isoformat()})",
                {"extension_deadline": deadline.isoformat()},
            )
        contract = parse_contract_map(row.get("contract"))
        arb_left = sum(1 for y, t in contract.items() if y >= ts.year and isinstance(t, Arbitration))
        if arb_left > 1:
            raise StateConflictError(
                ILLEGAL_TRANSITION,
                f"Player has {arb_left} arbitration years remaining; players with more than 1 cannot be extended",
                {"player_id": row["player_id"], "arb_years": arb_left},
            )
        target = extension_years(contract, ts.year, years_i)
        summary = (
            f"Extension for {player_label(row)}: {years_i} years at {format_dollars(aav_f)} AAV "
            f"({target[0]}-{target[-1]})"
        )
        action = _create_action(
            repo,
            cur,
            row=row,
            team_id=team_id,
            action_type=ACTION_EXTENSION,
            summary=summary,
            ts=ts,
            target_year=target[0],
            salary_amount=aav_f,
            payload={"salaries": {str(y): aav_f for y in target}},
        )
    return {"action_id": action["action_id"], "status": ACTION_PENDING, "years": target, "summary": summary}


def submit_restructure(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    from_year: int,
    to_year: int,
    amount: float,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    """Request moving `amount` of salary from one guaranteed year to another."""
    src = _contract_year(from_year, "from_year")
    dst = _contract_year(to_year, "to_year")
    if src == dst:
        raise ValidationError(INVALID_YEARS, "from_year and to_year must differ", {"from_year": src, "to_year": dst})
    amount_f = _positive_amount(amount, "amount")
    ts = coerce_now(now)

    with repo.transaction() as cur:
        row, _state, team_id = _load_owned(repo, caller, player_id, cur)
        contract = parse_contract_map(row.get("contract"))
        _check_restructure(contract, src, dst, amount_f)
        summary = f"Restructure for {player_label(row)}: move {format_dollars(amount_f)} from {src} to {dst}"
        action = _create_action(
            repo,
            cur,
            row=row,
            team_id=team_id,
            action_type=ACTION_RESTRUCTURE,
            summary=summary,
            ts=ts,
            target_year=src,
            salary_amount=amount_f,
            payload={"from_year": src, "to_year": dst, "amount": amount_f},
        )
    return {"action_id": action["action_id"], "status": ACTION_PENDING, "summary": summary}


def _check_restructure(contract: ContractMap, src: int, dst: int, amount: float) -> None:
    src_amount = dollar_amount(contract.get(src))
    if src_amount is None or not is_dollar_term(contract.get(dst)):
        raise StateConflictError(
            ILLEGAL_TRANSITION,
            "Both years must carry a dollar salary",
            {"from_year": src, "to_year": dst},
        )
    if amount > src_amount:
        raise StateConflictError(
            ILLEGAL_TRANSITION,
            "Cannot move more than the source year's salary",
            {"from_year": src, "salary": src_amount, "amount": amount},
        )


def _apply_action(action: Dict[str, Any], contract: ContractMap) -> ContractMap:
    kind = action["action_type"]
    if kind == ACTION_ARBITRATION:
        contract[int(action["target_year"])] = Fixed(float(action["salary_amount"]))
    elif kind == ACTION_EXTENSION:
        for year, amount in (action["payload"].get("salaries") or {}).items():
            contract[int(year)] = Fixed(float(amount))
    elif kind == ACTION_RESTRUCTURE:
        data = action["payload"]
        src, dst, amount = int(data["from_year"]), int(data["to_year"]), float(data["amount"])
        _check_restructure(contract, src, dst, amount)
        contract[src] = with_amount(contract[src], dollar_amount(contract[src]) - amount)
        contract[dst] = with_amount(contract[dst], dollar_amount(contract[dst]) + amount)
    else:
        raise ValueError(f"unknown action type {kind!r}")
    return contract


def process_action(
    repo: LeagueRepo,
    caller: Caller,
    action_id: str,
    decision: str,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    """Commissioner approval or rejection of a pending request."""
    status = str(decision or "").strip().upper()
    if status not in ALLOWED_DECISIONS:
        raise ValidationError(INVALID_INPUT, "decision must be APPROVED or REJECTED", {"decision": decision})
    ts = coerce_now(now)

    with repo.transaction() as cur:
        action = repo.get_pending_action(action_id, cur=cur)
        if action is None:
            raise NotFoundError(ACTION_NOT_FOUND, "Pending action not found", {"action_id": action_id})
        require_commissioner(repo, caller, action["league_id"], cur=cur)
        if action["status"] != ACTION_PENDING:
            raise StateConflictError(
                ACTION_STATUS,
                "Action has already been processed",
                {"action_id": action_id, "status": action["status"]},
            )
        if status == ACTION_APPROVED and action.get("player_id"):
            row, state = load_player(repo, action["player_id"], cur=cur)
            contract = _apply_action(action, parse_contract_map(row.get("contract")))
            write_player(repo, row, state, cur=cur, extra={"contract": format_contract_map(contract)})
        repo.set_pending_action_status(action_id, expected=ACTION_PENDING, new=status, cur=cur)
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_COMMISSIONER,
            league_id=action["league_id"],
            team_id=action["team_id"],
            player_id=action.get("player_id"),
            summary=f"Commissioner {status.lower()} {action['action_type'].lower()}: {action.get('summary') or ''}",
            now=ts,
            related_id=action_id,
        )
    logger.info("pending action %s %s type=%s", action_id, status, action["action_type"])
    return {"action_id": action_id, "status": status, "action_type": action["action_type"]}


def list_pending_actions(repo: LeagueRepo, league_id: Optional[str] = None, status: Optional[str] = ACTION_PENDING) -> List[Dict[str, Any]]:
    return repo.list_pending_actions(league_id=league_id, status=status)
