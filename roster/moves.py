"""Roster moves: promote to 40/26, option, IL placement/activation.

Each move runs in one write transaction: ownership check, compliance check,
state transition, roster-move note and activity-log row.
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Callable, Dict, Optional

from errors import INVALID_INPUT, PLAYER_NOT_ROSTERED, StateConflictError, ValidationError
from identity import Caller, require_team_owner
from ledger_ops import appended_moves, load_player, log_transaction, player_label, roster_move_entry, write_player
from league_calendar import get_league_settings
from league_repo import LeagueRepo
from player_state import (
    PlayerState,
    activate_from_il,
    on_40,
    option,
    place_on_il,
    promote_26,
    promote_40,
    team_of,
)
from roster.compliance import check_promote_26, check_promote_40, count_roster, is_starting_pitcher
from schema import TX_ROSTER_MOVE, coerce_now

logger = logging.getLogger(__name__)

IL_DURATIONS = (7, 10, 15, 60)


def il_label(days: int) -> str:
    return f"{int(days)}-Day IL"


def _run_move(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    *,
    move_type: str,
    now: Optional[_dt.datetime],
    apply: Callable[[Dict[str, Any], PlayerState, Any], tuple],
) -> Dict[str, Any]:
    ts = coerce_now(now)
    with repo.transaction() as cur:
        row, state = load_player(repo, player_id, cur=cur)
        team_id = team_of(state)
        if team_id is None:
            raise StateConflictError(PLAYER_NOT_ROSTERED, "Player is not on a roster", {"player_id": row["player_id"]})
        require_team_owner(repo, caller, team_id, cur=cur)
        new_state, extra, summary = apply(row, state, cur)
        moves = appended_moves(row, roster_move_entry(move_type, team_id, ts))
        fields = dict(extra)
        fields["roster_moves"] = moves
        write_player(repo, row, new_state, cur=cur, extra=fields)
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_ROSTER_MOVE,
            league_id=row["league_id"],
            team_id=team_id,
            player_id=row["player_id"],
            summary=summary,
            now=ts,
            move=move_type,
        )
    logger.info("roster move %s player=%s team=%s", move_type, player_id, team_id)
    return {"player_id": row["player_id"], "team_id": team_id, "move": move_type, "state": type(new_state).__name__}


def promote_to_40(repo: LeagueRepo, caller: Caller, player_id: str, *, now: Optional[_dt.datetime] = None) -> Dict[str, Any]:
    ts = coerce_now(now)

    def _apply(row, state, cur):
        new_state = promote_40(state)
        limits = get_league_settings(repo, row["league_id"], ts.year, cur=cur)
        counts = count_roster(repo.get_team_roster(new_state.team_id, cur=cur))
        check_promote_40(counts, limits)
        return new_state, {}, f"{player_label(row)} added to the 40-man roster"

    return _run_move(repo, caller, player_id, move_type="PROMOTE_40", now=ts, apply=_apply)


def promote_to_26(repo: LeagueRepo, caller: Caller, player_id: str, *, now: Optional[_dt.datetime] = None) -> Dict[str, Any]:
    ts = coerce_now(now)

    def _apply(row, state, cur):
        new_state = promote_26(state)
        limits = get_league_settings(repo, row["league_id"], ts.year, cur=cur)
        counts = count_roster(repo.get_team_roster(new_state.team_id, cur=cur))
        check_promote_26(
            counts,
            limits,
            player_on_40=on_40(state),
            player_is_sp=is_starting_pitcher(row.get("position")),
        )
        return new_state, {}, f"{player_label(row)} promoted to the 26-man roster"

    return _run_move(repo, caller, player_id, move_type="PROMOTE_26", now=ts, apply=_apply)


def option_to_minors(repo: LeagueRepo, caller: Caller, player_id: str, *, now: Optional[_dt.datetime] = None) -> Dict[str, Any]:
    def _apply(row, state, cur):
        new_state = option(state)
        used = int(row.get("option_years_used") or 0) + 1
        return new_state, {"option_years_used": used}, f"{player_label(row)} optioned to the minors (option year {used})"

    return _run_move(repo, caller, player_id, move_type="OPTION", now=now, apply=_apply)


def place_on_injured_list(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    days: int,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    try:
        days_i = int(days)
    except (TypeError, ValueError, OverflowError):
        days_i = None
    if days_i not in IL_DURATIONS:
        raise ValidationError(INVALID_INPUT, "Unsupported IL duration", {"days": days, "allowed": list(IL_DURATIONS)})
    ts = coerce_now(now)
    label = il_label(days_i)

    def _apply(row, state, cur):
        new_state = place_on_il(state, label=label, start_date=ts.date().isoformat(), sixty_day=days_i == 60)
        return new_state, {}, f"{player_label(row)} placed on the {label}"

    return _run_move(repo, caller, player_id, move_type="IL", now=ts, apply=_apply)


def activate_from_injured_list(repo: LeagueRepo, caller: Caller, player_id: str, *, now: Optional[_dt.datetime] = None) -> Dict[str, Any]:
    def _apply(row, state, cur):
        new_state = activate_from_il(state)
        return new_state, {}, f"{player_label(row)} activated from the {row.get('status_il')}"

    return _run_move(repo, caller, player_id, move_type="ACTIVATE_IL", now=now, apply=_apply)
