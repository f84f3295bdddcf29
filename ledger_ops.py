"""In-transaction helpers shared by the engines.

Every function here takes the caller's open cursor; none of them opens or
commits a transaction.
"""

from __future__ import annotations

import datetime as _dt
import sqlite3
from typing import Any, Dict, List, Mapping, Optional, Tuple

from league_repo import LeagueRepo
from player_state import PlayerState, state_columns, state_from_row
from schema import TX_COMPLETED, make_log_id, to_iso


def load_player(repo: LeagueRepo, player_id: str, *, cur: sqlite3.Cursor) -> Tuple[Dict[str, Any], PlayerState]:
    row = repo.get_player(player_id, cur=cur)
    return row, state_from_row(row)


def write_player(
    repo: LeagueRepo,
    row: Mapping[str, Any],
    new_state: PlayerState,
    *,
    cur: sqlite3.Cursor,
    extra: Optional[Mapping[str, Any]] = None,
) -> int:
    """Persist a transition (all possession columns) plus any extra columns."""
    fields = state_columns(new_state)
    if extra:
        fields.update(extra)
    return repo.update_player(row["player_id"], fields, expected_version=int(row["version"]), cur=cur)


def roster_move_entry(move_type: str, team_id: Optional[str], now: _dt.datetime, **detail: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"type": move_type, "date": now.date().isoformat(), "team_id": team_id}
    entry.update(detail)
    return entry


def appended_moves(row: Mapping[str, Any], entry: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return list(row.get("roster_moves") or []) + [dict(entry)]


def log_transaction(
    repo: LeagueRepo,
    *,
    cur: sqlite3.Cursor,
    tx_type: str,
    league_id: Optional[str],
    summary: str,
    now: _dt.datetime,
    team_id: Optional[str] = None,
    player_id: Optional[str] = None,
    status: str = TX_COMPLETED,
    related_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    # Rows are keyed on the payload hash; log_id makes each event its own row.
    entry: Dict[str, Any] = {
        "type": tx_type,
        "log_id": make_log_id(),
        "date": to_iso(now),
        "league_id": league_id,
        "team_id": team_id,
        "player_id": player_id,
        "status": status,
        "summary": summary,
    }
    if related_id is not None:
        entry["related_id"] = related_id
    entry.update(extra)
    repo.insert_transactions([entry], cur=cur)
    return entry


def player_label(row: Mapping[str, Any]) -> str:
    return row.get("name") or str(row.get("player_id"))


def team_label(repo: LeagueRepo, team_id: Optional[str], *, cur: sqlite3.Cursor | None = None) -> str:
    if not team_id:
        return "Free Agency"
    team = repo.get_team(team_id, cur=cur)
    return team.get("abbreviation") or team.get("name") or str(team_id)
