from __future__ import annotations

import datetime as _dt
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from config import DEFAULT_CLAIM_PRIORITY
from errors import DUPLICATE_CLAIM, INVALID_TEAM, OWN_PLAYER_CLAIM, PLAYER_NOT_ON_WAIVERS, StateConflictError
from identity import Caller, require_team_owner
from ledger_ops import load_player, log_transaction, player_label, team_label
from league_repo import LeagueRepo
from player_state import OnWaivers
from schema import CLAIM_PENDING, TX_WAIVERS, coerce_now, parse_iso, to_iso

logger = logging.getLogger(__name__)


def submit_claim(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    team_id: str,
    *,
    now: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    """Record a waiver claim. One pending claim per team per player.

    Every claim gets the same priority, so resolution falls back to
    submission order (first claim wins).
    """
    ts = coerce_now(now)
    with repo.transaction() as cur:
        require_team_owner(repo, caller, team_id, cur=cur)
        row, state = load_player(repo, player_id, cur=cur)
        if not isinstance(state, OnWaivers):
            raise StateConflictError(
                PLAYER_NOT_ON_WAIVERS,
                "Player is not on waivers",
                {"player_id": row["player_id"], "fa_status": row["fa_status"]},
            )
        end_time = parse_iso(state.end_time)
        if end_time is not None and end_time <= ts:
            raise StateConflictError(
                PLAYER_NOT_ON_WAIVERS,
                "Waiver period has ended",
                {"player_id": row["player_id"], "waiver_end_time": state.end_time},
            )
        team = repo.get_team(team_id, cur=cur)
        if team["league_id"] != row["league_id"]:
            raise StateConflictError(
                INVALID_TEAM,
                "Team is not in the player's league",
                {"team_id": team_id, "league_id": row["league_id"]},
            )
        if state.waiving_team_id == team_id:
            raise StateConflictError(OWN_PLAYER_CLAIM, "Cannot claim your own waived player", {"team_id": team_id})
        existing = [c for c in repo.list_waiver_claims(row["player_id"], status=CLAIM_PENDING, cur=cur) if c["team_id"] == team_id]
        if existing:
            raise StateConflictError(
                DUPLICATE_CLAIM,
                "Team already has a pending claim on this player",
                {"team_id": team_id, "claim_id": existing[0]["claim_id"]},
            )
        try:
            claim_id = repo.insert_waiver_claim(
                row["league_id"],
                team_id,
                row["player_id"],
                priority=DEFAULT_CLAIM_PRIORITY,
                created_at=to_iso(ts),
                cur=cur,
            )
        except sqlite3.IntegrityError:
            raise StateConflictError(
                DUPLICATE_CLAIM,
                "Team already has a pending claim on this player",
                {"team_id": team_id},
            ) from None
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_WAIVERS,
            league_id=row["league_id"],
            team_id=team_id,
            player_id=row["player_id"],
            summary=f"{team_label(repo, team_id, cur=cur)} submitted a waiver claim on {player_label(row)}",
            now=ts,
            status="PENDING",
            related_id=str(claim_id),
        )

    logger.info("waiver claim player=%s team=%s claim_id=%s", player_id, team_id, claim_id)
    return {"claim_id": claim_id, "player_id": row["player_id"], "team_id": team_id, "priority": DEFAULT_CLAIM_PRIORITY}


def list_claims(repo: LeagueRepo, player_id: str) -> List[Dict[str, Any]]:
    return repo.list_waiver_claims(player_id)
