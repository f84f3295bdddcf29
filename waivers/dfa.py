from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, Optional

from config import WAIVER_WINDOW
from errors import INVALID_CLEAR_ACTION, INVALID_INPUT, ValidationError
from identity import Caller, require_team_owner
from ledger_ops import appended_moves, load_player, log_transaction, player_label, roster_move_entry, team_label, write_player
from league_repo import LeagueRepo
from notifications import Notifier
from player_state import designate
from schema import ALLOWED_CLEAR_ACTIONS, CLEAR_RELEASE, NOTIFY_TRANSACTIONS, TX_WAIVERS, coerce_now, normalize_team_id, to_iso

logger = logging.getLogger(__name__)


def designate_for_assignment(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    team_id: str,
    clear_action: str = CLEAR_RELEASE,
    *,
    now: Optional[_dt.datetime] = None,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    """Put a rostered player on a 48-hour waiver clock."""
    action = str(clear_action or CLEAR_RELEASE).strip().lower()
    if action not in ALLOWED_CLEAR_ACTIONS:
        raise ValidationError(
            INVALID_CLEAR_ACTION,
            "clear_action must be 'release' or 'minors'",
            {"clear_action": clear_action},
        )
    try:
        tid = str(normalize_team_id(team_id))
    except ValueError as exc:
        raise ValidationError(INVALID_INPUT, str(exc), {"team_id": team_id}) from None
    ts = coerce_now(now)
    end_time = ts + WAIVER_WINDOW

    with repo.transaction() as cur:
        require_team_owner(repo, caller, tid, cur=cur)
        row, state = load_player(repo, player_id, cur=cur)
        new_state = designate(state, team_id=tid, end_time=to_iso(end_time), clear_action=action)
        moves = appended_moves(row, roster_move_entry("DFA", tid, ts, clear_action=action))
        write_player(repo, row, new_state, cur=cur, extra={"roster_moves": moves})
        summary = f"{team_label(repo, tid, cur=cur)} designated {player_label(row)} for assignment"
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_WAIVERS,
            league_id=row["league_id"],
            team_id=tid,
            player_id=row["player_id"],
            summary=summary,
            now=ts,
            status="PENDING",
            clear_action=action,
        )

    logger.info("DFA player=%s team=%s clear_action=%s waiver_end=%s", player_id, tid, action, to_iso(end_time))
    if notifier is not None:
        notifier.notify(row["league_id"], NOTIFY_TRANSACTIONS, f"{summary}. Waivers end {to_iso(end_time)}.")
    return {
        "player_id": row["player_id"],
        "team_id": tid,
        "clear_action": action,
        "waiver_end_time": to_iso(end_time),
    }
