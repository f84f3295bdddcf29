"""Auction finalization (run by the auction worker every minute).

Each due player is finalized in its own write transaction. A failure rolls
back that player only; it stays ``pending_bid`` and is retried next tick.
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, List, Optional

from config import CONTRACT_FIRST_YEAR, CONTRACT_LAST_YEAR
from contracts.models import Fixed, format_contract_map, parse_contract_map
from ledger_ops import load_player, log_transaction, player_label, team_label, write_player
from league_repo import LeagueRepo
from notifications import Notifier
from player_state import PendingBid, sign
from schema import BID_IFA, FA_PENDING_BID, NOTIFY_TRANSACTIONS, TX_ADD, coerce_now, parse_iso, to_iso

logger = logging.getLogger(__name__)


def finalize_player(repo: LeagueRepo, player_id: str, *, now: Optional[_dt.datetime] = None) -> Optional[Dict[str, Any]]:
    """Award one expired auction. Returns None if the player is no longer due."""
    ts = coerce_now(now)
    with repo.transaction() as cur:
        row, state = load_player(repo, player_id, cur=cur)
        # Re-check under the write lock: a newer bid may have landed since the scan.
        if not isinstance(state, PendingBid):
            return None
        end_time = parse_iso(state.end_time)
        if end_time is None or end_time > ts:
            return None

        team = repo.get_team(state.team_id, cur=cur)
        new_state = sign(state)
        extra: Dict[str, Any] = {}
        if state.bid_type == BID_IFA:
            # Bonus-pool draw, not a salary: no contract value is written.
            debit = int(round(state.aav))
            repo.update_team(
                team["team_id"],
                {"isbp_balance": int(team["isbp_balance"]) - debit},
                expected_version=int(team["version"]),
                cur=cur,
            )
            extra["is_ifa"] = False
        else:
            if CONTRACT_FIRST_YEAR <= ts.year <= CONTRACT_LAST_YEAR:
                contract = parse_contract_map(row.get("contract"))
                contract[ts.year] = Fixed(state.aav)
                extra["contract"] = format_contract_map(contract)
            else:
                logger.warning("season %s outside contract years; salary not written player=%s", ts.year, player_id)
        write_player(repo, row, new_state, cur=cur, extra=extra)

        team_name = team_label(repo, state.team_id, cur=cur)
        summary = f"{team_name} signed {player_label(row)} ({state.years} years @ ${state.aav:,.0f})"
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_ADD,
            league_id=row["league_id"],
            team_id=state.team_id,
            player_id=row["player_id"],
            summary=summary,
            now=ts,
            bid_type=state.bid_type,
            points=state.points,
        )

    return {
        "player_id": row["player_id"],
        "league_id": row["league_id"],
        "team_id": state.team_id,
        "bid_type": state.bid_type,
        "aav": state.aav,
        "years": state.years,
        "summary": summary,
    }


def finalize_expired_auctions(
    repo: LeagueRepo,
    *,
    now: Optional[_dt.datetime] = None,
    notifier: Optional[Notifier] = None,
) -> List[Dict[str, Any]]:
    ts = coerce_now(now)
    due = repo.list_due_player_ids(FA_PENDING_BID, "bid_end_time", to_iso(ts))
    results: List[Dict[str, Any]] = []
    for player_id in due:
        try:
            result = finalize_player(repo, player_id, now=ts)
        except Exception:
            logger.exception("auction finalize failed player=%s; will retry next tick", player_id)
            continue
        if result is None:
            continue
        logger.info("auction finalized player=%s team=%s type=%s", player_id, result["team_id"], result["bid_type"])
        results.append(result)
        if notifier is not None:
            notifier.notify(result["league_id"], NOTIFY_TRANSACTIONS, f"Auction complete: {result['summary']}")
    return results
