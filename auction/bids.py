"""Free-agent bid submission.

A bid is a reservation: it moves the player to ``pending_bid`` and records the
bidder, but no roster or contract change happens until the auction worker
finalizes the player after ``bid_end_time``.
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, List, Optional

from auction.points import outbids, validate_bid_terms
from config import BID_WINDOW, MIN_OUTBID_POINTS
from errors import BID_TOO_LOW, INSUFFICIENT_ISBP, WINDOW_CLOSED, StateConflictError
from identity import Caller, resolve_single_team
from ledger_ops import load_player, log_transaction, player_label, team_label, write_player
from league_calendar import is_window_open
from league_repo import LeagueRepo
from notifications import Notifier
from player_state import PendingBid, place_bid
from schema import (
    BID_IFA,
    BID_STANDARD,
    DATE_IFA_CLOSE,
    DATE_IFA_OPEN,
    DATE_MILB_FA_CLOSE,
    DATE_MILB_FA_OPEN,
    NOTIFY_TRANSACTIONS,
    TX_BID,
    coerce_now,
    to_iso,
)

logger = logging.getLogger(__name__)


def is_milb_free_agent(player: Dict[str, Any]) -> bool:
    text = str(player.get("fa_class") or "").lower().replace(" ", "")
    return "milb" in text or "minorleague" in text


def _check_windows(repo: LeagueRepo, player: Dict[str, Any], now: _dt.datetime, cur) -> None:
    checks = []
    if player.get("is_ifa"):
        checks.append(("IFA signing", DATE_IFA_OPEN, DATE_IFA_CLOSE))
    if is_milb_free_agent(player):
        checks.append(("MiLB free agency", DATE_MILB_FA_OPEN, DATE_MILB_FA_CLOSE))
    for label, open_type, close_type in checks:
        is_open, reason = is_window_open(repo, player["league_id"], now.year, open_type, close_type, now.date(), cur=cur)
        if not is_open:
            raise StateConflictError(
                WINDOW_CLOSED,
                f"The {label} window is closed",
                {"player_id": player["player_id"], "reason": reason},
            )


def submit_bid(
    repo: LeagueRepo,
    caller: Caller,
    player_id: str,
    years: int,
    aav: float,
    *,
    now: Optional[_dt.datetime] = None,
    notifier: Optional[Notifier] = None,
) -> Dict[str, Any]:
    """Place (or raise) a bid on a free agent. Returns the recorded bid."""
    points = validate_bid_terms(years, aav)
    years_i = int(float(years))
    aav_f = float(aav)
    ts = coerce_now(now)
    end_time = ts + BID_WINDOW

    with repo.transaction() as cur:
        row, state = load_player(repo, player_id, cur=cur)
        team_id = resolve_single_team(repo, caller, row["league_id"], cur=cur)
        _check_windows(repo, row, ts, cur)

        if isinstance(state, PendingBid) and not outbids(points, state.points, increment=MIN_OUTBID_POINTS):
            raise StateConflictError(
                BID_TOO_LOW,
                f"Bid too low. Must beat current bid by at least {MIN_OUTBID_POINTS:g} point.",
                {
                    "player_id": row["player_id"],
                    "current_points": state.points,
                    "current_team_id": state.team_id,
                    "required_points": round(state.points + MIN_OUTBID_POINTS, 6),
                    "offered_points": points,
                },
            )

        bid_type = BID_IFA if row.get("is_ifa") else BID_STANDARD
        team = repo.get_team(team_id, cur=cur)
        if bid_type == BID_IFA and int(team["isbp_balance"]) < aav_f:
            raise StateConflictError(
                INSUFFICIENT_ISBP,
                "Insufficient ISBP balance for this bid",
                {"team_id": team_id, "isbp_balance": team["isbp_balance"], "aav": aav_f},
            )

        new_state = place_bid(
            state,
            team_id=team_id,
            manager_id=caller.user_id,
            points=points,
            years=years_i,
            aav=aav_f,
            start_time=to_iso(ts),
            end_time=to_iso(end_time),
            bid_type=bid_type,
        )
        bid_entry = {
            "team_id": team_id,
            "manager_id": caller.user_id,
            "points": points,
            "years": years_i,
            "aav": aav_f,
            "bid_type": bid_type,
            "timestamp": to_iso(ts),
        }
        history = list(row.get("bid_history") or []) + [bid_entry]
        write_player(repo, row, new_state, cur=cur, extra={"bid_history": history})

        team_name = team_label(repo, team_id, cur=cur)
        summary = (
            f"{team_name} bid {points:.2f} points on {player_label(row)} "
            f"({years_i} years @ ${aav_f:,.0f} AAV)"
        )
        log_transaction(
            repo,
            cur=cur,
            tx_type=TX_BID,
            league_id=row["league_id"],
            team_id=team_id,
            player_id=row["player_id"],
            summary=summary,
            now=ts,
            status="PENDING",
            points=points,
        )

    logger.info("bid accepted player=%s team=%s points=%.2f ends=%s", player_id, team_id, points, to_iso(end_time))
    if notifier is not None:
        notifier.notify(row["league_id"], NOTIFY_TRANSACTIONS, f"New Bid! {summary}. Auction ends in 24 hours.")

    return {
        "player_id": row["player_id"],
        "team_id": team_id,
        "points": points,
        "years": years_i,
        "aav": aav_f,
        "bid_type": bid_type,
        "bid_end_time": to_iso(end_time),
    }


def get_bid_history(repo: LeagueRepo, player_id: str) -> List[Dict[str, Any]]:
    return list(repo.get_player(player_id).get("bid_history") or [])


def list_pending_auctions(repo: LeagueRepo, league_id: str) -> List[Dict[str, Any]]:
    out = []
    for p in repo.list_players(league_id=league_id, fa_status="pending_bid"):
        out.append(
            {
                "player_id": p["player_id"],
                "name": p["name"],
                "team_id": p["pending_bid_team_id"],
                "points": p["pending_bid_amount"],
                "years": p["pending_bid_years"],
                "aav": p["pending_bid_aav"],
                "bid_type": p["bid_type"],
                "bid_end_time": p["bid_end_time"],
            }
        )
    out.sort(key=lambda x: x["bid_end_time"] or "")
    return out
