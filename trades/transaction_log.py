from __future__ import annotations

import datetime as _dt
import sqlite3
from typing import Any, Dict, Optional

from ledger_ops import log_transaction, player_label, team_label
from league_repo import LeagueRepo
from schema import TX_COMMISSIONER, TX_TRADE

from .models import Deal, serialize_deal


def trade_summary(repo: LeagueRepo, deal: Deal, *, cur: sqlite3.Cursor) -> str:
    """``"X sends a, b | Y sends c | X sends $N ISBP"``."""
    names = {t: team_label(repo, t, cur=cur) for t in deal.teams}
    parts = []
    for team_id in deal.teams:
        players = [player_label(repo.get_player(a.player_id, cur=cur)) for a in deal.legs.get(team_id, [])]
        if players:
            parts.append(f"{names[team_id]} sends {', '.join(players)}")
    for team_id in deal.teams:
        sent = deal.isbp_sent(team_id)
        if sent > 0:
            parts.append(f"{names[team_id]} sends ${sent:,} ISBP")
    return " | ".join(parts)


def append_trade_transaction(
    repo: LeagueRepo,
    deal: Deal,
    trade_id: str,
    *,
    cur: sqlite3.Cursor,
    now: _dt.datetime,
    extra_meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    summary = trade_summary(repo, deal, cur=cur)
    meta: Dict[str, Any] = {"deal": serialize_deal(deal)}
    if extra_meta:
        meta.update(extra_meta)
    return log_transaction(
        repo,
        cur=cur,
        tx_type=TX_TRADE,
        league_id=deal.league_id,
        team_id=deal.proposing_team_id,
        summary=summary,
        now=now,
        related_id=trade_id,
        meta=meta,
    )


def append_reversal_transaction(
    repo: LeagueRepo,
    deal: Deal,
    trade_id: str,
    *,
    cur: sqlite3.Cursor,
    now: _dt.datetime,
    reversed_by: str,
) -> Dict[str, Any]:
    return log_transaction(
        repo,
        cur=cur,
        tx_type=TX_COMMISSIONER,
        league_id=deal.league_id,
        team_id=deal.proposing_team_id,
        summary="Trade reversed by Commissioner",
        now=now,
        related_id=trade_id,
        reversed_by=reversed_by,
    )
