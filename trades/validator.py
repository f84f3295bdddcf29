from __future__ import annotations

import sqlite3
from datetime import date
from typing import Optional

from league_repo import LeagueRepo

from .models import Deal
from .rules import PHASE_PROPOSE, RuleRegistry, build_trade_context, validate_all


def validate_deal(
    repo: LeagueRepo,
    deal: Deal,
    current_date: date,
    *,
    phase: str = PHASE_PROPOSE,
    cur: Optional[sqlite3.Cursor] = None,
    registry: Optional[RuleRegistry] = None,
) -> None:
    """Run the rule registry for one phase. Pass the open cursor when called inside a transaction."""
    ctx = build_trade_context(repo, deal.league_id, current_date, phase=phase, cur=cur)
    validate_all(deal, ctx, registry)
