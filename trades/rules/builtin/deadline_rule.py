from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Tuple

from config import OFFSEASON_END, OFFSEASON_START
from errors import TRADE_WINDOW_CLOSED, StateConflictError
from league_calendar import get_date
from schema import DATE_TRADE_DEADLINE

from ...models import Deal
from ..base import PHASE_ACCEPT, PHASE_PROPOSE, TradeContext


def in_offseason(d: date) -> bool:
    """Oct 15 through Mar 15 (wrapping the new year)."""
    md = (d.month, d.day)
    return md >= OFFSEASON_START or md <= OFFSEASON_END


@dataclass
class DeadlineRule:
    rule_id: str = "deadline"
    priority: int = 15
    enabled: bool = True
    phases: Tuple[str, ...] = (PHASE_PROPOSE, PHASE_ACCEPT)

    def validate(self, deal: Deal, ctx: TradeContext) -> None:
        today = ctx.current_date
        if in_offseason(today):
            return
        deadline = get_date(ctx.repo, deal.league_id, today.year, DATE_TRADE_DEADLINE, cur=ctx.cur)
        if deadline is None:
            return
        if today > deadline:
            raise StateConflictError(
                TRADE_WINDOW_CLOSED,
                "Trade deadline has passed",
                {"current_date": today.isoformat(), "deadline": deadline.isoformat()},
            )
