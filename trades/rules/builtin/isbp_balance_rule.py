from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from errors import INSUFFICIENT_ISBP, StateConflictError

from ...models import Deal
from ..base import PHASE_ACCEPT, PHASE_PROPOSE, TradeContext


@dataclass
class IsbpBalanceRule:
    """Each side must hold the ISBP it sends, at proposal and again at acceptance."""

    rule_id: str = "isbp_balance"
    priority: int = 40
    enabled: bool = True
    phases: Tuple[str, ...] = (PHASE_PROPOSE, PHASE_ACCEPT)

    def validate(self, deal: Deal, ctx: TradeContext) -> None:
        for team_id in deal.teams:
            sent = deal.isbp_sent(team_id)
            if sent <= 0:
                continue
            balance = int(ctx.team(team_id)["isbp_balance"] or 0)
            if balance < sent:
                raise StateConflictError(
                    INSUFFICIENT_ISBP,
                    "Insufficient ISBP balance for this trade",
                    {"team_id": team_id, "isbp_balance": balance, "isbp_sent": sent},
                )
