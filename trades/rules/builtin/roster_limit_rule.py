from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from player_state import on_40, state_from_row
from roster.compliance import check_40_after_trade, count_roster

from ...models import Deal
from ..base import PHASE_ACCEPT, PHASE_PROPOSE, TradeContext, build_player_moves


@dataclass
class RosterLimitRule:
    rule_id: str = "roster_limit"
    priority: int = 60
    enabled: bool = True
    phases: Tuple[str, ...] = (PHASE_PROPOSE, PHASE_ACCEPT)

    def validate(self, deal: Deal, ctx: TradeContext) -> None:
        players_out, players_in = build_player_moves(deal)

        def _count_40(assets) -> int:
            return sum(1 for a in assets if on_40(state_from_row(ctx.player(a.player_id))))

        for team_id in deal.teams:
            counts = count_roster(ctx.repo.get_team_roster(team_id, cur=ctx.cur))
            check_40_after_trade(
                team_id,
                counts,
                outgoing_40=_count_40(players_out.get(team_id, [])),
                incoming_40=_count_40(players_in.get(team_id, [])),
                limits=ctx.settings,
            )
