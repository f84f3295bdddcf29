from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from errors import INVALID_INPUT, INVALID_TEAM, ValidationError

from ...models import Deal
from ..base import PHASE_ACCEPT, PHASE_PROPOSE, TradeContext


@dataclass
class TeamLegsRule:
    rule_id: str = "team_legs"
    priority: int = 10
    enabled: bool = True
    phases: Tuple[str, ...] = (PHASE_PROPOSE, PHASE_ACCEPT)

    def validate(self, deal: Deal, ctx: TradeContext) -> None:
        if len(deal.teams) != 2 or deal.teams[0] == deal.teams[1]:
            raise ValidationError(INVALID_TEAM, "A trade needs two different teams", {"teams": list(deal.teams)})

        for team_id in deal.teams:
            team = ctx.team(team_id)
            if team["league_id"] != deal.league_id:
                raise ValidationError(
                    INVALID_TEAM,
                    "Team is not in this league",
                    {"team_id": team_id, "league_id": deal.league_id},
                )

        if set(deal.legs.keys()) - set(deal.teams):
            raise ValidationError(
                INVALID_TEAM,
                "Deal legs must match deal teams",
                {"legs": list(deal.legs.keys()), "teams": list(deal.teams)},
            )

        has_players = any(deal.legs.get(t) for t in deal.teams)
        has_isbp = any(deal.isbp_sent(t) for t in deal.teams)
        if not has_players and not has_isbp:
            raise ValidationError(INVALID_INPUT, "Trade must include at least one player or ISBP amount")
