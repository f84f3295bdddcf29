from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from errors import INVALID_TEAM, PLAYER_NOT_OWNED, StateConflictError, ValidationError
from player_state import is_rostered, state_from_row, team_of

from ...models import Deal
from ..base import PHASE_ACCEPT, PHASE_PROPOSE, TradeContext


@dataclass
class OwnershipRule:
    """Every traded player must be on the sending team's roster.

    Re-run at acceptance: the player may have been DFA'd, released or traded
    elsewhere since the proposal.
    """

    rule_id: str = "ownership"
    priority: int = 50
    enabled: bool = True
    phases: Tuple[str, ...] = (PHASE_PROPOSE, PHASE_ACCEPT)

    def validate(self, deal: Deal, ctx: TradeContext) -> None:
        for team_id, assets in deal.legs.items():
            for asset in assets:
                player = ctx.player(asset.player_id)
                if player["league_id"] != deal.league_id:
                    raise ValidationError(
                        INVALID_TEAM,
                        "Player is not in this league",
                        {"player_id": asset.player_id, "league_id": deal.league_id},
                    )
                state = state_from_row(player)
                if not is_rostered(state) or team_of(state) != team_id:
                    raise StateConflictError(
                        PLAYER_NOT_OWNED,
                        "Player not owned by team",
                        {
                            "player_id": asset.player_id,
                            "team_id": team_id,
                            "current_team_id": player.get("team_id"),
                            "fa_status": player.get("fa_status"),
                        },
                    )
