from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Tuple

from league_calendar import LeagueSettings, get_league_settings
from league_repo import LeagueRepo

from ..models import Deal, PlayerAsset

PHASE_PROPOSE = "propose"
PHASE_ACCEPT = "accept"


@dataclass
class TradeContext:
    repo: LeagueRepo
    current_date: date
    phase: str = PHASE_PROPOSE
    cur: Optional[sqlite3.Cursor] = None
    settings: LeagueSettings = field(default_factory=LeagueSettings)
    extra: Dict[str, Any] = field(default_factory=dict)

    def player(self, player_id: str) -> Dict[str, Any]:
        """Player row, cached for the life of one validation pass."""
        cache = self.extra.setdefault("players", {})
        if player_id not in cache:
            cache[player_id] = self.repo.get_player(player_id, cur=self.cur)
        return cache[player_id]

    def team(self, team_id: str) -> Dict[str, Any]:
        cache = self.extra.setdefault("teams", {})
        if team_id not in cache:
            cache[team_id] = self.repo.get_team(team_id, cur=self.cur)
        return cache[team_id]


class Rule(Protocol):
    rule_id: str
    priority: int
    enabled: bool
    phases: Tuple[str, ...]

    def validate(self, deal: Deal, ctx: TradeContext) -> None:
        ...


def build_player_moves(deal: Deal) -> Tuple[Dict[str, List[PlayerAsset]], Dict[str, List[PlayerAsset]]]:
    """(players_out, players_in) per team; each player goes to the other side."""
    players_out: Dict[str, List[PlayerAsset]] = {team_id: [] for team_id in deal.teams}
    players_in: Dict[str, List[PlayerAsset]] = {team_id: [] for team_id in deal.teams}
    for team_id, assets in deal.legs.items():
        for asset in assets:
            players_out.setdefault(team_id, []).append(asset)
            players_in.setdefault(deal.other_team(team_id), []).append(asset)
    return players_out, players_in


def build_trade_context(
    repo: LeagueRepo,
    league_id: str,
    current_date: date,
    *,
    phase: str = PHASE_PROPOSE,
    cur: Optional[sqlite3.Cursor] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> TradeContext:
    return TradeContext(
        repo=repo,
        current_date=current_date,
        phase=phase,
        cur=cur,
        settings=get_league_settings(repo, league_id, current_date.year, cur=cur),
        extra=dict(extra) if extra else {},
    )
