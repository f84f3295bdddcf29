from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from errors import INVALID_INPUT, ValidationError
from schema import normalize_player_id, normalize_team_id


@dataclass(frozen=True)
class PlayerAsset:
    player_id: str
    retain_salary: bool = False


@dataclass
class Deal:
    """Two-team player exchange plus ISBP in either direction.

    ``teams`` is ``[proposing, receiving]``; ``legs[t]`` are the players team
    ``t`` sends and ``isbp[t]`` the bonus-pool dollars it sends.
    """

    league_id: str
    teams: List[str]
    legs: Dict[str, List[PlayerAsset]]
    isbp: Dict[str, int] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def proposing_team_id(self) -> str:
        return self.teams[0]

    @property
    def receiving_team_id(self) -> str:
        return self.teams[1]

    def other_team(self, team_id: str) -> str:
        return self.teams[1] if team_id == self.teams[0] else self.teams[0]

    def isbp_sent(self, team_id: str) -> int:
        return int(self.isbp.get(team_id) or 0)


def asset_key(asset: PlayerAsset) -> str:
    return f"player:{asset.player_id}"


def _normalize_team_id(value: Any, *, context: str) -> str:
    try:
        return str(normalize_team_id(value, strict=True))
    except ValueError as exc:
        raise ValidationError(INVALID_INPUT, f"{context}: invalid team_id", {"value": value}) from exc


def _normalize_player_id(value: Any, *, context: str) -> str:
    try:
        return str(normalize_player_id(value, strict=True))
    except ValueError as exc:
        raise ValidationError(INVALID_INPUT, f"{context}: invalid player_id", {"value": value}) from exc


def _isbp_amount(value: Any, *, context: str) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValidationError(INVALID_INPUT, f"{context} must be a whole dollar amount", {"value": value})
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(INVALID_INPUT, f"{context} must be a whole dollar amount", {"value": value}) from None
    if amount != amount or amount < 0 or not float(amount).is_integer():
        raise ValidationError(INVALID_INPUT, f"{context} must be a non-negative whole dollar amount", {"value": value})
    return int(amount)


def build_deal(
    league_id: str,
    proposing_team_id: Any,
    receiving_team_id: Any,
    *,
    offered_player_ids: Iterable[Any] = (),
    requested_player_ids: Iterable[Any] = (),
    isbp_offered: Any = 0,
    isbp_requested: Any = 0,
    retain_player_ids: Iterable[Any] = (),
) -> Deal:
    proposing = _normalize_team_id(proposing_team_id, context="proposing_team_id")
    receiving = _normalize_team_id(receiving_team_id, context="receiving_team_id")
    retained = {_normalize_player_id(p, context="retain_player_ids") for p in retain_player_ids}

    def _leg(raw: Iterable[Any], context: str) -> List[PlayerAsset]:
        out = []
        for pid in raw:
            player_id = _normalize_player_id(pid, context=context)
            out.append(PlayerAsset(player_id=player_id, retain_salary=player_id in retained))
        return out

    legs = {
        proposing: _leg(offered_player_ids, "offered_player_ids"),
        receiving: _leg(requested_player_ids, "requested_player_ids"),
    }
    # A retain flag on a player that is not part of the deal is a caller mistake.
    listed = {a.player_id for assets in legs.values() for a in assets}
    stray = sorted(retained - listed)
    if stray:
        raise ValidationError(INVALID_INPUT, "retain_player_ids must name traded players", {"player_ids": stray})
    isbp = {
        proposing: _isbp_amount(isbp_offered, context="isbp_offered"),
        receiving: _isbp_amount(isbp_requested, context="isbp_requested"),
    }
    return Deal(league_id=str(league_id), teams=[proposing, receiving], legs=legs, isbp=isbp)


def deal_from_trade(trade: Mapping[str, Any]) -> Deal:
    """Rebuild the Deal stored as a trades row plus its trade_items."""
    proposing = str(trade["proposing_team_id"])
    receiving = str(trade["receiving_team_id"])
    legs: Dict[str, List[PlayerAsset]] = {proposing: [], receiving: []}
    for item in trade.get("items") or []:
        legs.setdefault(str(item["sender_team_id"]), []).append(
            PlayerAsset(player_id=str(item["player_id"]), retain_salary=bool(item.get("retain_salary")))
        )
    return Deal(
        league_id=str(trade["league_id"]),
        teams=[proposing, receiving],
        legs=legs,
        isbp={proposing: int(trade.get("isbp_offered") or 0), receiving: int(trade.get("isbp_requested") or 0)},
        meta={"trade_id": trade.get("trade_id")},
    )


def trade_items(deal: Deal) -> List[Dict[str, Any]]:
    return [
        {"player_id": a.player_id, "sender_team_id": team_id, "retain_salary": a.retain_salary}
        for team_id in deal.teams
        for a in deal.legs.get(team_id, [])
    ]


def serialize_deal(deal: Deal) -> Dict[str, Any]:
    return {
        "league_id": deal.league_id,
        "teams": list(deal.teams),
        "legs": {
            team_id: [{"player_id": a.player_id, "retain_salary": a.retain_salary} for a in assets]
            for team_id, assets in deal.legs.items()
        },
        "isbp": {team_id: deal.isbp_sent(team_id) for team_id in deal.teams},
    }


def find_asset(deal: Deal, player_id: str) -> Optional[PlayerAsset]:
    for assets in deal.legs.values():
        for a in assets:
            if a.player_id == player_id:
                return a
    return None
