from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from errors import DUPLICATE_ASSET, ValidationError

from ...models import Deal, asset_key
from ..base import PHASE_PROPOSE, TradeContext


@dataclass
class DuplicateAssetRule:
    rule_id: str = "duplicate_asset"
    priority: int = 20
    enabled: bool = True
    phases: Tuple[str, ...] = (PHASE_PROPOSE,)

    def validate(self, deal: Deal, ctx: TradeContext) -> None:
        seen_assets: dict[str, str] = {}
        for team_id, assets in deal.legs.items():
            for asset in assets:
                key = asset_key(asset)
                if key in seen_assets:
                    raise ValidationError(
                        DUPLICATE_ASSET,
                        "Duplicate asset in deal",
                        {
                            "asset_key": key,
                            "first_sender": seen_assets[key],
                            "duplicate_sender": team_id,
                        },
                    )
                seen_assets[key] = team_id
