from __future__ import annotations

from .deadline_rule import DeadlineRule
from .duplicate_asset_rule import DuplicateAssetRule
from .isbp_balance_rule import IsbpBalanceRule
from .ownership_rule import OwnershipRule
from .roster_limit_rule import RosterLimitRule
from .team_legs_rule import TeamLegsRule

BUILTIN_RULES = [
    DeadlineRule(),
    DuplicateAssetRule(),
    IsbpBalanceRule(),
    OwnershipRule(),
    RosterLimitRule(),
    TeamLegsRule(),
]
