"""Trade rules engine.

How to add a new rule:
1) Create a new rule file in trades/rules/builtin (e.g., my_rule.py).
2) Implement a Rule with rule_id, priority, enabled, phases and validate().
3) Register the rule in trades/rules/builtin/__init__.py BUILTIN_RULES.

Rules run at proposal (phase "propose") and again at acceptance ("accept")
against fresh rows read inside the accepting transaction.
"""

from .base import PHASE_ACCEPT, PHASE_PROPOSE, TradeContext, build_player_moves, build_trade_context
from .registry import RuleRegistry, get_default_registry, validate_all

__all__ = [
    "PHASE_PROPOSE",
    "PHASE_ACCEPT",
    "TradeContext",
    "build_trade_context",
    "build_player_moves",
    "RuleRegistry",
    "get_default_registry",
    "validate_all",
]
