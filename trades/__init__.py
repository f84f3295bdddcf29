"""Trade package: deal model, rule registry, settlement and reversal."""

from .models import Deal, PlayerAsset, build_deal, deal_from_trade, serialize_deal
from .retention import Retention, compute_retention, retention_pct
from .settlement import (
    accept_trade,
    counter_trade,
    get_trade,
    list_trades,
    propose_trade,
    reject_trade,
    reverse_trade,
)
from .validator import validate_deal

__all__ = [
    "Deal",
    "PlayerAsset",
    "build_deal",
    "deal_from_trade",
    "serialize_deal",
    "Retention",
    "compute_retention",
    "retention_pct",
    "validate_deal",
    "propose_trade",
    "counter_trade",
    "accept_trade",
    "reject_trade",
    "reverse_trade",
    "get_trade",
    "list_trades",
]
