"""Free-agent auction: bid points, submission and finalization."""
from auction.bids import get_bid_history, is_milb_free_agent, list_pending_auctions, submit_bid
from auction.finalize import finalize_expired_auctions, finalize_player
from auction.points import bid_points, multiplier, validate_bid_terms

__all__ = [
    "multiplier",
    "bid_points",
    "validate_bid_terms",
    "submit_bid",
    "get_bid_history",
    "list_pending_auctions",
    "is_milb_free_agent",
    "finalize_player",
    "finalize_expired_auctions",
]
