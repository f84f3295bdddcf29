"""Waivers: designate for assignment, claims, resolution and heal."""
from waivers.claims import list_claims, submit_claim
from waivers.dfa import designate_for_assignment
from waivers.resolve import WaiverFeed, heal_stale_waivers, resolve_expired_waivers, resolve_player

__all__ = [
    "designate_for_assignment",
    "submit_claim",
    "list_claims",
    "resolve_player",
    "resolve_expired_waivers",
    "heal_stale_waivers",
    "WaiverFeed",
]
