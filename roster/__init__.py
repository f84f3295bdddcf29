"""Roster package: compliance guard and roster moves."""
from roster.compliance import (
    RosterCounts,
    check_40_after_trade,
    check_promote_26,
    check_promote_40,
    count_roster,
    is_starting_pitcher,
)
from roster.moves import (
    activate_from_injured_list,
    il_label,
    option_to_minors,
    place_on_injured_list,
    promote_to_26,
    promote_to_40,
)

__all__ = [
    "RosterCounts",
    "count_roster",
    "is_starting_pitcher",
    "check_promote_40",
    "check_promote_26",
    "check_40_after_trade",
    "promote_to_40",
    "promote_to_26",
    "option_to_minors",
    "place_on_injured_list",
    "activate_from_injured_list",
    "il_label",
]
