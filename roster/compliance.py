"""Roster compliance guard.

Pure checks over a roster snapshot and the league's limits for the year.
Each check returns None or raises StateConflictError carrying the counts
the caller needs to decide what to do next.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from errors import ROSTER_LIMIT, SP_LIMIT, StateConflictError
from league_calendar import LeagueSettings

_POSITION_SPLIT_RE = re.compile(r"[\s/,]+")


@dataclass(frozen=True)
class RosterCounts:
    count_26: int = 0
    count_40: int = 0
    sp_26: int = 0


def is_starting_pitcher(position: Any) -> bool:
    tokens = _POSITION_SPLIT_RE.split(str(position or "").upper())
    return "SP" in tokens


def count_roster(players: Iterable[Mapping[str, Any]]) -> RosterCounts:
    count_26 = count_40 = sp_26 = 0
    for p in players:
        if p.get("status_40_man"):
            count_40 += 1
        if p.get("status_26_man"):
            count_26 += 1
            if is_starting_pitcher(p.get("position")):
                sp_26 += 1
    return RosterCounts(count_26=count_26, count_40=count_40, sp_26=sp_26)


def check_promote_40(counts: RosterCounts, limits: LeagueSettings) -> None:
    if counts.count_40 >= limits.roster_40_limit:
        raise StateConflictError(
            ROSTER_LIMIT,
            "40-man roster is full",
            {"count_40": counts.count_40, "limit_40": limits.roster_40_limit},
        )


def check_promote_26(
    counts: RosterCounts,
    limits: LeagueSettings,
    *,
    player_on_40: bool,
    player_is_sp: bool,
) -> None:
    if counts.count_26 >= limits.roster_26_limit:
        raise StateConflictError(
            ROSTER_LIMIT,
            "26-man roster is full",
            {"count_26": counts.count_26, "limit_26": limits.roster_26_limit},
        )
    if not player_on_40 and counts.count_40 >= limits.roster_40_limit:
        raise StateConflictError(
            ROSTER_LIMIT,
            "40-man roster is full; player must be added to the 40-man first",
            {"count_40": counts.count_40, "limit_40": limits.roster_40_limit},
        )
    if player_is_sp and counts.sp_26 >= limits.sp_26_limit:
        raise StateConflictError(
            SP_LIMIT,
            "Starting pitcher limit on the 26-man roster reached",
            {"sp_26": counts.sp_26, "limit_sp": limits.sp_26_limit},
        )


def check_40_after_trade(team_id: str, counts: RosterCounts, outgoing_40: int, incoming_40: int, limits: LeagueSettings) -> None:
    after = counts.count_40 - outgoing_40 + incoming_40
    if incoming_40 > outgoing_40 and after > limits.roster_40_limit:
        raise StateConflictError(
            ROSTER_LIMIT,
            "Trade would put the 40-man roster over the limit",
            {"team_id": team_id, "count_40_after": after, "limit_40": limits.roster_40_limit},
        )
