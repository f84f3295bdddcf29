"""Player possession state.

A player is in exactly one of six states. The ledger stores them as a set of
flat columns on ``players`` (fa_status, team_id, roster flags, bid fields,
waiver fields); this module is the only place that maps between the two.

Every transition returns a new state value. Writers persist it with
``state_columns(new_state)``, which always emits *every* possession column,
so fields belonging to the previous state can never survive a transition.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from errors import ILLEGAL_TRANSITION, PLAYER_NOT_AVAILABLE, PLAYER_NOT_ON_WAIVERS, PLAYER_NOT_ROSTERED, StateConflictError
from schema import ALLOWED_CLEAR_ACTIONS, FA_AVAILABLE, FA_ON_WAIVERS, FA_PENDING_BID, FA_ROSTERED


@dataclass(frozen=True)
class Unrostered:
    pass


@dataclass(frozen=True)
class PendingBid:
    team_id: str
    manager_id: str
    points: float
    years: int
    aav: float
    start_time: str
    end_time: str
    bid_type: str


@dataclass(frozen=True)
class OnWaivers:
    waiving_team_id: str
    end_time: str
    clear_action: str


@dataclass(frozen=True)
class RosteredActive:
    """On the 26-man (and therefore the 40-man)."""

    team_id: str


@dataclass(frozen=True)
class RosteredMinors:
    team_id: str
    on_40: bool


@dataclass(frozen=True)
class InjuredList:
    team_id: str
    label: str
    start_date: str
    on_40: bool


PlayerState = Union[Unrostered, PendingBid, OnWaivers, RosteredActive, RosteredMinors, InjuredList]
RosteredState = Union[RosteredActive, RosteredMinors, InjuredList]
_ROSTERED = (RosteredActive, RosteredMinors, InjuredList)


# ----------------------------
# Row <-> state
# ----------------------------

def state_from_row(row: Mapping[str, Any]) -> PlayerState:
    status = row.get("fa_status")
    if status == FA_AVAILABLE:
        return Unrostered()
    if status == FA_PENDING_BID:
        return PendingBid(
            team_id=str(row["pending_bid_team_id"]),
            manager_id=str(row.get("pending_bid_manager_id") or ""),
            points=float(row["pending_bid_amount"]),
            years=int(row["pending_bid_years"]),
            aav=float(row["pending_bid_aav"]),
            start_time=str(row.get("bid_start_time") or ""),
            end_time=str(row["bid_end_time"]),
            bid_type=str(row.get("bid_type") or "standard"),
        )
    if status == FA_ON_WAIVERS:
        return OnWaivers(
            waiving_team_id=str(row["waiving_team_id"]),
            end_time=str(row["waiver_end_time"]),
            clear_action=str(row.get("dfa_clear_action") or "release"),
        )
    if status == FA_ROSTERED:
        team_id = str(row["team_id"])
        on_40 = bool(row.get("status_40_man"))
        if row.get("status_il"):
            return InjuredList(team_id, str(row["status_il"]), str(row.get("il_start_date") or ""), on_40)
        if row.get("status_26_man"):
            return RosteredActive(team_id)
        return RosteredMinors(team_id, on_40)
    raise ValueError(f"unknown fa_status {status!r}")


def state_columns(state: PlayerState) -> Dict[str, Any]:
    cols: Dict[str, Any] = {
        "team_id": None,
        "fa_status": FA_AVAILABLE,
        "status_40_man": False,
        "status_26_man": False,
        "status_il": None,
        "il_start_date": None,
        "pending_bid_amount": None,
        "pending_bid_years": None,
        "pending_bid_aav": None,
        "pending_bid_team_id": None,
        "pending_bid_manager_id": None,
        "bid_start_time": None,
        "bid_end_time": None,
        "bid_type": None,
        "waiver_end_time": None,
        "waiving_team_id": None,
        "dfa_clear_action": None,
    }
    if isinstance(state, Unrostered):
        pass
    elif isinstance(state, PendingBid):
        cols.update(
            fa_status=FA_PENDING_BID,
            pending_bid_amount=state.points,
            pending_bid_years=state.years,
            pending_bid_aav=state.aav,
            pending_bid_team_id=state.team_id,
            pending_bid_manager_id=state.manager_id,
            bid_start_time=state.start_time,
            bid_end_time=state.end_time,
            bid_type=state.bid_type,
        )
    elif isinstance(state, OnWaivers):
        # Waived players keep team_id until the clock resolves.
        cols.update(
            fa_status=FA_ON_WAIVERS,
            team_id=state.waiving_team_id,
            waiver_end_time=state.end_time,
            waiving_team_id=state.waiving_team_id,
            dfa_clear_action=state.clear_action,
        )
    elif isinstance(state, RosteredActive):
        cols.update(fa_status=FA_ROSTERED, team_id=state.team_id, status_40_man=True, status_26_man=True)
    elif isinstance(state, RosteredMinors):
        cols.update(fa_status=FA_ROSTERED, team_id=state.team_id, status_40_man=state.on_40)
    elif isinstance(state, InjuredList):
        cols.update(
            fa_status=FA_ROSTERED,
            team_id=state.team_id,
            status_40_man=state.on_40,
            status_il=state.label,
            il_start_date=state.start_date,
        )
    else:
        raise TypeError(f"unknown player state: {state!r}")
    return cols


# ----------------------------
# Queries
# ----------------------------

def is_rostered(state: PlayerState) -> bool:
    return isinstance(state, _ROSTERED)


def team_of(state: PlayerState) -> Optional[str]:
    if isinstance(state, _ROSTERED):
        return state.team_id
    if isinstance(state, OnWaivers):
        return state.waiving_team_id
    return None


def on_40(state: PlayerState) -> bool:
    if isinstance(state, RosteredActive):
        return True
    if isinstance(state, (RosteredMinors, InjuredList)):
        return state.on_40
    return False


def on_26(state: PlayerState) -> bool:
    return isinstance(state, RosteredActive)


def _conflict(code: str, message: str, state: PlayerState) -> StateConflictError:
    return StateConflictError(code, message, {"state": type(state).__name__})


def _require_rostered(state: PlayerState, team_id: Optional[str] = None) -> RosteredState:
    if not isinstance(state, _ROSTERED):
        raise _conflict(PLAYER_NOT_ROSTERED, "Player is not on a roster", state)
    if team_id is not None and state.team_id != team_id:
        raise StateConflictError(
            PLAYER_NOT_ROSTERED,
            "Player is not on this team's roster",
            {"state": type(state).__name__, "team_id": state.team_id, "expected_team_id": team_id},
        )
    return state


# ----------------------------
# Transitions
# ----------------------------

def place_bid(
    state: PlayerState,
    *,
    team_id: str,
    manager_id: str,
    points: float,
    years: int,
    aav: float,
    start_time: str,
    end_time: str,
    bid_type: str,
) -> PendingBid:
    if not isinstance(state, (Unrostered, PendingBid)):
        raise _conflict(PLAYER_NOT_AVAILABLE, "Player is not a free agent", state)
    return PendingBid(team_id, manager_id, float(points), int(years), float(aav), start_time, end_time, bid_type)


def sign(state: PlayerState) -> RosteredMinors:
    """Auction won: the bidding team gets the player on its 40-man."""
    if not isinstance(state, PendingBid):
        raise _conflict(ILLEGAL_TRANSITION, "Player has no pending bid", state)
    return RosteredMinors(state.team_id, on_40=True)


def designate(state: PlayerState, *, team_id: str, end_time: str, clear_action: str) -> OnWaivers:
    _require_rostered(state, team_id)
    if clear_action not in ALLOWED_CLEAR_ACTIONS:
        raise ValueError(f"invalid clear_action {clear_action!r}")
    return OnWaivers(waiving_team_id=team_id, end_time=end_time, clear_action=clear_action)


def award_claim(state: PlayerState, *, team_id: str) -> RosteredMinors:
    if not isinstance(state, OnWaivers):
        raise _conflict(PLAYER_NOT_ON_WAIVERS, "Player is not on waivers", state)
    return RosteredMinors(team_id, on_40=True)


def outright(state: PlayerState) -> RosteredMinors:
    """Cleared waivers with clear_action=minors: stays with the team, off the 40-man."""
    if not isinstance(state, OnWaivers):
        raise _conflict(PLAYER_NOT_ON_WAIVERS, "Player is not on waivers", state)
    return RosteredMinors(state.waiving_team_id, on_40=False)


def release(state: PlayerState) -> Unrostered:
    if not isinstance(state, _ROSTERED + (OnWaivers,)):
        raise _conflict(PLAYER_NOT_ROSTERED, "Player is not owned by a team", state)
    return Unrostered()


def promote_40(state: PlayerState) -> RosteredState:
    current = _require_rostered(state)
    if on_40(current):
        raise _conflict(ILLEGAL_TRANSITION, "Player is already on the 40-man roster", state)
    return dataclasses.replace(current, on_40=True)


def promote_26(state: PlayerState) -> RosteredActive:
    current = _require_rostered(state)
    if isinstance(current, RosteredActive):
        raise _conflict(ILLEGAL_TRANSITION, "Player is already on the 26-man roster", state)
    if isinstance(current, InjuredList):
        raise _conflict(ILLEGAL_TRANSITION, "Player must be activated from the IL first", state)
    return RosteredActive(current.team_id)


def option(state: PlayerState) -> RosteredState:
    current = _require_rostered(state)
    if isinstance(current, RosteredActive):
        return RosteredMinors(current.team_id, on_40=True)
    return current


def place_on_il(state: PlayerState, *, label: str, start_date: str, sixty_day: bool) -> InjuredList:
    current = _require_rostered(state)
    keep_40 = on_40(current) and not sixty_day
    return InjuredList(current.team_id, label, start_date, keep_40)


def activate_from_il(state: PlayerState) -> RosteredMinors:
    if not isinstance(state, InjuredList):
        raise _conflict(ILLEGAL_TRANSITION, "Player is not on the injured list", state)
    return RosteredMinors(state.team_id, on_40=state.on_40)


def move_to_team(state: PlayerState, *, team_id: str) -> RosteredState:
    """Trade: same roster standing, new owner."""
    current = _require_rostered(state)
    return dataclasses.replace(current, team_id=team_id)
