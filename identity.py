"""Caller identity and ownership predicates.

Authentication happens outside this package; callers arrive here already
resolved to a user id (plus an admin flag for site administrators).
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from errors import (
    MULTIPLE_TEAMS_IN_LEAGUE,
    NO_TEAM_IN_LEAGUE,
    NOT_COMMISSIONER,
    NOT_TEAM_OWNER,
    AuthorizationError,
)
from league_repo import LeagueRepo


@dataclass(frozen=True)
class Caller:
    user_id: str
    is_admin: bool = False


SYSTEM = Caller(user_id="system", is_admin=True)


def owns_team(repo: LeagueRepo, caller: Caller, team_id: str, *, cur: sqlite3.Cursor | None = None) -> bool:
    return repo.is_team_owner(team_id, caller.user_id, cur=cur)


def is_commissioner(repo: LeagueRepo, caller: Caller, league_id: str, *, cur: sqlite3.Cursor | None = None) -> bool:
    return caller.is_admin or repo.is_commissioner(league_id, caller.user_id, cur=cur)


def teams_owned_in_league(repo: LeagueRepo, caller: Caller, league_id: str, *, cur: sqlite3.Cursor | None = None) -> list:
    return repo.list_owned_team_ids(caller.user_id, league_id, cur=cur)


def require_team_owner(repo: LeagueRepo, caller: Caller, team_id: str, *, cur: sqlite3.Cursor | None = None) -> None:
    if not owns_team(repo, caller, team_id, cur=cur):
        raise AuthorizationError(
            NOT_TEAM_OWNER,
            "You do not own this team",
            {"team_id": team_id, "user_id": caller.user_id},
        )


def require_commissioner(repo: LeagueRepo, caller: Caller, league_id: str, *, cur: sqlite3.Cursor | None = None) -> None:
    if not is_commissioner(repo, caller, league_id, cur=cur):
        raise AuthorizationError(
            NOT_COMMISSIONER,
            "Commissioner access required",
            {"league_id": league_id, "user_id": caller.user_id},
        )


def require_owner_or_commissioner(
    repo: LeagueRepo,
    caller: Caller,
    team_id: str,
    league_id: str,
    *,
    cur: sqlite3.Cursor | None = None,
) -> None:
    if owns_team(repo, caller, team_id, cur=cur) or is_commissioner(repo, caller, league_id, cur=cur):
        return
    raise AuthorizationError(
        NOT_TEAM_OWNER,
        "You do not own this team",
        {"team_id": team_id, "user_id": caller.user_id},
    )


def resolve_single_team(repo: LeagueRepo, caller: Caller, league_id: str, *, cur: sqlite3.Cursor | None = None) -> str:
    """The one team the caller owns in the league; zero or several is an error."""
    team_ids = teams_owned_in_league(repo, caller, league_id, cur=cur)
    if not team_ids:
        raise AuthorizationError(
            NO_TEAM_IN_LEAGUE,
            "You do not own a team in this league",
            {"league_id": league_id, "user_id": caller.user_id},
        )
    if len(team_ids) > 1:
        raise AuthorizationError(
            MULTIPLE_TEAMS_IN_LEAGUE,
            "You own more than one team in this league",
            {"league_id": league_id, "team_ids": team_ids},
        )
    return team_ids[0]
