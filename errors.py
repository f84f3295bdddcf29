from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class LedgerError(Exception):
    code: str
    message: str
    details: Optional[Any] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_payload(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(LedgerError):
    """Malformed or out-of-range input. Rejected before any write."""


class NotFoundError(ValidationError):
    """Unknown player/team/trade/action id."""


class AuthorizationError(LedgerError):
    """Caller does not own the team or lacks commissioner rights."""


class StateConflictError(LedgerError):
    """Request is well-formed but the current ledger state does not allow it."""


class PersistenceError(LedgerError):
    """Database unavailable or a constraint was violated; the transaction rolled back."""


# Validation
INVALID_INPUT = "INVALID_INPUT"
INVALID_YEARS = "INVALID_YEARS"
INVALID_AAV = "INVALID_AAV"
BID_POINTS_TOO_LOW = "BID_POINTS_TOO_LOW"
INVALID_CONTRACT_TERM = "INVALID_CONTRACT_TERM"
INVALID_CLEAR_ACTION = "INVALID_CLEAR_ACTION"
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
TRADE_NOT_FOUND = "TRADE_NOT_FOUND"
ACTION_NOT_FOUND = "ACTION_NOT_FOUND"
PENALTY_NOT_FOUND = "PENALTY_NOT_FOUND"

# Authorization
NOT_TEAM_OWNER = "NOT_TEAM_OWNER"
NO_TEAM_IN_LEAGUE = "NO_TEAM_IN_LEAGUE"
MULTIPLE_TEAMS_IN_LEAGUE = "MULTIPLE_TEAMS_IN_LEAGUE"
NOT_COMMISSIONER = "NOT_COMMISSIONER"

# State conflicts
BID_TOO_LOW = "BID_TOO_LOW"
WINDOW_CLOSED = "WINDOW_CLOSED"
PLAYER_NOT_AVAILABLE = "PLAYER_NOT_AVAILABLE"
PLAYER_NOT_ROSTERED = "PLAYER_NOT_ROSTERED"
PLAYER_NOT_ON_WAIVERS = "PLAYER_NOT_ON_WAIVERS"
PLAYER_NOT_OWNED = "PLAYER_NOT_OWNED"
DUPLICATE_CLAIM = "DUPLICATE_CLAIM"
OWN_PLAYER_CLAIM = "OWN_PLAYER_CLAIM"
ROSTER_LIMIT = "ROSTER_LIMIT"
SP_LIMIT = "SP_LIMIT"
INSUFFICIENT_ISBP = "INSUFFICIENT_ISBP"
TRADE_STATUS = "TRADE_STATUS"
TRADE_WINDOW_CLOSED = "TRADE_WINDOW_CLOSED"
INVALID_TEAM = "INVALID_TEAM"
DUPLICATE_ASSET = "DUPLICATE_ASSET"
ACTION_STATUS = "ACTION_STATUS"
DEADLINE_PASSED = "DEADLINE_PASSED"
CONCURRENT_UPDATE = "CONCURRENT_UPDATE"
ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"

# Persistence
DB_ERROR = "DB_ERROR"
