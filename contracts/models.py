"""Typed contract terms.

A player's contract is a sparse map ``year -> term``. On disk each term is a
display string (``"$1,000,000"``, ``"TC"``, ``"ARB 2"``, ``"UFA"``,
``"$2,000,000(TO)"``). ``parse_term`` / ``format_term`` are the only functions
that convert between the two; everything else works on the typed values.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from config import CONTRACT_FIRST_YEAR, CONTRACT_LAST_YEAR
from errors import INVALID_CONTRACT_TERM, ValidationError


@dataclass(frozen=True)
class Fixed:
    amount: float


@dataclass(frozen=True)
class TeamControl:
    pass


@dataclass(frozen=True)
class Arbitration:
    label: str = "ARB"


@dataclass(frozen=True)
class UnrestrictedFreeAgent:
    pass


@dataclass(frozen=True)
class TeamOption:
    amount: float


ContractTerm = Union[Fixed, TeamControl, Arbitration, UnrestrictedFreeAgent, TeamOption]
ContractMap = Dict[int, ContractTerm]

_OPTION_SUFFIX_RE = re.compile(r"\(\s*TO\s*\)\s*$", re.IGNORECASE)
_AMOUNT_RE = re.compile(r"^-?\d+(?:\.\d+)?$")
_ARB_RE = re.compile(r"^ARB(?:\s*\d+)?$")


def _safe_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def _parse_amount(text: str) -> Optional[float]:
    s = text.replace("$", "").replace(",", "").strip()
    if not _AMOUNT_RE.match(s):
        return None
    return _safe_amount(s)


def parse_term(value: Any) -> Optional[ContractTerm]:
    """Parse one stored contract cell. Empty -> None."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Fixed(_safe_amount(value))
    s = str(value).strip()
    if not s:
        return None
    upper = s.upper()
    if upper == "TC":
        return TeamControl()
    if upper == "UFA":
        return UnrestrictedFreeAgent()
    if _ARB_RE.match(upper):
        return Arbitration(" ".join(upper.split()))
    if _OPTION_SUFFIX_RE.search(s):
        amount = _parse_amount(_OPTION_SUFFIX_RE.sub("", s))
        if amount is not None:
            return TeamOption(amount)
    else:
        amount = _parse_amount(s)
        if amount is not None:
            return Fixed(amount)
    raise ValidationError(INVALID_CONTRACT_TERM, "Unrecognized contract value", {"value": s})


def format_dollars(amount: float) -> str:
    return f"${int(round(amount)):,}"


def format_term(term: Optional[ContractTerm]) -> str:
    if term is None:
        return ""
    if isinstance(term, Fixed):
        return format_dollars(term.amount)
    if isinstance(term, TeamOption):
        return f"{format_dollars(term.amount)}(TO)"
    if isinstance(term, TeamControl):
        return "TC"
    if isinstance(term, UnrestrictedFreeAgent):
        return "UFA"
    if isinstance(term, Arbitration):
        return term.label
    raise TypeError(f"unknown contract term: {term!r}")


def dollar_amount(term: Optional[ContractTerm]) -> Optional[float]:
    """Salary carried by a term, or None for TC/ARB/UFA/empty."""
    if isinstance(term, (Fixed, TeamOption)):
        return term.amount
    return None


def is_dollar_term(term: Optional[ContractTerm]) -> bool:
    return dollar_amount(term) is not None


def with_amount(term: ContractTerm, amount: float) -> ContractTerm:
    """Same kind of dollar term with a new amount (team options stay options)."""
    if isinstance(term, TeamOption):
        return TeamOption(amount)
    return Fixed(amount)


def _valid_year(year: Any) -> Optional[int]:
    try:
        y = int(year)
    except (TypeError, ValueError):
        return None
    if CONTRACT_FIRST_YEAR <= y <= CONTRACT_LAST_YEAR:
        return y
    return None


def parse_contract_map(raw: Optional[Mapping[Any, Any]]) -> ContractMap:
    out: ContractMap = {}
    for key, value in (raw or {}).items():
        year = _valid_year(key)
        if year is None:
            raise ValidationError(
                INVALID_CONTRACT_TERM,
                f"Contract year must be within {CONTRACT_FIRST_YEAR}-{CONTRACT_LAST_YEAR}",
                {"year": key},
            )
        term = parse_term(value)
        if term is not None:
            out[year] = term
    return out


def format_contract_map(contract: Mapping[int, ContractTerm]) -> Dict[str, str]:
    return {str(year): format_term(term) for year, term in sorted(contract.items()) if term is not None}
