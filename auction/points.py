from __future__ import annotations

import math

from config import BID_MULTIPLIERS, MAX_BID_YEARS, MIN_BID_AAV, MIN_BID_POINTS, MIN_BID_YEARS
from errors import BID_POINTS_TOO_LOW, INVALID_AAV, INVALID_YEARS, ValidationError

# Points are compared with this slack so 4.8 + 1.0 == 5.8 regardless of float noise.
POINTS_EPSILON = 1e-9


def multiplier(years: int) -> float:
    try:
        return BID_MULTIPLIERS[int(years)]
    except (KeyError, TypeError, ValueError):
        raise ValidationError(
            INVALID_YEARS,
            f"Contract length must be {MIN_BID_YEARS}-{MAX_BID_YEARS} years",
            {"years": years},
        ) from None


def bid_points(years: int, aav: float) -> float:
    """years * AAV * multiplier(years) / 1,000,000"""
    return round(int(years) * float(aav) * multiplier(years) / 1_000_000, 6)


def validate_bid_terms(years: int, aav: float) -> float:
    """Check contract length and AAV, then return the bid's points."""
    try:
        years_f = float(years)
        years_i = int(years_f)
        aav_f = float(aav)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(INVALID_YEARS, "years and aav must be numbers", {"years": years, "aav": aav}) from None
    if years_f != years_i or not MIN_BID_YEARS <= years_i <= MAX_BID_YEARS:
        raise ValidationError(
            INVALID_YEARS,
            f"Contract length must be {MIN_BID_YEARS}-{MAX_BID_YEARS} years",
            {"years": years},
        )
    if not math.isfinite(aav_f) or aav_f < MIN_BID_AAV:
        raise ValidationError(
            INVALID_AAV,
            f"AAV must be at least ${int(MIN_BID_AAV):,}",
            {"aav": aav},
        )
    points = bid_points(years_i, aav_f)
    if points + POINTS_EPSILON < MIN_BID_POINTS:
        raise ValidationError(BID_POINTS_TOO_LOW, "Bid is worth less than one point", {"points": points})
    return points


def outbids(new_points: float, current_points: float, *, increment: float) -> bool:
    return new_points + POINTS_EPSILON >= current_points + increment
