"""Salary retention on traded players.

The sending team keeps paying part of a mover's current-year salary depending
on how far into the season the trade happens:

    before opening day      0%
    through Apr 30         10%
    through May 31         25%
    afterwards             50%

A sender may also volunteer to retain half of whatever is left.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from config import RETAIN_SALARY_EXTRA_PCT, RETENTION_BANDS, RETENTION_LATE_SEASON


@dataclass(frozen=True)
class Retention:
    salary: float
    pct: float
    retained: float
    note: str

    @property
    def new_salary(self) -> float:
        return round(self.salary - self.retained, 2)


def retention_pct(today: date, opening_day: date) -> float:
    if today < opening_day:
        return 0.0
    md = (today.month, today.day)
    for upper, pct in RETENTION_BANDS:
        if md <= upper:
            return pct
    return RETENTION_LATE_SEASON


def compute_retention(salary: float, pct: float, *, retain_salary: bool = False) -> Optional[Retention]:
    """Amount the sender keeps for this year, or None when nothing is retained."""
    if salary <= 0:
        return None
    base = salary * pct
    retained = base
    if retain_salary:
        retained += (salary - base) * RETAIN_SALARY_EXTRA_PCT
    retained = round(retained, 2)
    if retained <= 0:
        return None

    pct_label = f"{pct * 100:.0f}%"
    extra_label = f"{RETAIN_SALARY_EXTRA_PCT * 100:.0f}%"
    if pct > 0 and retain_salary:
        note = f"Pro-Rated ({pct_label}) + {extra_label} Retained"
    elif retain_salary:
        note = f"{extra_label} Salary Retained"
    else:
        note = f"Trade Retention ({pct_label})"
    return Retention(salary=salary, pct=pct, retained=retained, note=note)
