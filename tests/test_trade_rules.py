from dataclasses import dataclass
from datetime import date
from typing import Tuple

import pytest

from errors import DUPLICATE_ASSET, PLAYER_NOT_OWNED, StateConflictError, ValidationError
from trades.models import Deal, PlayerAsset
from trades.rules import PHASE_ACCEPT, PHASE_PROPOSE, RuleRegistry, get_default_registry
from trades.rules.builtin.deadline_rule import in_offseason
from trades.validator import validate_deal


def _judge_both_ways():
    return Deal(
        league_id="L1",
        teams=["NYY", "BOS"],
        legs={"NYY": [PlayerAsset("p_judge")], "BOS": [PlayerAsset("p_judge")]},
    )


@dataclass
class _Recorder:
    rule_id: str
    priority: int
    calls: list
    enabled: bool = True
    phases: Tuple[str, ...] = (PHASE_PROPOSE,)

    def validate(self, deal, ctx):
        self.calls.append(self.rule_id)


def test_default_registry_order():
    rules = sorted(get_default_registry().list_rules(), key=lambda r: r.priority)
    assert [r.rule_id for r in rules] == [
        "team_legs",
        "deadline",
        "duplicate_asset",
        "isbp_balance",
        "ownership",
        "roster_limit",
    ]
    assert [r.rule_id for r in get_default_registry().list_rules(PHASE_ACCEPT)].count("duplicate_asset") == 0


def test_duplicate_asset_only_checked_on_propose(repo):
    with pytest.raises(ValidationError) as exc:
        validate_deal(repo, _judge_both_ways(), date(2026, 6, 1))
    assert exc.value.code == DUPLICATE_ASSET

    with pytest.raises(StateConflictError) as exc:
        validate_deal(repo, _judge_both_ways(), date(2026, 6, 1), phase=PHASE_ACCEPT)
    assert exc.value.code == PLAYER_NOT_OWNED


def test_disabled_rule_is_skipped(repo):
    registry = get_default_registry()
    registry.set_enabled("duplicate_asset", False)
    with pytest.raises(StateConflictError) as exc:
        validate_deal(repo, _judge_both_ways(), date(2026, 6, 1), registry=registry)
    assert exc.value.code == PLAYER_NOT_OWNED

    registry.unregister("ownership")
    registry.unregister("roster_limit")
    validate_deal(repo, _judge_both_ways(), date(2026, 6, 1), registry=registry)


def test_rules_run_by_priority_then_id(repo):
    calls = []
    registry = RuleRegistry(
        [
            _Recorder("zeta", 5, calls),
            _Recorder("alpha", 5, calls),
            _Recorder("first", 1, calls),
            _Recorder("accept_only", 0, calls, phases=(PHASE_ACCEPT,)),
            _Recorder("off", 0, calls, enabled=False),
        ]
    )
    validate_deal(repo, _judge_both_ways(), date(2026, 6, 1), registry=registry)
    assert calls == ["first", "alpha", "zeta"]


def test_offseason_window():
    assert in_offseason(date(2026, 10, 15))
    assert in_offseason(date(2026, 12, 31))
    assert in_offseason(date(2027, 3, 15))
    assert not in_offseason(date(2027, 3, 16))
    assert not in_offseason(date(2026, 10, 14))
