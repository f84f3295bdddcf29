import datetime as _dt

import pytest

from conftest import BOS_OWNER, JUNE_1, LEAGUE, NYY_OWNER, TB_OWNER
from errors import (
    DUPLICATE_CLAIM,
    INVALID_CLEAR_ACTION,
    NOT_TEAM_OWNER,
    OWN_PLAYER_CLAIM,
    PLAYER_NOT_ON_WAIVERS,
    PLAYER_NOT_ROSTERED,
    AuthorizationError,
    StateConflictError,
    ValidationError,
)
from schema import (
    CLAIM_INVALID,
    CLAIM_PENDING,
    CLAIM_PROCESSED,
    CLEAR_MINORS,
    DEAD_CAP_DFA_RELEASE,
    FA_AVAILABLE,
    FA_ON_WAIVERS,
    FA_ROSTERED,
    TX_DROP,
)
from waivers import designate_for_assignment, heal_stale_waivers, resolve_expired_waivers, submit_claim

HOUR = _dt.timedelta(hours=1)
WAIVERS_END = JUNE_1 + _dt.timedelta(hours=48)


def _claims(repo, player_id, status=None):
    return repo.list_waiver_claims(player_id, status=status)


def test_dfa_starts_waiver_clock(repo):
    out = designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", now=JUNE_1)
    assert out["waiver_end_time"] == "2026-06-03T12:00:00Z"

    p = repo.get_player("p_judge")
    assert p["fa_status"] == FA_ON_WAIVERS
    assert p["waiving_team_id"] == "NYY"
    assert p["team_id"] == "NYY"
    assert p["status_26_man"] is False
    assert p["roster_moves"][-1]["type"] == "DFA"


def test_dfa_requires_owner_of_the_players_team(repo):
    with pytest.raises(AuthorizationError) as exc:
        designate_for_assignment(repo, BOS_OWNER, "p_judge", "NYY", now=JUNE_1)
    assert exc.value.code == NOT_TEAM_OWNER

    with pytest.raises(StateConflictError) as exc:
        designate_for_assignment(repo, BOS_OWNER, "p_judge", "BOS", now=JUNE_1)
    assert exc.value.code == PLAYER_NOT_ROSTERED

    with pytest.raises(ValidationError) as exc:
        designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", "trade", now=JUNE_1)
    assert exc.value.code == INVALID_CLEAR_ACTION


def test_claim_rules(repo):
    designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", now=JUNE_1)

    claim = submit_claim(repo, BOS_OWNER, "p_judge", "BOS", now=JUNE_1 + HOUR)
    assert claim["priority"] == 0

    with pytest.raises(StateConflictError) as exc:
        submit_claim(repo, BOS_OWNER, "p_judge", "BOS", now=JUNE_1 + 2 * HOUR)
    assert exc.value.code == DUPLICATE_CLAIM

    with pytest.raises(StateConflictError) as exc:
        submit_claim(repo, NYY_OWNER, "p_judge", "NYY", now=JUNE_1 + 2 * HOUR)
    assert exc.value.code == OWN_PLAYER_CLAIM

    with pytest.raises(StateConflictError) as exc:
        submit_claim(repo, TB_OWNER, "p_judge", "TB", now=WAIVERS_END)
    assert exc.value.code == PLAYER_NOT_ON_WAIVERS

    with pytest.raises(StateConflictError) as exc:
        submit_claim(repo, TB_OWNER, "p_devers", "TB", now=JUNE_1)
    assert exc.value.code == PLAYER_NOT_ON_WAIVERS

    assert len(_claims(repo, "p_judge", CLAIM_PENDING)) == 1


def test_first_claim_wins(repo):
    designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", now=JUNE_1)
    submit_claim(repo, BOS_OWNER, "p_judge", "BOS", now=JUNE_1 + HOUR)
    submit_claim(repo, TB_OWNER, "p_judge", "TB", now=JUNE_1 + 2 * HOUR)

    assert resolve_expired_waivers(repo, now=WAIVERS_END - HOUR) == []
    results = resolve_expired_waivers(repo, now=WAIVERS_END)
    assert len(results) == 1
    assert results[0]["outcome"] == "claimed"
    assert results[0]["team_id"] == "BOS"

    p = repo.get_player("p_judge")
    assert p["fa_status"] == FA_ROSTERED
    assert p["team_id"] == "BOS"
    assert p["status_40_man"] is True
    assert p["waiving_team_id"] is None
    # Contract travels with the claimed player.
    assert p["contract"]["2026"] == "$20,000,000"

    statuses = {c["team_id"]: c["status"] for c in _claims(repo, "p_judge")}
    assert statuses == {"BOS": CLAIM_PROCESSED, "TB": CLAIM_INVALID}
    assert repo.list_dead_cap(team_id="NYY") == []


def test_unclaimed_release_charges_dead_cap(repo):
    designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", now=JUNE_1)
    results = resolve_expired_waivers(repo, now=WAIVERS_END)
    assert results[0]["outcome"] == "released"

    p = repo.get_player("p_judge")
    assert p["fa_status"] == FA_AVAILABLE
    assert p["team_id"] is None
    assert p["contract"] == {}

    charges = [(d["year"], d["amount"], d["source"]) for d in repo.list_dead_cap(team_id="NYY")]
    assert charges == [(2026, 15_000_000, DEAD_CAP_DFA_RELEASE), (2027, 10_000_000, DEAD_CAP_DFA_RELEASE)]
    txs = repo.list_transactions(league_id=LEAGUE, player_id="p_judge", tx_type=TX_DROP)
    assert len(txs) == 1


def test_unclaimed_minors_outrights_to_waiving_team(repo):
    designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", CLEAR_MINORS, now=JUNE_1)
    results = resolve_expired_waivers(repo, now=WAIVERS_END)
    assert results[0]["outcome"] == "outrighted"

    p = repo.get_player("p_judge")
    assert p["fa_status"] == FA_ROSTERED
    assert p["team_id"] == "NYY"
    assert p["status_40_man"] is False
    assert p["status_26_man"] is False
    assert repo.list_dead_cap(team_id="NYY") == []


def test_heal_releases_players_missing_from_feed(repo):
    designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", now=JUNE_1)
    designate_for_assignment(repo, NYY_OWNER, "p_cole", "NYY", now=JUNE_1)
    submit_claim(repo, BOS_OWNER, "p_judge", "BOS", now=JUNE_1 + HOUR)

    def feed(league_id):
        assert league_id == LEAGUE
        return ["p_cole"]

    healed = heal_stale_waivers(repo, LEAGUE, feed, now=JUNE_1 + 2 * HOUR)
    assert healed == ["p_judge"]

    assert repo.get_player("p_judge")["fa_status"] == FA_AVAILABLE
    assert repo.get_player("p_cole")["fa_status"] == FA_ON_WAIVERS
    assert [c["status"] for c in _claims(repo, "p_judge")] == [CLAIM_INVALID]
    assert repo.list_dead_cap(team_id="NYY") == []

    assert heal_stale_waivers(repo, LEAGUE, feed, now=JUNE_1 + 3 * HOUR) == []


def test_one_failed_release_does_not_block_the_batch(repo):
    designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", now=JUNE_1)
    designate_for_assignment(repo, NYY_OWNER, "p_cole", "NYY", now=JUNE_1)
    row = repo.get_player("p_cole")
    with repo.transaction() as cur:
        repo.update_player("p_cole", {"contract": {"2026": "garbage"}}, expected_version=row["version"], cur=cur)

    results = resolve_expired_waivers(repo, now=WAIVERS_END)
    assert [(r["player_id"], r["outcome"]) for r in results] == [("p_judge", "released")]
    assert repo.get_player("p_judge")["fa_status"] == FA_AVAILABLE

    cole = repo.get_player("p_cole")
    assert cole["fa_status"] == FA_ON_WAIVERS
    assert cole["team_id"] == "NYY"
    assert repo.list_transactions(league_id=LEAGUE, player_id="p_cole", tx_type=TX_DROP) == []
    assert {d["player_id"] for d in repo.list_dead_cap(team_id="NYY")} == {"p_judge"}

    with repo.transaction() as cur:
        repo.update_player("p_cole", {"contract": {"2026": "$30,000,000"}}, expected_version=cole["version"], cur=cur)
    results = resolve_expired_waivers(repo, now=WAIVERS_END + HOUR)
    assert [(r["player_id"], r["outcome"]) for r in results] == [("p_cole", "released")]
    assert repo.get_player("p_cole")["fa_status"] == FA_AVAILABLE
    charges = [(d["year"], d["amount"]) for d in repo.list_dead_cap(team_id="NYY") if d["player_id"] == "p_cole"]
    assert charges == [(2026, 22_500_000)]
