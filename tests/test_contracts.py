import pytest

from conftest import BOS_OWNER, COMMISSIONER, JUNE_1, LEAGUE, NYY_OWNER
from contracts import (
    add_dead_cap,
    decline_option,
    delete_dead_cap,
    exercise_option,
    list_dead_cap,
    list_pending_actions,
    list_team_options,
    process_action,
    submit_arbitration,
    submit_extension,
    submit_restructure,
    team_payroll,
)
from errors import (
    ACTION_NOT_FOUND,
    ACTION_STATUS,
    DEADLINE_PASSED,
    ILLEGAL_TRANSITION,
    INVALID_INPUT,
    INVALID_YEARS,
    NOT_COMMISSIONER,
    NOT_TEAM_OWNER,
    PENALTY_NOT_FOUND,
    AuthorizationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from league_calendar import set_league_date
from schema import (
    ACTION_APPROVED,
    ACTION_PENDING,
    ACTION_REJECTED,
    DATE_EXTENSION_DEADLINE,
    DATE_OPTION_DEADLINE,
    DEAD_CAP_ADMIN,
    DEAD_CAP_TEAM_OPTION,
    FA_AVAILABLE,
)


# ---------------------------------------------------------------------------
# Payroll and dead cap
# ---------------------------------------------------------------------------

def test_payroll_counts_dollar_years_and_dead_cap(repo):
    payroll = team_payroll(repo, "NYY", 2026)
    assert payroll["active_payroll"] == 50_000_000
    assert payroll["dead_cap"] == 0
    assert payroll["tax_space"] is None

    add_dead_cap(repo, COMMISSIONER, "NYY", 1_000_000, 2026, "Buyout", now=JUNE_1)
    repo.upsert_league_settings(LEAGUE, 2026, {"luxury_tax_limit": 60_000_000})
    payroll = team_payroll(repo, "NYY", 2026)
    assert payroll["total_payroll"] == 51_000_000
    assert payroll["tax_space"] == 9_000_000

    # Team option years count toward payroll.
    assert team_payroll(repo, "NYY", 2027)["active_payroll"] == 28_000_000


def test_dead_cap_admin(repo):
    with pytest.raises(AuthorizationError) as exc:
        add_dead_cap(repo, NYY_OWNER, "NYY", 1_000_000, 2026, "nope", now=JUNE_1)
    assert exc.value.code == NOT_COMMISSIONER

    with pytest.raises(ValidationError):
        add_dead_cap(repo, COMMISSIONER, "NYY", 0, 2026, "zero", now=JUNE_1)
    with pytest.raises(ValidationError):
        add_dead_cap(repo, COMMISSIONER, "NYY", 5, 1990, "old", now=JUNE_1)

    out = add_dead_cap(repo, COMMISSIONER, "NYY", 2_500_000, 2027, "", player_id="p_judge", now=JUNE_1)
    assert out["note"] == "Commissioner Adjustment"
    rows = list_dead_cap(repo, "NYY", 2027)
    assert [(r["amount"], r["source"], r["player_id"]) for r in rows] == [(2_500_000, DEAD_CAP_ADMIN, "p_judge")]

    delete_dead_cap(repo, COMMISSIONER, out["penalty_id"], now=JUNE_1)
    assert list_dead_cap(repo, "NYY") == []

    with pytest.raises(NotFoundError) as exc:
        delete_dead_cap(repo, COMMISSIONER, out["penalty_id"], now=JUNE_1)
    assert exc.value.code == PENALTY_NOT_FOUND


# ---------------------------------------------------------------------------
# Team options
# ---------------------------------------------------------------------------

def test_list_team_options(repo):
    options = list_team_options(repo, "NYY", 2027)
    assert [(o["player_id"], o["salary"], o["buyout"]) for o in options] == [("p_cole", 8_000_000, 2_400_000)]
    assert list_team_options(repo, "BOS", 2027) == []


def test_exercise_option_guarantees_salary(repo):
    out = exercise_option(repo, NYY_OWNER, "p_cole", 2027, now=JUNE_1)
    assert out["salary"] == 8_000_000
    assert repo.get_player("p_cole")["contract"]["2027"] == "$8,000,000"

    with pytest.raises(StateConflictError) as exc:
        exercise_option(repo, NYY_OWNER, "p_cole", 2027, now=JUNE_1)
    assert exc.value.code == ILLEGAL_TRANSITION


def test_decline_option_charges_buyout_and_releases(repo):
    out = decline_option(repo, NYY_OWNER, "p_cole", 2027, now=JUNE_1)
    assert out["buyout"] == 2_400_000

    p = repo.get_player("p_cole")
    assert p["fa_status"] == FA_AVAILABLE
    assert p["team_id"] is None
    assert p["contract"] == {"2026": "$30,000,000"}

    rows = list_dead_cap(repo, "NYY", 2027)
    assert [(r["amount"], r["source"]) for r in rows] == [(2_400_000, DEAD_CAP_TEAM_OPTION)]


def test_option_rules(repo):
    with pytest.raises(AuthorizationError) as exc:
        exercise_option(repo, BOS_OWNER, "p_cole", 2027, now=JUNE_1)
    assert exc.value.code == NOT_TEAM_OWNER

    with pytest.raises(StateConflictError) as exc:
        decline_option(repo, NYY_OWNER, "p_judge", 2027, now=JUNE_1)
    assert exc.value.code == ILLEGAL_TRANSITION

    with pytest.raises(ValidationError):
        exercise_option(repo, NYY_OWNER, "p_cole", "next", now=JUNE_1)

    set_league_date(repo, COMMISSIONER, LEAGUE, 2026, DATE_OPTION_DEADLINE, "2026-05-15", now=JUNE_1)
    with pytest.raises(StateConflictError) as exc:
        exercise_option(repo, NYY_OWNER, "p_cole", 2027, now=JUNE_1)
    assert exc.value.code == DEADLINE_PASSED


def test_commissioner_may_decide_options(repo):
    exercise_option(repo, COMMISSIONER, "p_cole", 2027, now=JUNE_1)
    assert repo.get_player("p_cole")["contract"]["2027"] == "$8,000,000"


# ---------------------------------------------------------------------------
# Requests needing commissioner approval
# ---------------------------------------------------------------------------

def test_arbitration_waits_for_approval(repo):
    out = submit_arbitration(repo, BOS_OWNER, "p_arb", 2027, 3_000_000, now=JUNE_1)
    assert out["status"] == ACTION_PENDING
    assert repo.get_player("p_arb")["contract"]["2027"] == "ARB 2"
    assert [a["action_id"] for a in list_pending_actions(repo, LEAGUE)] == [out["action_id"]]

    with pytest.raises(StateConflictError) as exc:
        submit_arbitration(repo, BOS_OWNER, "p_arb", 2027, 3_500_000, now=JUNE_1)
    assert exc.value.code == ACTION_STATUS

    with pytest.raises(AuthorizationError):
        process_action(repo, BOS_OWNER, out["action_id"], "APPROVED", now=JUNE_1)

    result = process_action(repo, COMMISSIONER, out["action_id"], "approved", now=JUNE_1)
    assert result["status"] == ACTION_APPROVED
    assert repo.get_player("p_arb")["contract"]["2027"] == "$3,000,000"
    assert list_pending_actions(repo, LEAGUE) == []

    with pytest.raises(StateConflictError) as exc:
        process_action(repo, COMMISSIONER, out["action_id"], "REJECTED", now=JUNE_1)
    assert exc.value.code == ACTION_STATUS


def test_arbitration_validation(repo):
    with pytest.raises(StateConflictError) as exc:
        submit_arbitration(repo, BOS_OWNER, "p_arb", 2026, 3_000_000, now=JUNE_1)
    assert exc.value.code == ILLEGAL_TRANSITION

    with pytest.raises(ValidationError) as exc:
        submit_arbitration(repo, BOS_OWNER, "p_arb", 2027, -1, now=JUNE_1)
    assert exc.value.code == INVALID_INPUT

    with pytest.raises(ValidationError) as exc:
        submit_arbitration(repo, BOS_OWNER, "p_arb", 2099, 1_000_000, now=JUNE_1)
    assert exc.value.code == INVALID_YEARS


def test_declining_arbitration_releases_player(repo):
    out = submit_arbitration(repo, BOS_OWNER, "p_arb", 2028, decline=True, now=JUNE_1)
    assert out["released"] is True
    p = repo.get_player("p_arb")
    assert p["fa_status"] == FA_AVAILABLE
    assert p["team_id"] is None


def test_extension_fills_first_open_years(repo):
    out = submit_extension(repo, NYY_OWNER, "p_judge", 3, 25_000_000, now=JUNE_1)
    assert out["years"] == [2028, 2029, 2030]

    process_action(repo, COMMISSIONER, out["action_id"], "APPROVED", now=JUNE_1)
    contract = repo.get_player("p_judge")["contract"]
    assert contract["2027"] == "$20,000,000"
    assert [contract[str(y)] for y in (2028, 2029, 2030)] == ["$25,000,000"] * 3


def test_extension_rules(repo):
    with pytest.raises(ValidationError) as exc:
        submit_extension(repo, NYY_OWNER, "p_judge", 9, 25_000_000, now=JUNE_1)
    assert exc.value.code == INVALID_YEARS

    with pytest.raises(StateConflictError) as exc:
        submit_extension(repo, BOS_OWNER, "p_arb", 2, 5_000_000, now=JUNE_1)
    assert exc.value.code == ILLEGAL_TRANSITION

    set_league_date(repo, COMMISSIONER, LEAGUE, 2026, DATE_EXTENSION_DEADLINE, "2026-04-01", now=JUNE_1)
    with pytest.raises(StateConflictError) as exc:
        submit_extension(repo, NYY_OWNER, "p_judge", 2, 25_000_000, now=JUNE_1)
    assert exc.value.code == DEADLINE_PASSED


def test_restructure_moves_salary_between_years(repo):
    out = submit_restructure(repo, NYY_OWNER, "p_judge", 2026, 2027, 5_000_000, now=JUNE_1)
    process_action(repo, COMMISSIONER, out["action_id"], "APPROVED", now=JUNE_1)
    contract = repo.get_player("p_judge")["contract"]
    assert contract["2026"] == "$15,000,000"
    assert contract["2027"] == "$25,000,000"


def test_restructure_rules(repo):
    with pytest.raises(ValidationError) as exc:
        submit_restructure(repo, NYY_OWNER, "p_judge", 2026, 2026, 1_000_000, now=JUNE_1)
    assert exc.value.code == INVALID_YEARS

    with pytest.raises(StateConflictError) as exc:
        submit_restructure(repo, NYY_OWNER, "p_judge", 2026, 2027, 25_000_000, now=JUNE_1)
    assert exc.value.code == ILLEGAL_TRANSITION

    with pytest.raises(StateConflictError) as exc:
        submit_restructure(repo, NYY_OWNER, "p_prospect", 2026, 2027, 1, now=JUNE_1)
    assert exc.value.code == ILLEGAL_TRANSITION


def test_rejected_request_changes_nothing(repo):
    out = submit_restructure(repo, NYY_OWNER, "p_judge", 2026, 2027, 5_000_000, now=JUNE_1)
    result = process_action(repo, COMMISSIONER, out["action_id"], "REJECTED", now=JUNE_1)
    assert result["status"] == ACTION_REJECTED
    assert repo.get_player("p_judge")["contract"]["2026"] == "$20,000,000"
    assert list_pending_actions(repo, LEAGUE, status=ACTION_REJECTED)[0]["action_id"] == out["action_id"]


def test_process_action_input(repo):
    with pytest.raises(ValidationError):
        process_action(repo, COMMISSIONER, "A123", "MAYBE", now=JUNE_1)
    with pytest.raises(NotFoundError) as exc:
        process_action(repo, COMMISSIONER, "A123", "APPROVED", now=JUNE_1)
    assert exc.value.code == ACTION_NOT_FOUND
