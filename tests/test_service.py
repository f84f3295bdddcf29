import pytest

from conftest import BOS_OWNER, JUNE_1, NYY_OWNER, RecordingNotifier
from errors import DB_ERROR, NotFoundError, PersistenceError
from league_repo import LeagueRepo
from league_service import LeagueService, init_or_migrate_db
from schema import FA_ON_WAIVERS, FA_PENDING_BID


@pytest.fixture
def service(repo):
    return LeagueService(repo, notifier=RecordingNotifier(), clock=lambda: JUNE_1)


def test_service_uses_injected_clock(service):
    bid = service.submit_bid(NYY_OWNER, "p_fa", 1, 2_000_000)
    assert bid["bid_end_time"] == "2026-06-02T12:00:00Z"
    assert service.get_player("p_fa")["fa_status"] == FA_PENDING_BID
    assert service.notifier.sent[0][1] == "transactions"


def test_dfa_and_claim_through_service(service):
    service.designate_for_assignment(NYY_OWNER, "p_judge")
    assert service.get_player("p_judge")["fa_status"] == FA_ON_WAIVERS
    service.submit_claim(BOS_OWNER, "p_judge")
    assert [c["team_id"] for c in service.list_claims("p_judge")] == ["BOS"]


def test_driver_errors_become_persistence_errors(db_path):
    repo = LeagueRepo(db_path)
    repo.init_db()
    service = LeagueService(repo)
    repo.close()

    with pytest.raises(PersistenceError) as exc:
        service.get_player("p_fa")
    assert exc.value.code == DB_ERROR
    assert exc.value.details == {"op": "get_player"}


def test_domain_errors_pass_through(service):
    with pytest.raises(NotFoundError):
        service.team_roster("NOPE")


def test_my_teams(service):
    assert service.my_teams(NYY_OWNER, "L1") == ["NYY"]


def test_open_initializes_schema(tmp_path):
    db = str(tmp_path / "fresh.db")
    init_or_migrate_db(db)
    with LeagueService.open(db) as svc:
        assert svc.list_players() == []
