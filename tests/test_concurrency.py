import threading

import pytest

from auction import submit_bid
from conftest import BOS_OWNER, JUNE_1, NYY_OWNER, TB_OWNER
from errors import CONCURRENT_UPDATE, LedgerError, StateConflictError
from league_repo import LeagueRepo
from trades import accept_trade, propose_trade
from waivers import designate_for_assignment


def _race(db_path, *jobs):
    """Run each job(repo) on its own thread and connection; return (results, errors)."""
    barrier = threading.Barrier(len(jobs))
    results, errors = [], []
    lock = threading.Lock()

    def runner(job):
        with LeagueRepo(db_path) as repo:
            barrier.wait()
            try:
                out = job(repo)
            except LedgerError as exc:
                with lock:
                    errors.append(exc)
            else:
                with lock:
                    results.append(out)

    threads = [threading.Thread(target=runner, args=(job,)) for job in jobs]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results, errors


def test_equal_bids_one_winner(repo, db_path):
    results, errors = _race(
        db_path,
        lambda r: submit_bid(r, BOS_OWNER, "p_fa", 2, 3_000_000, now=JUNE_1),
        lambda r: submit_bid(r, TB_OWNER, "p_fa", 2, 3_000_000, now=JUNE_1),
    )
    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], StateConflictError)

    p = repo.get_player("p_fa")
    assert p["pending_bid_team_id"] == results[0]["team_id"]
    assert len(p["bid_history"]) == 1


def test_trade_accept_versus_dfa(repo, db_path):
    trade_id = propose_trade(
        repo, NYY_OWNER, "NYY", "BOS", offered_player_ids=["p_judge"], requested_player_ids=["p_devers"], now=JUNE_1
    )["trade_id"]

    results, errors = _race(
        db_path,
        lambda r: accept_trade(r, BOS_OWNER, trade_id, now=JUNE_1),
        lambda r: designate_for_assignment(r, NYY_OWNER, "p_judge", "NYY", now=JUNE_1),
    )
    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], StateConflictError)

    judge = repo.get_player("p_judge")
    if "retention_pct" in results[0]:
        assert judge["team_id"] == "BOS"
        assert judge["fa_status"] == "rostered"
    else:
        assert judge["fa_status"] == "on_waivers"
        assert repo.get_player("p_devers")["team_id"] == "BOS"


def test_stale_version_is_rejected(repo):
    row = repo.get_player("p_judge")
    with repo.transaction() as cur:
        repo.update_player("p_judge", {"option_years_used": 1}, expected_version=row["version"], cur=cur)

    with pytest.raises(StateConflictError) as exc:
        with repo.transaction() as cur:
            repo.update_player("p_judge", {"option_years_used": 2}, expected_version=row["version"], cur=cur)
    assert exc.value.code == CONCURRENT_UPDATE
    assert repo.get_player("p_judge")["option_years_used"] == 1
