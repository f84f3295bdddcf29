import datetime as _dt

from conftest import JUNE_1, NYY_OWNER
from roster import option_to_minors, place_on_injured_list
from schema import TX_SEASONAL
from workers import IL_CLEAR_KEY, MemoryRunMarkers, SqliteRunMarkers, run_seasonal_resets

NOV_1 = _dt.datetime(2026, 11, 1, 6, 0, tzinfo=_dt.timezone.utc)
OCT_15 = _dt.datetime(2026, 10, 15, 6, 0, tzinfo=_dt.timezone.utc)


def test_option_reset_runs_once_per_year(repo):
    option_to_minors(repo, NYY_OWNER, "p_judge", now=JUNE_1)
    markers = MemoryRunMarkers()

    ran = run_seasonal_resets(repo, markers=markers, now=NOV_1)
    assert ran == [{"job": "option_reset", "key": "seasonal_option_reset_2026", "count": 1}]
    assert repo.get_player("p_judge")["option_years_used"] == 0

    # Options used after the reset survive later ticks the same day.
    option_to_minors(repo, NYY_OWNER, "p_cole", now=NOV_1)
    assert run_seasonal_resets(repo, markers=markers, now=NOV_1 + _dt.timedelta(hours=1)) == []
    assert repo.get_player("p_cole")["option_years_used"] == 1
    assert "seasonal_option_reset_2026" in markers.snapshot()


def test_il_clear(repo):
    place_on_injured_list(repo, NYY_OWNER, "p_cole", 60, now=JUNE_1)
    place_on_injured_list(repo, NYY_OWNER, "p_judge", 10, now=JUNE_1)

    ran = run_seasonal_resets(repo, markers=MemoryRunMarkers(), now=OCT_15)
    assert [(r["job"], r["count"]) for r in ran] == [("il_clear", 2)]

    for pid in ("p_cole", "p_judge"):
        p = repo.get_player(pid)
        assert p["status_il"] is None
        assert p["il_start_date"] is None
        assert p["status_26_man"] is False
    # Clearing the IL does not restore a 40-man spot given up for a 60-day stint.
    assert repo.get_player("p_cole")["status_40_man"] is False
    assert repo.get_player("p_judge")["status_40_man"] is True

    logged = repo.list_transactions(tx_type=TX_SEASONAL)
    assert logged[0]["summary"] == "End of season IL clear: 2 players activated"


def test_nothing_runs_on_other_days(repo):
    option_to_minors(repo, NYY_OWNER, "p_judge", now=JUNE_1)
    for day in (OCT_15 + _dt.timedelta(days=1), NOV_1 - _dt.timedelta(days=1), JUNE_1):
        assert run_seasonal_resets(repo, markers=MemoryRunMarkers(), now=day) == []
    assert repo.get_player("p_judge")["option_years_used"] == 1


def test_sqlite_markers_persist_with_the_job(repo):
    place_on_injured_list(repo, NYY_OWNER, "p_judge", 10, now=JUNE_1)
    markers = SqliteRunMarkers(repo)

    assert run_seasonal_resets(repo, now=OCT_15)[0]["count"] == 1
    key = IL_CLEAR_KEY.format(year=2026)
    assert repo.get_counter(key) == "2026-10-15T06:00:00Z"
    assert run_seasonal_resets(repo, now=OCT_15) == []

    markers.reset(key)
    assert run_seasonal_resets(repo, now=OCT_15)[0]["count"] == 0
