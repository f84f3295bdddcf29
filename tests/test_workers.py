import asyncio
import datetime as _dt

from auction import submit_bid
from conftest import NYY_OWNER
from schema import FA_ROSTERED, utc_now
from waivers import designate_for_assignment
from workers import PeriodicWorker, auction_tick, build_workers, waiver_tick


def test_run_once_returns_tick_result():
    worker = PeriodicWorker("demo", 60, lambda: ["done"])
    assert asyncio.run(worker.run_once()) == ["done"]
    assert (worker.ticks, worker.failures) == (1, 0)


def test_failed_tick_is_counted_not_raised():
    def boom():
        raise RuntimeError("db down")

    worker = PeriodicWorker("demo", 60, boom)
    assert asyncio.run(worker.run_once()) is None
    assert (worker.ticks, worker.failures) == (1, 1)


def test_start_and_stop_loop():
    calls = []
    worker = PeriodicWorker("demo", 0.01, lambda: calls.append(1))

    async def scenario():
        await worker.start()
        assert worker.is_running
        await asyncio.sleep(0.1)
        await worker.stop()

    asyncio.run(scenario())
    assert not worker.is_running
    assert len(calls) >= 1


def test_build_workers(db_path):
    names = [(w.name, w.interval) for w in build_workers(db_path, auction_interval=5, waiver_interval=7)]
    assert names == [("auction", 5.0), ("waivers", 7.0), ("seasonal", 3600.0)]


def test_auction_tick_finalizes_due_players(repo, db_path):
    submit_bid(repo, NYY_OWNER, "p_fa", 1, 2_000_000, now=utc_now() - _dt.timedelta(days=2))
    results = auction_tick(db_path)
    assert [r["player_id"] for r in results] == ["p_fa"]
    assert repo.get_player("p_fa")["fa_status"] == FA_ROSTERED
    assert auction_tick(db_path) == []


def test_waiver_tick_resolves_due_players(repo, db_path):
    designate_for_assignment(repo, NYY_OWNER, "p_judge", "NYY", now=utc_now() - _dt.timedelta(days=3))
    results = waiver_tick(db_path)
    assert [(r["player_id"], r["outcome"]) for r in results] == [("p_judge", "released")]
