import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

from conftest import JUNE_1  # noqa: E402
from notifications import NullNotifier  # noqa: E402
from server import create_app  # noqa: E402

NYY = {"X-User-Id": "u_nyy"}
BOS = {"X-User-Id": "u_bos"}
COMM = {"X-User-Id": "u_comm"}
ADMIN = {"X-User-Id": "ops", "X-Admin": "true"}


@pytest.fixture
def client(repo, db_path):
    app = create_app(db_path, start_workers=False, notifier=NullNotifier(), clock=lambda: JUNE_1)
    with TestClient(app) as c:
        yield c


def test_root(client):
    assert client.get("/").json()["ok"] is True


def test_writes_require_a_caller(client):
    r = client.post("/api/players/p_fa/bids", json={"years": 1, "aav": 2_000_000})
    assert r.status_code == 401


def test_bid_flow_and_error_mapping(client):
    r = client.post("/api/players/p_fa/bids", json={"years": 1, "aav": 2_000_000}, headers=NYY)
    assert r.status_code == 200
    assert r.json()["bid"]["team_id"] == "NYY"

    r = client.post("/api/players/p_fa/bids", json={"years": 1, "aav": 2_000_000}, headers=BOS)
    assert r.status_code == 409
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "BID_TOO_LOW"

    r = client.post("/api/players/p_fa/bids", json={"years": 9, "aav": 2_000_000}, headers=BOS)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_YEARS"

    r = client.post("/api/players/p_fa/bids", json={"years": 1}, headers=BOS)
    assert r.status_code == 422

    bids = client.get("/api/players/p_fa/bids").json()["bids"]
    assert len(bids) == 1
    auctions = client.get("/api/leagues/L1/auctions").json()["auctions"]
    assert [a["player_id"] for a in auctions] == ["p_fa"]


def test_not_found(client):
    r = client.get("/api/players/nobody")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "PLAYER_NOT_FOUND"
    assert client.get("/api/trades/TMISSING").status_code == 404


def test_trade_accept_and_reverse(client):
    r = client.post(
        "/api/trades",
        json={
            "proposing_team_id": "NYY",
            "receiving_team_id": "BOS",
            "offered_player_ids": ["p_judge"],
            "requested_player_ids": ["p_devers"],
        },
        headers=NYY,
    )
    assert r.status_code == 200
    trade_id = r.json()["trade"]["trade_id"]

    assert client.post(f"/api/trades/{trade_id}/accept", headers=NYY).status_code == 403
    r = client.post(f"/api/trades/{trade_id}/accept", headers=BOS)
    assert r.status_code == 200
    assert client.get("/api/players/p_judge").json()["player"]["team_id"] == "BOS"

    assert client.post(f"/api/trades/{trade_id}/reverse", headers=NYY).status_code == 403
    r = client.post(f"/api/trades/{trade_id}/reverse", headers=COMM)
    assert r.status_code == 200
    assert r.json()["trade"]["status"] == "REVERSED"
    assert client.get("/api/players/p_judge").json()["player"]["team_id"] == "NYY"

    trades = client.get("/api/leagues/L1/trades", params={"status": "REVERSED"}).json()["trades"]
    assert [t["trade_id"] for t in trades] == [trade_id]


def test_dfa_and_claim(client):
    r = client.post("/api/players/p_judge/dfa", json={"clear_action": "minors"}, headers=NYY)
    assert r.status_code == 200
    assert r.json()["dfa"]["team_id"] == "NYY"

    r = client.post("/api/players/p_judge/claims", json={}, headers=BOS)
    assert r.status_code == 200
    claims = client.get("/api/players/p_judge/claims").json()["claims"]
    assert [c["team_id"] for c in claims] == ["BOS"]


def test_roster_moves(client):
    r = client.post("/api/players/p_judge/roster-moves", json={"action": "option"}, headers=NYY)
    assert r.status_code == 200
    assert r.json()["move"]["move"] == "OPTION"

    assert client.post("/api/players/p_judge/roster-moves", json={"action": "il"}, headers=NYY).status_code == 400
    assert client.post("/api/players/p_judge/roster-moves", json={"action": "fly"}, headers=NYY).status_code == 400
    r = client.post("/api/players/p_judge/roster-moves", json={"action": "il", "days": 10}, headers=NYY)
    assert r.status_code == 200

    roster = client.get("/api/teams/NYY/roster").json()["roster"]
    assert {p["player_id"] for p in roster} == {"p_judge", "p_cole", "p_prospect"}


def test_contract_requests(client):
    r = client.post("/api/players/p_judge/restructure", json={"from_year": 2026, "to_year": 2027, "amount": 1_000_000}, headers=NYY)
    assert r.status_code == 200
    action_id = r.json()["action"]["action_id"]

    pending = client.get("/api/leagues/L1/actions").json()["actions"]
    assert [a["action_id"] for a in pending] == [action_id]

    assert client.post(f"/api/actions/{action_id}", json={"decision": "APPROVED"}, headers=NYY).status_code == 403
    r = client.post(f"/api/actions/{action_id}", json={"decision": "APPROVED"}, headers=COMM)
    assert r.status_code == 200
    assert client.get("/api/players/p_judge").json()["player"]["contract"]["2026"] == "$19,000,000"

    options = client.get("/api/teams/NYY/options", params={"year": 2027}).json()["options"]
    assert [o["player_id"] for o in options] == ["p_cole"]
    assert client.post("/api/players/p_cole/options/2027/maybe", headers=NYY).status_code == 400


def test_dead_cap_and_payroll(client):
    r = client.post("/api/teams/NYY/dead-cap", json={"amount": 1_000_000, "year": 2026, "note": "fine"}, headers=COMM)
    assert r.status_code == 200
    penalty_id = r.json()["dead_cap"]["penalty_id"]

    payroll = client.get("/api/teams/NYY/payroll", params={"year": 2026}).json()["payroll"]
    assert payroll["dead_cap"] == 1_000_000
    assert payroll["total_payroll"] == 51_000_000

    assert client.delete(f"/api/dead-cap/{penalty_id}", headers=NYY).status_code == 403
    assert client.delete(f"/api/dead-cap/{penalty_id}", headers=COMM).status_code == 200
    assert client.get("/api/teams/NYY/dead-cap").json()["dead_cap"] == []


def test_calendar_and_settings(client):
    r = client.put("/api/leagues/L1/dates/2026/trade_deadline", json={"event_date": "2026-07-31"}, headers=COMM)
    assert r.status_code == 200
    r = client.put("/api/leagues/L1/dates/2026/not_a_date_type", json={"event_date": "2026-07-31"}, headers=COMM)
    assert r.status_code == 400

    r = client.put("/api/leagues/L1/settings/2026", json={"roster_40_limit": 41}, headers=COMM)
    assert r.status_code == 200
    settings = client.get("/api/leagues/L1/settings/2026").json()["settings"]
    assert settings["roster_40_limit"] == 41
    assert settings["roster_26_limit"] == 26

    assert client.put("/api/leagues/L1/settings/2026", json={"roster_40_limit": 1}, headers=NYY).status_code == 403

    txs = client.get("/api/leagues/L1/transactions", params={"tx_type": "COMMISSIONER"}).json()["transactions"]
    assert len(txs) == 2


def test_seasonal_run_is_admin_only(client):
    assert client.post("/api/admin/seasonal/run", headers=NYY).status_code == 403
    r = client.post("/api/admin/seasonal/run", headers=ADMIN)
    assert r.status_code == 200
    assert isinstance(r.json()["ran"], list)
