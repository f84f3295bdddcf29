import sqlite3

import pandas as pd
import pytest

from conftest import JUNE_1
from errors import INVALID_CONTRACT_TERM, ValidationError
from league_repo import LeagueRepo, main
from ledger_ops import log_transaction
from schema import FA_AVAILABLE, FA_ROSTERED, TX_COMMISSIONER

TEAMS = [
    {"team_id": "SEA", "league_id": "L2", "league_name": "Second League", "name": "Mariners", "isbp_balance": "$250,000", "owner_user_id": "u_sea"},
    {"team_id": "HOU", "league_id": "L2", "league_name": "Second League", "name": "Astros", "isbp_balance": "", "owner_user_id": ""},
]

PLAYERS = [
    {
        "player_id": "p_julio",
        "league_id": "L2",
        "first_name": "Julio",
        "last_name": "Rodriguez",
        "position": "CF",
        "team_id": "SEA",
        "status_40_man": "Y",
        "status_26_man": "Y",
        "contract_2026": "$15,000,000",
        "contract_2027": "ARB 2",
    },
    {
        "player_id": "p_free",
        "league_id": "L2",
        "first_name": "Free",
        "last_name": "Agent",
        "position": "RP",
        "team_id": "",
        "status_40_man": "",
        "status_26_man": "",
        "contract_2026": "",
        "contract_2027": "",
    },
]


@pytest.fixture
def empty_repo(db_path):
    repo = LeagueRepo(db_path)
    repo.init_db()
    yield repo
    repo.close()


def test_import_from_csv(empty_repo, tmp_path):
    teams_csv = tmp_path / "teams.csv"
    players_csv = tmp_path / "players.csv"
    pd.DataFrame(TEAMS).to_csv(teams_csv, index=False)
    pd.DataFrame(PLAYERS).to_csv(players_csv, index=False)

    assert empty_repo.import_teams_file(teams_csv) == 2
    assert empty_repo.import_players_file(players_csv) == 2

    assert empty_repo.get_team("SEA")["isbp_balance"] == 250_000
    assert empty_repo.get_team("HOU")["isbp_balance"] == 0
    assert empty_repo.is_team_owner("SEA", "u_sea")

    julio = empty_repo.get_player("p_julio")
    assert julio["fa_status"] == FA_ROSTERED
    assert julio["status_26_man"] is True
    assert julio["contract"] == {"2026": "$15,000,000", "2027": "ARB 2"}

    free = empty_repo.get_player("p_free")
    assert free["fa_status"] == FA_AVAILABLE
    assert free["team_id"] is None
    assert free["contract"] == {}

    empty_repo.validate_integrity()


def test_import_from_excel(empty_repo, tmp_path):
    pytest.importorskip("openpyxl")
    path = tmp_path / "players.xlsx"
    pd.DataFrame(PLAYERS[1:]).to_excel(path, index=False, engine="openpyxl")
    assert empty_repo.import_players_file(path) == 1
    assert empty_repo.get_player("p_free")["name"] == "Free Agent"


def test_import_rejects_bad_files(empty_repo, tmp_path):
    missing = tmp_path / "missing.csv"
    pd.DataFrame([{"player_id": "x"}]).to_csv(missing, index=False)
    with pytest.raises(ValueError):
        empty_repo.import_players_file(missing)

    dup = tmp_path / "dup.csv"
    pd.DataFrame(PLAYERS[1:] * 2).to_csv(dup, index=False)
    with pytest.raises(ValueError):
        empty_repo.import_players_file(dup)

    bad_term = tmp_path / "bad_term.csv"
    pd.DataFrame([dict(PLAYERS[1], contract_2026="lots of money")]).to_csv(bad_term, index=False)
    with pytest.raises(ValidationError) as exc:
        empty_repo.import_players_file(bad_term)
    assert exc.value.code == INVALID_CONTRACT_TERM
    assert empty_repo.list_players(league_id="L2") == []


def test_integrity_check_flags_stray_roster_flags(repo):
    repo.validate_integrity()
    repo._conn.execute("UPDATE players SET status_26_man=1 WHERE player_id='p_fa';")
    with pytest.raises(ValueError) as exc:
        repo.validate_integrity()
    assert "p_fa" in str(exc.value)


def test_nested_transaction_rolls_back_only_inner(repo):
    with repo.transaction() as cur:
        repo.set_counter("outer", "1", cur=cur)
        with pytest.raises(RuntimeError):
            with repo.transaction() as inner:
                repo.set_counter("inner", "1", cur=inner)
                raise RuntimeError("abort inner")
    assert repo.get_counter("outer") == "1"
    assert repo.get_counter("inner") is None
    assert not repo.in_transaction


def test_identical_events_in_one_second_are_both_logged(repo):
    for _ in range(2):
        with repo.transaction() as cur:
            log_transaction(repo, cur=cur, tx_type=TX_COMMISSIONER, league_id="L1", summary="Settings saved", now=JUNE_1)
    logged = repo.list_transactions(league_id="L1", tx_type=TX_COMMISSIONER)
    assert len(logged) == 2
    assert logged[0]["log_id"] != logged[1]["log_id"]

    # A replayed entry is still written once.
    repo.insert_transactions([logged[0], logged[0]])
    assert len(repo.list_transactions(league_id="L1", tx_type=TX_COMMISSIONER)) == 2


def test_schema_constraints(repo):
    with pytest.raises(ValueError):
        repo.upsert_player({"player_id": "p_x", "league_id": "L1", "fa_status": "retired"})
    with pytest.raises(sqlite3.IntegrityError):
        repo._conn.execute("INSERT INTO team_owners(team_id, user_id) VALUES ('NYY', 'u_nyy');")


def test_cli_init_and_validate(tmp_path, capsys):
    db = str(tmp_path / "cli.db")
    main(["init", "--db", db])
    main(["validate", "--db", db])
    out = capsys.readouterr().out
    assert "[OK] initialized" in out
    assert "[OK] integrity check passed" in out
