from pathlib import Path
import datetime as _dt
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from identity import Caller  # noqa: E402
from league_repo import LeagueRepo  # noqa: E402

LEAGUE = "L1"

NYY_OWNER = Caller("u_nyy")
BOS_OWNER = Caller("u_bos")
TB_OWNER = Caller("u_tb")
COMMISSIONER = Caller("u_comm")
STRANGER = Caller("u_nobody")

# Mid-season: after opening day, before any configured deadline.
JUNE_1 = _dt.datetime(2026, 6, 1, 12, 0, tzinfo=_dt.timezone.utc)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, league_id, category, text):
        self.sent.append((league_id, category, text))


def _player(player_id, first, last, position, team_id=None, **fields):
    rec = {
        "player_id": player_id,
        "league_id": LEAGUE,
        "first_name": first,
        "last_name": last,
        "position": position,
        "mlb_team": "MLB",
        "team_id": team_id,
    }
    rec.update(fields)
    return rec


def seed_league(repo: LeagueRepo) -> None:
    repo.upsert_league(LEAGUE, "Test League")
    repo.upsert_team("NYY", LEAGUE, name="Yankees", abbreviation="NYY", isbp_balance=500_000)
    repo.upsert_team("BOS", LEAGUE, name="Red Sox", abbreviation="BOS", isbp_balance=100_000)
    repo.upsert_team("TB", LEAGUE, name="Rays", abbreviation="TB", isbp_balance=0)
    repo.add_team_owner("NYY", NYY_OWNER.user_id)
    repo.add_team_owner("BOS", BOS_OWNER.user_id)
    repo.add_team_owner("TB", TB_OWNER.user_id)
    repo.add_commissioner(LEAGUE, COMMISSIONER.user_id)

    players = [
        _player(
            "p_judge", "Aaron", "Judge", "RF", "NYY",
            status_40_man=True, status_26_man=True,
            contract={"2026": "$20,000,000", "2027": "$20,000,000"},
        ),
        _player(
            "p_cole", "Gerrit", "Cole", "SP", "NYY",
            status_40_man=True, status_26_man=True,
            contract={"2026": "$30,000,000", "2027": "$8,000,000(TO)"},
        ),
        _player("p_prospect", "Minor", "Leaguer", "2B", "NYY", contract={"2026": "TC"}),
        _player(
            "p_devers", "Rafael", "Devers", "3B", "BOS",
            status_40_man=True, status_26_man=True,
            contract={"2026": "$10,000,000"},
        ),
        _player(
            "p_arb", "Connor", "Wong", "C", "BOS",
            status_40_man=True,
            contract={"2026": "$2,000,000", "2027": "ARB 2", "2028": "ARB 3"},
        ),
        _player("p_fa", "Free", "Agent", "LF", fa_class="MLB FA"),
        _player("p_ifa", "Intl", "Signee", "SS", is_ifa=True),
    ]
    for rec in players:
        repo.upsert_player(rec)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "league.db")


@pytest.fixture
def repo(db_path):
    r = LeagueRepo(db_path)
    r.init_db()
    seed_league(r)
    yield r
    r.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()
