# league_repo.py
# Developer note:
# - SQLite DB is the single source of truth (SSOT) for every league.
# - Excel/CSV files are import only (no runtime reads/writes).
# - player_id / team_id / league_id are canonical strings (schema.py helpers).
# - players and teams carry a `version` column; every write goes through
#   update_player / update_team which check-and-bump it.
"""
LeagueRepo: single source of truth (SQLite)

Usage (CLI):
  python league_repo.py init --db league.db
  python league_repo.py import_players --db league.db --file players.xlsx
  python league_repo.py import_teams --db league.db --file teams.csv
  python league_repo.py validate --db league.db

Python:
  from league_repo import LeagueRepo
  with LeagueRepo("league.db") as repo:
      repo.init_db()
      player = repo.get_player("p-123")
"""

from __future__ import annotations

import argparse
import contextlib
import hashlib
import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from config import (
    CONTRACT_YEARS,
    DEFAULT_LUXURY_TAX_LIMIT,
    DEFAULT_ROSTER_26_LIMIT,
    DEFAULT_ROSTER_40_LIMIT,
    DEFAULT_SP_26_LIMIT,
)
from errors import CONCURRENT_UPDATE, PLAYER_NOT_FOUND, TEAM_NOT_FOUND, NotFoundError, StateConflictError
from schema import (
    ACTION_PENDING,
    ALLOWED_FA_STATUSES,
    CLAIM_PENDING,
    FA_AVAILABLE,
    FA_ON_WAIVERS,
    FA_PENDING_BID,
    FA_ROSTERED,
    SCHEMA_VERSION,
    assert_unique_ids,
    normalize_league_id,
    normalize_player_id,
    normalize_team_id,
    to_iso,
    utc_now,
)


# ----------------------------
# Helpers
# ----------------------------

def _utc_now_iso() -> str:
    return to_iso(utc_now())


def _json_dumps(obj: Any) -> str:
    return json.dumps(
        obj,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=str,
    )


def _json_loads(value: Any, default: Any):
    """
    Safe JSON loader:
    - None -> default
    - already dict/list -> returns as-is
    - invalid JSON -> default
    """
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return default


def _clean_cell(value: Any) -> Optional[str]:
    """pandas cell -> stripped str, NaN/empty -> None."""
    if value is None:
        return None
    s = str(value).strip()
    if not s or s.lower() in {"nan", "none", "nat"}:
        return None
    return s


def _require_columns(cols: Sequence[str], required: Sequence[str]) -> None:
    missing = [c for c in required if c not in cols]
    if missing:
        raise ValueError(f"Import file missing required columns: {missing}. Found: {list(cols)}")


_PLAYER_BOOL_COLS = ("status_40_man", "status_26_man", "is_ifa")

# Columns owned by player_state.state_columns(); listed here for integrity checks.
POSSESSION_COLUMNS = (
    "team_id",
    "fa_status",
    "status_40_man",
    "status_26_man",
    "status_il",
    "il_start_date",
    "pending_bid_amount",
    "pending_bid_years",
    "pending_bid_aav",
    "pending_bid_team_id",
    "pending_bid_manager_id",
    "bid_start_time",
    "bid_end_time",
    "bid_type",
    "waiver_end_time",
    "waiving_team_id",
    "dfa_clear_action",
)

_PLAYER_WRITABLE = frozenset(
    POSSESSION_COLUMNS
    + (
        "league_id",
        "first_name",
        "last_name",
        "position",
        "mlb_team",
        "fa_class",
        "is_ifa",
        "option_years_used",
        "contract_json",
        "bid_history_json",
        "roster_moves_json",
    )
)
_TEAM_WRITABLE = frozenset({"league_id", "name", "abbreviation", "isbp_balance"})


# ----------------------------
# Repository
# ----------------------------

class LeagueRepo:
    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        # autocommit mode; we manage BEGIN/COMMIT manually to guarantee atomic multi-table writes
        self._conn = sqlite3.connect(self.db_path, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._conn.execute("PRAGMA journal_mode = WAL;")
        self._conn.execute("PRAGMA busy_timeout = 5000;")  # writers queue on BEGIN IMMEDIATE
        self._tx_depth = 0

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error:
            pass

    @property
    def in_transaction(self) -> bool:
        return self._tx_depth > 0

    @contextlib.contextmanager
    def transaction(self, *, write: bool = True):
        """Transaction helper.

        - Outermost: BEGIN (read) or BEGIN IMMEDIATE (write) on the connection.
          BEGIN IMMEDIATE takes SQLite's reserved lock up front, so two writers
          never interleave a read-validate-write sequence.
        - Nested: SAVEPOINT/RELEASE so callers can safely nest repo/service transactions.
        """
        cur = self._conn.cursor()
        depth0 = self._tx_depth
        sp_name: str | None = None
        try:
            if depth0 == 0:
                self._conn.execute("BEGIN IMMEDIATE;" if write else "BEGIN;")
            else:
                sp_name = f"sp_{depth0}"
                cur.execute(f"SAVEPOINT {sp_name};")

            self._tx_depth += 1
            try:
                yield cur
            except Exception:
                if depth0 == 0:
                    self._conn.rollback()
                else:
                    cur.execute(f"ROLLBACK TO SAVEPOINT {sp_name};")
                    cur.execute(f"RELEASE SAVEPOINT {sp_name};")
                raise
            else:
                if depth0 == 0:
                    self._conn.commit()
                else:
                    cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            finally:
                self._tx_depth -= 1
        finally:
            cur.close()

    @contextlib.contextmanager
    def _maybe_transaction(self, cur: sqlite3.Cursor | None, *, write: bool = True):
        """Use provided cursor, or open a transaction and create a new cursor."""
        if cur is not None:
            yield cur
        else:
            with self.transaction(write=write) as cur2:
                yield cur2

    def _reader(self, cur: sqlite3.Cursor | None):
        return cur if cur is not None else self._conn

    # ------------------------
    # Schema
    # ------------------------

    def _ensure_table_columns(self, cur: sqlite3.Cursor, table: str, columns: Mapping[str, str]) -> None:
        """SQLite has no ADD COLUMN IF NOT EXISTS; check PRAGMA table_info first."""
        rows = cur.execute(f"PRAGMA table_info({table});").fetchall()
        existing = {r["name"] for r in rows}
        for col, ddl in columns.items():
            if col in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {col} {ddl};")

    def init_db(self) -> None:
        if self._tx_depth != 0:
            raise RuntimeError("init_db must not run inside a transaction")
        now = _utc_now_iso()
        self._conn.executescript(
            f"""
            CREATE TABLE IF NOT EXISTS meta(
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS leagues(
                league_id TEXT PRIMARY KEY,
                name TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS teams(
                team_id TEXT PRIMARY KEY,
                league_id TEXT NOT NULL REFERENCES leagues(league_id),
                name TEXT,
                abbreviation TEXT,
                isbp_balance INTEGER NOT NULL DEFAULT 0,
                version INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_teams_league ON teams(league_id);

            CREATE TABLE IF NOT EXISTS team_owners(
                team_id TEXT NOT NULL REFERENCES teams(team_id),
                user_id TEXT NOT NULL,
                PRIMARY KEY(team_id, user_id)
            );
            CREATE INDEX IF NOT EXISTS idx_team_owners_user ON team_owners(user_id);

            CREATE TABLE IF NOT EXISTS league_commissioners(
                league_id TEXT NOT NULL REFERENCES leagues(league_id),
                user_id TEXT NOT NULL,
                PRIMARY KEY(league_id, user_id)
            );

            CREATE TABLE IF NOT EXISTS players(
                player_id TEXT PRIMARY KEY,
                league_id TEXT NOT NULL REFERENCES leagues(league_id),
                first_name TEXT,
                last_name TEXT,
                position TEXT,
                mlb_team TEXT,
                team_id TEXT REFERENCES teams(team_id),
                fa_status TEXT NOT NULL DEFAULT '{FA_AVAILABLE}',
                fa_class TEXT,
                is_ifa INTEGER NOT NULL DEFAULT 0,
                status_40_man INTEGER NOT NULL DEFAULT 0,
                status_26_man INTEGER NOT NULL DEFAULT 0,
                status_il TEXT,
                il_start_date TEXT,
                option_years_used INTEGER NOT NULL DEFAULT 0,
                contract_json TEXT NOT NULL DEFAULT '{{}}',
                pending_bid_amount REAL,
                pending_bid_years INTEGER,
                pending_bid_aav REAL,
                pending_bid_team_id TEXT,
                pending_bid_manager_id TEXT,
                bid_start_time TEXT,
                bid_end_time TEXT,
                bid_type TEXT,
                bid_history_json TEXT NOT NULL DEFAULT '[]',
                waiver_end_time TEXT,
                waiving_team_id TEXT,
                dfa_clear_action TEXT,
                roster_moves_json TEXT NOT NULL DEFAULT '[]',
                version INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_players_team ON players(team_id);
            CREATE INDEX IF NOT EXISTS idx_players_league_status ON players(league_id, fa_status);

            CREATE TABLE IF NOT EXISTS waiver_claims(
                claim_id INTEGER PRIMARY KEY AUTOINCREMENT,
                league_id TEXT NOT NULL,
                team_id TEXT NOT NULL REFERENCES teams(team_id),
                player_id TEXT NOT NULL REFERENCES players(player_id),
                claim_priority INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT '{CLAIM_PENDING}',
                created_at TEXT NOT NULL
            );
            CREATE UNIQUE INDEX IF NOT EXISTS uq_waiver_claims_pending
                ON waiver_claims(team_id, player_id) WHERE status = '{CLAIM_PENDING}';
            CREATE INDEX IF NOT EXISTS idx_waiver_claims_player ON waiver_claims(player_id, status);

            CREATE TABLE IF NOT EXISTS trades(
                trade_id TEXT PRIMARY KEY,
                league_id TEXT NOT NULL,
                proposing_team_id TEXT NOT NULL REFERENCES teams(team_id),
                receiving_team_id TEXT NOT NULL REFERENCES teams(team_id),
                status TEXT NOT NULL,
                isbp_offered INTEGER NOT NULL DEFAULT 0,
                isbp_requested INTEGER NOT NULL DEFAULT 0,
                parent_trade_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_trades_league_status ON trades(league_id, status);

            CREATE TABLE IF NOT EXISTS trade_items(
                item_id INTEGER PRIMARY KEY AUTOINCREMENT,
                trade_id TEXT NOT NULL REFERENCES trades(trade_id),
                player_id TEXT NOT NULL REFERENCES players(player_id),
                sender_team_id TEXT NOT NULL REFERENCES teams(team_id),
                retain_salary INTEGER NOT NULL DEFAULT 0
            );
            CREATE INDEX IF NOT EXISTS idx_trade_items_trade ON trade_items(trade_id);

            CREATE TABLE IF NOT EXISTS dead_cap_penalties(
                penalty_id INTEGER PRIMARY KEY AUTOINCREMENT,
                team_id TEXT NOT NULL REFERENCES teams(team_id),
                player_id TEXT,
                amount REAL NOT NULL,
                year INTEGER NOT NULL,
                note TEXT,
                source TEXT NOT NULL,
                trade_id TEXT,
                created_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_dead_cap_team_year ON dead_cap_penalties(team_id, year);

            CREATE TABLE IF NOT EXISTS league_settings(
                league_id TEXT NOT NULL,
                year INTEGER NOT NULL,
                roster_26_limit INTEGER NOT NULL DEFAULT {DEFAULT_ROSTER_26_LIMIT},
                roster_40_limit INTEGER NOT NULL DEFAULT {DEFAULT_ROSTER_40_LIMIT},
                sp_26_limit INTEGER NOT NULL DEFAULT {DEFAULT_SP_26_LIMIT},
                luxury_tax_limit REAL NOT NULL DEFAULT {DEFAULT_LUXURY_TAX_LIMIT},
                PRIMARY KEY(league_id, year)
            );

            CREATE TABLE IF NOT EXISTS league_dates(
                league_id TEXT NOT NULL,
                year INTEGER NOT NULL,
                date_type TEXT NOT NULL,
                event_date TEXT NOT NULL,
                PRIMARY KEY(league_id, year, date_type)
            );

            CREATE TABLE IF NOT EXISTS transactions_log(
                tx_hash TEXT PRIMARY KEY,
                tx_type TEXT NOT NULL,
                tx_date TEXT,
                league_id TEXT,
                team_id TEXT,
                player_id TEXT,
                status TEXT,
                summary TEXT,
                related_id TEXT,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_tx_league_date ON transactions_log(league_id, tx_date);
            CREATE INDEX IF NOT EXISTS idx_tx_player ON transactions_log(player_id);

            CREATE TABLE IF NOT EXISTS pending_actions(
                action_id TEXT PRIMARY KEY,
                league_id TEXT NOT NULL,
                team_id TEXT NOT NULL,
                player_id TEXT,
                action_type TEXT NOT NULL,
                target_year INTEGER,
                salary_amount REAL,
                payload_json TEXT NOT NULL DEFAULT '{{}}',
                summary TEXT,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_pending_actions_status ON pending_actions(league_id, status);

            CREATE TABLE IF NOT EXISTS system_counters(
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS league_integrations(
                league_id TEXT PRIMARY KEY,
                slack_bot_token TEXT,
                slack_channel_transactions TEXT,
                slack_channel_trade_block TEXT
            );
            """
        )
        with self.transaction() as cur:
            # Migrations for DBs created before these columns existed.
            self._ensure_table_columns(cur, "players", {"fa_class": "TEXT", "roster_moves_json": "TEXT NOT NULL DEFAULT '[]'"})
            self._ensure_table_columns(cur, "dead_cap_penalties", {"trade_id": "TEXT"})
            cur.execute(
                "INSERT INTO meta(key, value) VALUES ('schema_version', ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                (SCHEMA_VERSION,),
            )
            cur.execute(
                "INSERT OR IGNORE INTO meta(key, value) VALUES ('created_at', ?);",
                (now,),
            )

    # ------------------------
    # Leagues / teams / identity
    # ------------------------

    def upsert_league(self, league_id: str, name: Optional[str] = None, *, cur: sqlite3.Cursor | None = None) -> None:
        lid = str(normalize_league_id(league_id))
        now = _utc_now_iso()
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                """
                INSERT INTO leagues(league_id, name, created_at, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(league_id) DO UPDATE SET name=COALESCE(excluded.name, leagues.name), updated_at=excluded.updated_at;
                """,
                (lid, name, now, now),
            )

    def upsert_team(
        self,
        team_id: str,
        league_id: str,
        *,
        name: Optional[str] = None,
        abbreviation: Optional[str] = None,
        isbp_balance: int = 0,
        cur: sqlite3.Cursor | None = None,
    ) -> None:
        tid = str(normalize_team_id(team_id))
        lid = str(normalize_league_id(league_id))
        now = _utc_now_iso()
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                """
                INSERT INTO teams(team_id, league_id, name, abbreviation, isbp_balance, version, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, 0, ?, ?)
                ON CONFLICT(team_id) DO UPDATE SET
                    league_id=excluded.league_id,
                    name=COALESCE(excluded.name, teams.name),
                    abbreviation=COALESCE(excluded.abbreviation, teams.abbreviation),
                    isbp_balance=excluded.isbp_balance,
                    version=teams.version + 1,
                    updated_at=excluded.updated_at;
                """,
                (tid, lid, name, abbreviation, int(isbp_balance), now, now),
            )

    def add_team_owner(self, team_id: str, user_id: str, *, cur: sqlite3.Cursor | None = None) -> None:
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                "INSERT OR IGNORE INTO team_owners(team_id, user_id) VALUES (?, ?);",
                (str(team_id), str(user_id)),
            )

    def add_commissioner(self, league_id: str, user_id: str, *, cur: sqlite3.Cursor | None = None) -> None:
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                "INSERT OR IGNORE INTO league_commissioners(league_id, user_id) VALUES (?, ?);",
                (str(league_id), str(user_id)),
            )

    def is_team_owner(self, team_id: str, user_id: str, *, cur: sqlite3.Cursor | None = None) -> bool:
        row = self._reader(cur).execute(
            "SELECT 1 FROM team_owners WHERE team_id=? AND user_id=? LIMIT 1;",
            (str(team_id), str(user_id)),
        ).fetchone()
        return row is not None

    def is_commissioner(self, league_id: str, user_id: str, *, cur: sqlite3.Cursor | None = None) -> bool:
        row = self._reader(cur).execute(
            "SELECT 1 FROM league_commissioners WHERE league_id=? AND user_id=? LIMIT 1;",
            (str(league_id), str(user_id)),
        ).fetchone()
        return row is not None

    def list_owned_team_ids(self, user_id: str, league_id: str, *, cur: sqlite3.Cursor | None = None) -> List[str]:
        rows = self._reader(cur).execute(
            """
            SELECT t.team_id FROM team_owners o JOIN teams t ON t.team_id = o.team_id
            WHERE o.user_id=? AND t.league_id=? ORDER BY t.team_id;
            """,
            (str(user_id), str(league_id)),
        ).fetchall()
        return [str(r["team_id"]) for r in rows]

    def get_team(self, team_id: str, *, cur: sqlite3.Cursor | None = None) -> Dict[str, Any]:
        row = self._reader(cur).execute("SELECT * FROM teams WHERE team_id=?;", (str(team_id),)).fetchone()
        if not row:
            raise NotFoundError(TEAM_NOT_FOUND, "Team not found", {"team_id": team_id})
        return dict(row)

    def list_teams(self, league_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if league_id is None:
            rows = self._conn.execute("SELECT * FROM teams ORDER BY team_id;").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM teams WHERE league_id=? ORDER BY team_id;", (str(league_id),)
            ).fetchall()
        return [dict(r) for r in rows]

    def update_team(
        self,
        team_id: str,
        fields: Mapping[str, Any],
        *,
        expected_version: int,
        cur: sqlite3.Cursor,
    ) -> int:
        """Versioned team write. Returns the new version."""
        return self._versioned_update(cur, "teams", "team_id", team_id, fields, expected_version, _TEAM_WRITABLE)

    # ------------------------
    # Players
    # ------------------------

    def _player_row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        d = dict(row)
        for col in _PLAYER_BOOL_COLS:
            d[col] = bool(d.get(col))
        d["contract"] = _json_loads(d.pop("contract_json", None), {})
        d["bid_history"] = _json_loads(d.pop("bid_history_json", None), [])
        d["roster_moves"] = _json_loads(d.pop("roster_moves_json", None), [])
        d["name"] = " ".join(x for x in (d.get("first_name"), d.get("last_name")) if x)
        return d

    def get_player(self, player_id: str, *, cur: sqlite3.Cursor | None = None) -> Dict[str, Any]:
        row = self._reader(cur).execute(
            "SELECT * FROM players WHERE player_id=?;", (str(player_id),)
        ).fetchone()
        if not row:
            raise NotFoundError(PLAYER_NOT_FOUND, "Player not found", {"player_id": player_id})
        return self._player_row_to_dict(row)

    def list_players(
        self,
        *,
        league_id: Optional[str] = None,
        team_id: Optional[str] = None,
        fa_status: Optional[str] = None,
        cur: sqlite3.Cursor | None = None,
    ) -> List[Dict[str, Any]]:
        where = []
        params: List[Any] = []
        if league_id is not None:
            where.append("league_id = ?")
            params.append(str(league_id))
        if team_id is not None:
            where.append("team_id = ?")
            params.append(str(team_id))
        if fa_status is not None:
            where.append("fa_status = ?")
            params.append(str(fa_status))
        sql = "SELECT * FROM players"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY last_name, first_name, player_id"
        rows = self._reader(cur).execute(sql, params).fetchall()
        return [self._player_row_to_dict(r) for r in rows]

    def list_due_player_ids(self, fa_status: str, deadline_col: str, now_iso: str) -> List[str]:
        """Ids of players in `fa_status` whose deadline column is at or before now."""
        if deadline_col not in ("bid_end_time", "waiver_end_time"):
            raise ValueError(f"unsupported deadline column: {deadline_col}")
        rows = self._conn.execute(
            f"""
            SELECT player_id FROM players
            WHERE fa_status=? AND {deadline_col} IS NOT NULL AND {deadline_col} <= ?
            ORDER BY {deadline_col}, player_id;
            """,
            (str(fa_status), str(now_iso)),
        ).fetchall()
        return [str(r["player_id"]) for r in rows]

    def upsert_player(self, record: Mapping[str, Any], *, cur: sqlite3.Cursor | None = None) -> None:
        """Admin/import write. Player rows are never hard-deleted."""
        pid = str(normalize_player_id(record["player_id"], strict=False))
        lid = str(normalize_league_id(record["league_id"]))
        now = _utc_now_iso()
        team_id = record.get("team_id")
        fa_status = record.get("fa_status") or (FA_ROSTERED if team_id else FA_AVAILABLE)
        if fa_status not in ALLOWED_FA_STATUSES:
            raise ValueError(f"invalid fa_status {fa_status!r} for player {pid}")
        contract = record.get("contract") or {}
        values = (
            pid,
            lid,
            record.get("first_name"),
            record.get("last_name"),
            record.get("position"),
            record.get("mlb_team"),
            str(team_id) if team_id else None,
            fa_status,
            record.get("fa_class"),
            1 if record.get("is_ifa") else 0,
            1 if record.get("status_40_man") else 0,
            1 if record.get("status_26_man") else 0,
            record.get("status_il"),
            record.get("il_start_date"),
            int(record.get("option_years_used") or 0),
            _json_dumps(dict(contract)),
            now,
            now,
        )
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                """
                INSERT INTO players(
                    player_id, league_id, first_name, last_name, position, mlb_team, team_id,
                    fa_status, fa_class, is_ifa, status_40_man, status_26_man, status_il, il_start_date,
                    option_years_used, contract_json, version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                ON CONFLICT(player_id) DO UPDATE SET
                    league_id=excluded.league_id,
                    first_name=excluded.first_name,
                    last_name=excluded.last_name,
                    position=excluded.position,
                    mlb_team=excluded.mlb_team,
                    team_id=excluded.team_id,
                    fa_status=excluded.fa_status,
                    fa_class=excluded.fa_class,
                    is_ifa=excluded.is_ifa,
                    status_40_man=excluded.status_40_man,
                    status_26_man=excluded.status_26_man,
                    status_il=excluded.status_il,
                    il_start_date=excluded.il_start_date,
                    option_years_used=excluded.option_years_used,
                    contract_json=excluded.contract_json,
                    version=players.version + 1,
                    updated_at=excluded.updated_at;
                """,
                values,
            )

    def update_player(
        self,
        player_id: str,
        fields: Mapping[str, Any],
        *,
        expected_version: int,
        cur: sqlite3.Cursor,
    ) -> int:
        """Versioned player write. Returns the new version.

        `contract`, `bid_history` and `roster_moves` are accepted as decoded
        values and stored as JSON.
        """
        encoded: Dict[str, Any] = {}
        for key, value in fields.items():
            if key in ("contract", "bid_history", "roster_moves"):
                encoded[f"{key}_json"] = _json_dumps(value)
            elif key in _PLAYER_BOOL_COLS:
                encoded[key] = 1 if value else 0
            else:
                encoded[key] = value
        return self._versioned_update(cur, "players", "player_id", player_id, encoded, expected_version, _PLAYER_WRITABLE)

    def _versioned_update(
        self,
        cur: sqlite3.Cursor,
        table: str,
        key_col: str,
        key: str,
        fields: Mapping[str, Any],
        expected_version: int,
        writable: frozenset,
    ) -> int:
        unknown = [c for c in fields if c not in writable]
        if unknown:
            raise ValueError(f"{table}: columns not writable: {unknown}")
        assignments = [f"{c}=?" for c in fields]
        assignments += ["version=version + 1", "updated_at=?"]
        params = list(fields.values()) + [_utc_now_iso(), str(key), int(expected_version)]
        cur.execute(
            f"UPDATE {table} SET {', '.join(assignments)} WHERE {key_col}=? AND version=?;",
            params,
        )
        if cur.rowcount != 1:
            raise StateConflictError(
                CONCURRENT_UPDATE,
                f"{table[:-1].capitalize()} was modified concurrently",
                {key_col: key, "expected_version": expected_version},
            )
        return int(expected_version) + 1

    def get_team_roster(self, team_id: str, *, cur: sqlite3.Cursor | None = None) -> List[Dict[str, Any]]:
        return self.list_players(team_id=str(team_id), fa_status=FA_ROSTERED, cur=cur)

    # ------------------------
    # Waiver claims
    # ------------------------

    def insert_waiver_claim(
        self,
        league_id: str,
        team_id: str,
        player_id: str,
        *,
        priority: int,
        created_at: str,
        cur: sqlite3.Cursor,
    ) -> int:
        cur.execute(
            """
            INSERT INTO waiver_claims(league_id, team_id, player_id, claim_priority, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (str(league_id), str(team_id), str(player_id), int(priority), CLAIM_PENDING, created_at),
        )
        return int(cur.lastrowid)

    def list_waiver_claims(
        self,
        player_id: str,
        *,
        status: Optional[str] = None,
        cur: sqlite3.Cursor | None = None,
    ) -> List[Dict[str, Any]]:
        """Claims for a player in resolution order (priority, submission time, insertion)."""
        sql = "SELECT * FROM waiver_claims WHERE player_id=?"
        params: List[Any] = [str(player_id)]
        if status is not None:
            sql += " AND status=?"
            params.append(str(status))
        sql += " ORDER BY claim_priority ASC, created_at ASC, claim_id ASC;"
        return [dict(r) for r in self._reader(cur).execute(sql, params).fetchall()]

    def set_claim_status(self, claim_id: int, status: str, *, cur: sqlite3.Cursor) -> None:
        cur.execute("UPDATE waiver_claims SET status=? WHERE claim_id=?;", (str(status), int(claim_id)))

    def invalidate_pending_claims(self, player_id: str, *, except_claim_id: Optional[int] = None, cur: sqlite3.Cursor) -> int:
        sql = "UPDATE waiver_claims SET status='invalid' WHERE player_id=? AND status=?"
        params: List[Any] = [str(player_id), CLAIM_PENDING]
        if except_claim_id is not None:
            sql += " AND claim_id != ?"
            params.append(int(except_claim_id))
        cur.execute(sql + ";", params)
        return int(cur.rowcount)

    # ------------------------
    # Trades
    # ------------------------

    def insert_trade(self, trade: Mapping[str, Any], items: Sequence[Mapping[str, Any]], *, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            INSERT INTO trades(trade_id, league_id, proposing_team_id, receiving_team_id, status,
                               isbp_offered, isbp_requested, parent_trade_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                trade["trade_id"],
                trade["league_id"],
                trade["proposing_team_id"],
                trade["receiving_team_id"],
                trade["status"],
                int(trade.get("isbp_offered") or 0),
                int(trade.get("isbp_requested") or 0),
                trade.get("parent_trade_id"),
                trade["created_at"],
                trade["created_at"],
            ),
        )
        cur.executemany(
            "INSERT INTO trade_items(trade_id, player_id, sender_team_id, retain_salary) VALUES (?, ?, ?, ?);",
            [
                (trade["trade_id"], it["player_id"], it["sender_team_id"], 1 if it.get("retain_salary") else 0)
                for it in items
            ],
        )

    def get_trade(self, trade_id: str, *, cur: sqlite3.Cursor | None = None) -> Optional[Dict[str, Any]]:
        reader = self._reader(cur)
        row = reader.execute("SELECT * FROM trades WHERE trade_id=?;", (str(trade_id),)).fetchone()
        if not row:
            return None
        trade = dict(row)
        items = reader.execute(
            "SELECT * FROM trade_items WHERE trade_id=? ORDER BY item_id;", (str(trade_id),)
        ).fetchall()
        trade["items"] = [dict(r, retain_salary=bool(r["retain_salary"])) for r in items]
        return trade

    def list_trades(self, league_id: str, *, status: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = "SELECT trade_id FROM trades WHERE league_id=?"
        params: List[Any] = [str(league_id)]
        if status is not None:
            sql += " AND status=?"
            params.append(str(status))
        sql += " ORDER BY created_at DESC, trade_id;"
        ids = [r["trade_id"] for r in self._conn.execute(sql, params).fetchall()]
        return [t for t in (self.get_trade(i) for i in ids) if t is not None]

    def set_trade_status(self, trade_id: str, *, expected: str, new: str, cur: sqlite3.Cursor) -> None:
        cur.execute(
            "UPDATE trades SET status=?, updated_at=? WHERE trade_id=? AND status=?;",
            (str(new), _utc_now_iso(), str(trade_id), str(expected)),
        )
        if cur.rowcount != 1:
            raise StateConflictError(
                CONCURRENT_UPDATE,
                "Trade status changed concurrently",
                {"trade_id": trade_id, "expected": expected},
            )

    def trade_chain_ids(self, trade_id: str, *, cur: sqlite3.Cursor | None = None) -> List[str]:
        """All trade ids linked to trade_id through parent_trade_id (both directions)."""
        reader = self._reader(cur)
        root = str(trade_id)
        seen = {root}
        while True:
            row = reader.execute("SELECT parent_trade_id FROM trades WHERE trade_id=?;", (root,)).fetchone()
            if not row or not row["parent_trade_id"] or row["parent_trade_id"] in seen:
                break
            root = str(row["parent_trade_id"])
            seen.add(root)
        chain = [root]
        frontier = [root]
        while frontier:
            rows = reader.execute(
                f"SELECT trade_id FROM trades WHERE parent_trade_id IN ({','.join('?' * len(frontier))});",
                frontier,
            ).fetchall()
            frontier = [str(r["trade_id"]) for r in rows if str(r["trade_id"]) not in chain]
            chain.extend(frontier)
        return chain

    # ------------------------
    # Dead cap
    # ------------------------

    def insert_dead_cap(
        self,
        *,
        team_id: str,
        player_id: Optional[str],
        amount: float,
        year: int,
        note: str,
        source: str,
        trade_id: Optional[str] = None,
        created_at: Optional[str] = None,
        cur: sqlite3.Cursor,
    ) -> int:
        cur.execute(
            """
            INSERT INTO dead_cap_penalties(team_id, player_id, amount, year, note, source, trade_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                str(team_id),
                str(player_id) if player_id else None,
                float(amount),
                int(year),
                note,
                source,
                trade_id,
                created_at or _utc_now_iso(),
            ),
        )
        return int(cur.lastrowid)

    def list_dead_cap(
        self,
        *,
        team_id: Optional[str] = None,
        year: Optional[int] = None,
        trade_id: Optional[str] = None,
        cur: sqlite3.Cursor | None = None,
    ) -> List[Dict[str, Any]]:
        where = []
        params: List[Any] = []
        if team_id is not None:
            where.append("team_id = ?")
            params.append(str(team_id))
        if year is not None:
            where.append("year = ?")
            params.append(int(year))
        if trade_id is not None:
            where.append("trade_id = ?")
            params.append(str(trade_id))
        sql = "SELECT * FROM dead_cap_penalties"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY year, penalty_id;"
        return [dict(r) for r in self._reader(cur).execute(sql, params).fetchall()]

    def get_dead_cap(self, penalty_id: int, *, cur: sqlite3.Cursor | None = None) -> Optional[Dict[str, Any]]:
        row = self._reader(cur).execute(
            "SELECT * FROM dead_cap_penalties WHERE penalty_id=?;", (int(penalty_id),)
        ).fetchone()
        return dict(row) if row else None

    def delete_dead_cap(self, penalty_ids: Iterable[int], *, cur: sqlite3.Cursor) -> int:
        ids = [int(x) for x in penalty_ids]
        if not ids:
            return 0
        cur.execute(
            f"DELETE FROM dead_cap_penalties WHERE penalty_id IN ({','.join('?' * len(ids))});",
            ids,
        )
        return int(cur.rowcount)

    # ------------------------
    # League settings / dates / integrations
    # ------------------------

    def get_league_settings_row(self, league_id: str, year: int, *, cur: sqlite3.Cursor | None = None) -> Optional[Dict[str, Any]]:
        row = self._reader(cur).execute(
            "SELECT * FROM league_settings WHERE league_id=? AND year=?;", (str(league_id), int(year))
        ).fetchone()
        return dict(row) if row else None

    def upsert_league_settings(self, league_id: str, year: int, values: Mapping[str, Any], *, cur: sqlite3.Cursor | None = None) -> None:
        current = self.get_league_settings_row(league_id, year, cur=cur) or {
            "roster_26_limit": DEFAULT_ROSTER_26_LIMIT,
            "roster_40_limit": DEFAULT_ROSTER_40_LIMIT,
            "sp_26_limit": DEFAULT_SP_26_LIMIT,
            "luxury_tax_limit": DEFAULT_LUXURY_TAX_LIMIT,
        }
        merged = {k: values.get(k, current[k]) for k in ("roster_26_limit", "roster_40_limit", "sp_26_limit", "luxury_tax_limit")}
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                """
                INSERT INTO league_settings(league_id, year, roster_26_limit, roster_40_limit, sp_26_limit, luxury_tax_limit)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(league_id, year) DO UPDATE SET
                    roster_26_limit=excluded.roster_26_limit,
                    roster_40_limit=excluded.roster_40_limit,
                    sp_26_limit=excluded.sp_26_limit,
                    luxury_tax_limit=excluded.luxury_tax_limit;
                """,
                (
                    str(league_id),
                    int(year),
                    int(merged["roster_26_limit"]),
                    int(merged["roster_40_limit"]),
                    int(merged["sp_26_limit"]),
                    float(merged["luxury_tax_limit"]),
                ),
            )

    def get_league_date(self, league_id: str, year: int, date_type: str, *, cur: sqlite3.Cursor | None = None) -> Optional[str]:
        row = self._reader(cur).execute(
            "SELECT event_date FROM league_dates WHERE league_id=? AND year=? AND date_type=?;",
            (str(league_id), int(year), str(date_type)),
        ).fetchone()
        return str(row["event_date"]) if row else None

    def set_league_date(self, league_id: str, year: int, date_type: str, event_date: str, *, cur: sqlite3.Cursor | None = None) -> None:
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                """
                INSERT INTO league_dates(league_id, year, date_type, event_date) VALUES (?, ?, ?, ?)
                ON CONFLICT(league_id, year, date_type) DO UPDATE SET event_date=excluded.event_date;
                """,
                (str(league_id), int(year), str(date_type), str(event_date)),
            )

    def get_integration(self, league_id: str) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            "SELECT * FROM league_integrations WHERE league_id=?;", (str(league_id),)
        ).fetchone()
        return dict(row) if row else None

    def set_integration(
        self,
        league_id: str,
        *,
        slack_bot_token: Optional[str],
        slack_channel_transactions: Optional[str] = None,
        slack_channel_trade_block: Optional[str] = None,
    ) -> None:
        with self.transaction() as cur:
            cur.execute(
                """
                INSERT INTO league_integrations(league_id, slack_bot_token, slack_channel_transactions, slack_channel_trade_block)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(league_id) DO UPDATE SET
                    slack_bot_token=excluded.slack_bot_token,
                    slack_channel_transactions=excluded.slack_channel_transactions,
                    slack_channel_trade_block=excluded.slack_channel_trade_block;
                """,
                (str(league_id), slack_bot_token, slack_channel_transactions, slack_channel_trade_block),
            )

    # ------------------------
    # Transactions log
    # ------------------------

    def insert_transactions(self, entries: Sequence[Mapping[str, Any]], *, cur: sqlite3.Cursor | None = None) -> None:
        if not entries:
            return
        now = _utc_now_iso()
        rows = []
        for e in entries:
            if not isinstance(e, Mapping):
                continue
            e = dict(e)
            payload = _json_dumps(e)
            tx_hash = hashlib.sha1(payload.encode("utf-8")).hexdigest()
            rows.append(
                (
                    tx_hash,
                    str(e.get("type") or "unknown"),
                    str(e["date"]) if e.get("date") is not None else None,
                    e.get("league_id"),
                    e.get("team_id"),
                    e.get("player_id"),
                    e.get("status"),
                    e.get("summary"),
                    str(e["related_id"]) if e.get("related_id") is not None else None,
                    payload,
                    now,
                )
            )
        with self._maybe_transaction(cur, write=True) as cur:
            cur.executemany(
                """
                INSERT OR IGNORE INTO transactions_log(
                    tx_hash, tx_type, tx_date, league_id, team_id, player_id, status, summary, related_id, payload_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                rows,
            )

    def list_transactions(
        self,
        *,
        limit: int = 200,
        league_id: Optional[str] = None,
        player_id: Optional[str] = None,
        tx_type: Optional[str] = None,
        since_date: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Newest first; each item is the original payload."""
        limit_i = max(1, int(limit))
        where = []
        params: List[Any] = []
        if league_id:
            where.append("league_id = ?")
            params.append(str(league_id))
        if player_id:
            where.append("player_id = ?")
            params.append(str(player_id))
        if tx_type:
            where.append("tx_type = ?")
            params.append(str(tx_type))
        if since_date:
            where.append("tx_date >= ?")
            params.append(str(since_date))

        sql = "SELECT payload_json FROM transactions_log"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY COALESCE(tx_date,'') DESC, created_at DESC LIMIT ?"
        params.append(limit_i)

        out: List[Dict[str, Any]] = []
        for r in self._conn.execute(sql, params).fetchall():
            payload = _json_loads(r["payload_json"], None)
            out.append(payload if isinstance(payload, dict) else {"value": payload})
        return out

    # ------------------------
    # Pending actions
    # ------------------------

    def insert_pending_action(self, action: Mapping[str, Any], *, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            INSERT INTO pending_actions(action_id, league_id, team_id, player_id, action_type, target_year,
                                        salary_amount, payload_json, summary, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                action["action_id"],
                action["league_id"],
                action["team_id"],
                action.get("player_id"),
                action["action_type"],
                action.get("target_year"),
                action.get("salary_amount"),
                _json_dumps(action.get("payload") or {}),
                action.get("summary"),
                action["status"],
                action["created_at"],
                action["created_at"],
            ),
        )

    def _action_row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        d = dict(row)
        d["payload"] = _json_loads(d.pop("payload_json", None), {})
        return d

    def get_pending_action(self, action_id: str, *, cur: sqlite3.Cursor | None = None) -> Optional[Dict[str, Any]]:
        row = self._reader(cur).execute(
            "SELECT * FROM pending_actions WHERE action_id=?;", (str(action_id),)
        ).fetchone()
        return self._action_row_to_dict(row) if row else None

    def list_pending_actions(self, *, league_id: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
        where = []
        params: List[Any] = []
        if league_id is not None:
            where.append("league_id = ?")
            params.append(str(league_id))
        if status is not None:
            where.append("status = ?")
            params.append(str(status))
        sql = "SELECT * FROM pending_actions"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at ASC, action_id;"
        return [self._action_row_to_dict(r) for r in self._conn.execute(sql, params).fetchall()]

    def has_pending_action(
        self, player_id: str, action_type: str, target_year: Optional[int] = None, *, cur: sqlite3.Cursor | None = None
    ) -> bool:
        sql = "SELECT 1 FROM pending_actions WHERE player_id=? AND action_type=? AND status=?"
        params: List[Any] = [str(player_id), str(action_type), ACTION_PENDING]
        if target_year is not None:
            sql += " AND target_year=?"
            params.append(int(target_year))
        return self._reader(cur).execute(sql + " LIMIT 1;", params).fetchone() is not None

    def set_pending_action_status(self, action_id: str, *, expected: str, new: str, cur: sqlite3.Cursor) -> None:
        cur.execute(
            "UPDATE pending_actions SET status=?, updated_at=? WHERE action_id=? AND status=?;",
            (str(new), _utc_now_iso(), str(action_id), str(expected)),
        )
        if cur.rowcount != 1:
            raise StateConflictError(
                CONCURRENT_UPDATE,
                "Pending action status changed concurrently",
                {"action_id": action_id, "expected": expected},
            )

    # ------------------------
    # Seasonal bulk updates
    # ------------------------

    def reset_option_years(self, *, cur: sqlite3.Cursor) -> int:
        cur.execute(
            "UPDATE players SET option_years_used=0, version=version + 1, updated_at=? WHERE option_years_used <> 0;",
            (_utc_now_iso(),),
        )
        return int(cur.rowcount)

    def clear_injured_list(self, *, cur: sqlite3.Cursor) -> int:
        """Drop every IL label. Players keep their 40-man flag and land off the 26-man."""
        cur.execute(
            """
            UPDATE players
            SET status_il=NULL, il_start_date=NULL, status_26_man=0, version=version + 1, updated_at=?
            WHERE status_il IS NOT NULL AND status_il <> '';
            """,
            (_utc_now_iso(),),
        )
        return int(cur.rowcount)

    # ------------------------
    # System counters (run markers)
    # ------------------------

    def get_counter(self, key: str, *, cur: sqlite3.Cursor | None = None) -> Optional[str]:
        row = self._reader(cur).execute("SELECT value FROM system_counters WHERE key=?;", (str(key),)).fetchone()
        return str(row["value"]) if row else None

    def set_counter(self, key: str, value: str, *, cur: sqlite3.Cursor | None = None) -> None:
        with self._maybe_transaction(cur) as cur:
            cur.execute(
                """
                INSERT INTO system_counters(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at;
                """,
                (str(key), str(value), _utc_now_iso()),
            )

    def delete_counter(self, key: str, *, cur: sqlite3.Cursor | None = None) -> None:
        with self._maybe_transaction(cur) as cur:
            cur.execute("DELETE FROM system_counters WHERE key=?;", (str(key),))

    # ------------------------
    # Import (pandas)
    # ------------------------

    @staticmethod
    def _read_table_file(path: str | Path, sheet_name: Optional[str]):
        import pandas as pd  # local import: only the import CLI needs pandas

        p = Path(path)
        if p.suffix.lower() in (".csv", ".txt"):
            return pd.read_csv(p, dtype=str, keep_default_na=False)
        return pd.read_excel(p, sheet_name=sheet_name or 0, dtype=str, engine="openpyxl")

    def import_teams_file(self, path: str | Path, *, sheet_name: Optional[str] = None) -> int:
        """Import teams (and optional owner user ids) from Excel/CSV.

        Required columns: team_id, league_id. Optional: name, abbreviation,
        isbp_balance, owner_user_id, league_name.
        """
        df = self._read_table_file(path, sheet_name)
        cols = [str(c).strip() for c in df.columns]
        df.columns = cols
        _require_columns(cols, ["team_id", "league_id"])
        assert_unique_ids([str(x).strip() for x in df["team_id"].tolist()], what="team_id")

        count = 0
        with self.transaction() as cur:
            for rec in df.to_dict(orient="records"):
                lid = _clean_cell(rec.get("league_id"))
                tid = _clean_cell(rec.get("team_id"))
                if not lid or not tid:
                    continue
                self.upsert_league(lid, _clean_cell(rec.get("league_name")), cur=cur)
                isbp_raw = _clean_cell(rec.get("isbp_balance")) or "0"
                self.upsert_team(
                    tid,
                    lid,
                    name=_clean_cell(rec.get("name")),
                    abbreviation=_clean_cell(rec.get("abbreviation")),
                    isbp_balance=int(float(isbp_raw.replace("$", "").replace(",", ""))),
                    cur=cur,
                )
                owner = _clean_cell(rec.get("owner_user_id"))
                if owner:
                    self.add_team_owner(tid, owner, cur=cur)
                count += 1
        return count

    def import_players_file(self, path: str | Path, *, sheet_name: Optional[str] = None) -> int:
        """Import (upsert) players from Excel/CSV.

        Required columns: player_id, league_id, first_name, last_name.
        Optional: position, mlb_team, team_id, fa_status, fa_class, is_ifa,
        status_40_man, status_26_man, option_years_used, contract_<year> for
        each contract year. Contract cells are validated through the typed
        term parser before they are stored.
        """
        from contracts.models import format_contract_map, parse_contract_map

        df = self._read_table_file(path, sheet_name)
        cols = [str(c).strip() for c in df.columns]
        df.columns = cols
        _require_columns(cols, ["player_id", "league_id", "first_name", "last_name"])
        assert_unique_ids([str(x).strip() for x in df["player_id"].tolist()])

        def _flag(v: Any) -> bool:
            return (_clean_cell(v) or "").lower() in {"1", "true", "yes", "y", "x"}

        count = 0
        with self.transaction() as cur:
            for rec in df.to_dict(orient="records"):
                pid = _clean_cell(rec.get("player_id"))
                lid = _clean_cell(rec.get("league_id"))
                if not pid or not lid:
                    continue
                self.upsert_league(lid, cur=cur)
                raw_contract = {
                    str(year): _clean_cell(rec.get(f"contract_{year}"))
                    for year in CONTRACT_YEARS
                    if _clean_cell(rec.get(f"contract_{year}"))
                }
                contract = format_contract_map(parse_contract_map(raw_contract))
                self.upsert_player(
                    {
                        "player_id": pid,
                        "league_id": lid,
                        "first_name": _clean_cell(rec.get("first_name")),
                        "last_name": _clean_cell(rec.get("last_name")),
                        "position": _clean_cell(rec.get("position")),
                        "mlb_team": _clean_cell(rec.get("mlb_team")),
                        "team_id": _clean_cell(rec.get("team_id")),
                        "fa_status": _clean_cell(rec.get("fa_status")),
                        "fa_class": _clean_cell(rec.get("fa_class")),
                        "is_ifa": _flag(rec.get("is_ifa")),
                        "status_40_man": _flag(rec.get("status_40_man")),
                        "status_26_man": _flag(rec.get("status_26_man")),
                        "option_years_used": int(_clean_cell(rec.get("option_years_used")) or 0),
                        "contract": contract,
                    },
                    cur=cur,
                )
                count += 1
        return count

    # ------------------------
    # Integrity
    # ------------------------

    def validate_integrity(self) -> None:
        """Check the one-possession-state invariant for every player.

        Raises ValueError listing the first offending rows.
        """
        problems: List[str] = []
        rows = self._conn.execute("SELECT * FROM players;").fetchall()
        for r in rows:
            pid = r["player_id"]
            status = r["fa_status"]
            if status not in ALLOWED_FA_STATUSES:
                problems.append(f"{pid}: unknown fa_status {status!r}")
                continue
            has_bid = r["bid_end_time"] is not None or r["pending_bid_team_id"] is not None
            has_waiver = r["waiver_end_time"] is not None or r["waiving_team_id"] is not None
            if status == FA_ROSTERED and not r["team_id"]:
                problems.append(f"{pid}: rostered without team")
            if status in (FA_AVAILABLE, FA_PENDING_BID) and r["team_id"]:
                problems.append(f"{pid}: {status} but team_id={r['team_id']}")
            if status == FA_PENDING_BID and r["bid_end_time"] is None:
                problems.append(f"{pid}: pending_bid without bid_end_time")
            if status != FA_PENDING_BID and has_bid:
                problems.append(f"{pid}: stale pending-bid fields on {status} player")
            if status == FA_ON_WAIVERS and (r["waiver_end_time"] is None or not r["waiving_team_id"]):
                problems.append(f"{pid}: on_waivers without waiver clock")
            if status != FA_ON_WAIVERS and has_waiver:
                problems.append(f"{pid}: stale waiver fields on {status} player")
            if status != FA_ROSTERED and (r["status_40_man"] or r["status_26_man"] or r["status_il"]):
                problems.append(f"{pid}: roster flags set on {status} player")
            if r["status_26_man"] and not r["status_40_man"]:
                problems.append(f"{pid}: on 26-man but not 40-man")

        orphan_owner = self._conn.execute(
            "SELECT COUNT(*) AS n FROM players p LEFT JOIN teams t ON t.team_id = p.team_id "
            "WHERE p.team_id IS NOT NULL AND t.team_id IS NULL;"
        ).fetchone()["n"]
        if orphan_owner:
            problems.append(f"{orphan_owner} player(s) reference missing teams")

        if problems:
            preview = "\n".join(problems[:20])
            raise ValueError(f"integrity check failed ({len(problems)} problem(s)):\n{preview}")

    def __enter__(self) -> "LeagueRepo":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ----------------------------
# CLI
# ----------------------------

def _cmd_init(args) -> None:
    with LeagueRepo(args.db) as repo:
        repo.init_db()
    print(f"[OK] initialized {args.db}")


def _cmd_import_teams(args) -> None:
    with LeagueRepo(args.db) as repo:
        repo.init_db()
        n = repo.import_teams_file(args.file, sheet_name=args.sheet)
    print(f"[OK] imported {n} team(s)")


def _cmd_import_players(args) -> None:
    with LeagueRepo(args.db) as repo:
        repo.init_db()
        n = repo.import_players_file(args.file, sheet_name=args.sheet)
        repo.validate_integrity()
    print(f"[OK] imported {n} player(s)")


def _cmd_validate(args) -> None:
    with LeagueRepo(args.db) as repo:
        repo.init_db()
        repo.validate_integrity()
    print("[OK] integrity check passed")


def main(argv: Optional[Sequence[str]] = None) -> None:
    p = argparse.ArgumentParser(description="LeagueRepo (SQLite single source of truth)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="initialize DB schema")
    p_init.add_argument("--db", required=True, help="path to sqlite db file")
    p_init.set_defaults(func=_cmd_init)

    p_teams = sub.add_parser("import_teams", help="import teams from excel/csv")
    p_teams.add_argument("--db", required=True, help="path to sqlite db file")
    p_teams.add_argument("--file", required=True, help="path to .xlsx or .csv")
    p_teams.add_argument("--sheet", default=None, help="sheet name (optional)")
    p_teams.set_defaults(func=_cmd_import_teams)

    p_players = sub.add_parser("import_players", help="import players from excel/csv")
    p_players.add_argument("--db", required=True, help="path to sqlite db file")
    p_players.add_argument("--file", required=True, help="path to .xlsx or .csv")
    p_players.add_argument("--sheet", default=None, help="sheet name (optional)")
    p_players.set_defaults(func=_cmd_import_players)

    p_val = sub.add_parser("validate", help="validate DB integrity")
    p_val.add_argument("--db", required=True, help="path to sqlite db file")
    p_val.set_defaults(func=_cmd_validate)

    args = p.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
