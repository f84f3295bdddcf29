from __future__ import annotations

import datetime as _dt
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config import LEAGUE_DB_PATH, WORKERS_ENABLED
from errors import AuthorizationError, LedgerError, NotFoundError, PersistenceError, StateConflictError, ValidationError
from identity import Caller
from league_repo import LeagueRepo
from league_service import LeagueService
from notifications import Notifier, SlackNotifier
from schema import ACTION_PENDING, CLEAR_RELEASE
import workers

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Pydantic models
# -------------------------------------------------------------------------
class BidRequest(BaseModel):
    years: int
    aav: float


class DfaRequest(BaseModel):
    team_id: Optional[str] = None
    clear_action: str = CLEAR_RELEASE


class ClaimRequest(BaseModel):
    team_id: Optional[str] = None


class RosterMoveRequest(BaseModel):
    action: str  # promote_40 | promote_26 | option | il | activate
    days: Optional[int] = None


class TradeRequest(BaseModel):
    proposing_team_id: str
    receiving_team_id: str
    offered_player_ids: List[str] = Field(default_factory=list)
    requested_player_ids: List[str] = Field(default_factory=list)
    isbp_offered: int = 0
    isbp_requested: int = 0
    retain_player_ids: List[str] = Field(default_factory=list)


class CounterRequest(BaseModel):
    offered_player_ids: List[str] = Field(default_factory=list)
    requested_player_ids: List[str] = Field(default_factory=list)
    isbp_offered: int = 0
    isbp_requested: int = 0
    retain_player_ids: List[str] = Field(default_factory=list)


class DeadCapRequest(BaseModel):
    amount: float
    year: int
    note: str = ""
    player_id: Optional[str] = None


class ArbitrationRequest(BaseModel):
    year: int
    amount: Optional[float] = None
    decline: bool = False


class ExtensionRequest(BaseModel):
    years: int
    aav: float


class RestructureRequest(BaseModel):
    from_year: int
    to_year: int
    amount: float


class ActionDecisionRequest(BaseModel):
    decision: str


class LeagueDateRequest(BaseModel):
    event_date: str


class LeagueSettingsRequest(BaseModel):
    roster_26_limit: Optional[int] = None
    roster_40_limit: Optional[int] = None
    sp_26_limit: Optional[int] = None
    luxury_tax_limit: Optional[float] = None


# -------------------------------------------------------------------------
# Error mapping
# -------------------------------------------------------------------------
def _status_for(error: LedgerError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, StateConflictError):
        return 409
    if isinstance(error, PersistenceError):
        return 503
    return 400


def _ledger_error_response(error: LedgerError) -> JSONResponse:
    payload = {"ok": False, "error": error.to_payload()}
    return JSONResponse(status_code=_status_for(error), content=payload)


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_admin: Optional[str] = Header(None),
) -> Caller:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    is_admin = str(x_admin or "").strip().lower() in {"1", "true", "yes"}
    return Caller(user_id=str(x_user_id), is_admin=is_admin)


# -------------------------------------------------------------------------
# App factory
# -------------------------------------------------------------------------
def create_app(
    db_path: Optional[str] = None,
    *,
    start_workers: Optional[bool] = None,
    notifier: Optional[Notifier] = None,
    clock: Optional[Callable[[], _dt.datetime]] = None,
) -> FastAPI:
    app = FastAPI(title="League Ledger")
    app.state.db_path = db_path or LEAGUE_DB_PATH
    app.state.start_workers = WORKERS_ENABLED if start_workers is None else bool(start_workers)
    app.state.notifier = notifier if notifier is not None else SlackNotifier(app.state.db_path)
    app.state.clock = clock
    app.state.workers = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        with LeagueRepo(app.state.db_path) as repo:
            repo.init_db()
        if app.state.start_workers:
            app.state.workers = workers.build_workers(app.state.db_path, notifier=app.state.notifier)
            await workers.start_all(app.state.workers)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await workers.stop_all(app.state.workers)
        app.state.workers = []

    @app.exception_handler(LedgerError)
    async def _ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
        if isinstance(exc, PersistenceError):
            logger.error("persistence failure on %s %s: %s", request.method, request.url.path, exc)
        return _ledger_error_response(exc)

    @contextmanager
    def _service():
        # Opened inside the handler so the connection stays on one thread.
        with LeagueService.open(app.state.db_path, notifier=app.state.notifier, clock=app.state.clock) as svc:
            yield svc

    @app.get("/")
    def root():
        return {"ok": True, "service": "league-ledger"}

    # ---------------------------------------------------------------------
    # Auction
    # ---------------------------------------------------------------------
    @app.post("/api/players/{player_id}/bids")
    def api_submit_bid(player_id: str, req: BidRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "bid": svc.submit_bid(caller, player_id, req.years, req.aav)}

    @app.get("/api/players/{player_id}/bids")
    def api_bid_history(player_id: str):
        with _service() as svc:
            return {"ok": True, "bids": svc.bid_history(player_id)}

    @app.get("/api/leagues/{league_id}/auctions")
    def api_pending_auctions(league_id: str):
        with _service() as svc:
            return {"ok": True, "auctions": svc.pending_auctions(league_id)}

    # ---------------------------------------------------------------------
    # Waivers
    # ---------------------------------------------------------------------
    @app.post("/api/players/{player_id}/dfa")
    def api_dfa(player_id: str, req: DfaRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "dfa": svc.designate_for_assignment(caller, player_id, req.team_id, req.clear_action)}

    @app.post("/api/players/{player_id}/claims")
    def api_claim(player_id: str, req: ClaimRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "claim": svc.submit_claim(caller, player_id, req.team_id)}

    @app.get("/api/players/{player_id}/claims")
    def api_list_claims(player_id: str):
        with _service() as svc:
            return {"ok": True, "claims": svc.list_claims(player_id)}

    # ---------------------------------------------------------------------
    # Roster moves
    # ---------------------------------------------------------------------
    @app.post("/api/players/{player_id}/roster-moves")
    def api_roster_move(player_id: str, req: RosterMoveRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            if req.action == "promote_40":
                result = svc.promote_to_40(caller, player_id)
            elif req.action == "promote_26":
                result = svc.promote_to_26(caller, player_id)
            elif req.action == "option":
                result = svc.option_to_minors(caller, player_id)
            elif req.action == "il":
                if req.days is None:
                    raise HTTPException(status_code=400, detail="days is required for an IL placement")
                result = svc.place_on_injured_list(caller, player_id, req.days)
            elif req.action == "activate":
                result = svc.activate_from_injured_list(caller, player_id)
            else:
                raise HTTPException(status_code=400, detail=f"Unknown roster move: {req.action}")
        return {"ok": True, "move": result}

    # ---------------------------------------------------------------------
    # Trades
    # ---------------------------------------------------------------------
    @app.post("/api/trades")
    def api_propose_trade(req: TradeRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            trade = svc.propose_trade(
                caller,
                req.proposing_team_id,
                req.receiving_team_id,
                offered_player_ids=req.offered_player_ids,
                requested_player_ids=req.requested_player_ids,
                isbp_offered=req.isbp_offered,
                isbp_requested=req.isbp_requested,
                retain_player_ids=req.retain_player_ids,
            )
        return {"ok": True, "trade": trade}

    @app.post("/api/trades/{trade_id}/counter")
    def api_counter_trade(trade_id: str, req: CounterRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            trade = svc.counter_trade(
                caller,
                trade_id,
                offered_player_ids=req.offered_player_ids,
                requested_player_ids=req.requested_player_ids,
                isbp_offered=req.isbp_offered,
                isbp_requested=req.isbp_requested,
                retain_player_ids=req.retain_player_ids,
            )
        return {"ok": True, "trade": trade}

    @app.post("/api/trades/{trade_id}/accept")
    def api_accept_trade(trade_id: str, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "trade": svc.accept_trade(caller, trade_id)}

    @app.post("/api/trades/{trade_id}/reject")
    def api_reject_trade(trade_id: str, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "trade": svc.reject_trade(caller, trade_id)}

    @app.post("/api/trades/{trade_id}/reverse")
    def api_reverse_trade(trade_id: str, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "trade": svc.reverse_trade(caller, trade_id)}

    @app.get("/api/trades/{trade_id}")
    def api_get_trade(trade_id: str):
        with _service() as svc:
            return {"ok": True, "trade": svc.get_trade(trade_id)}

    @app.get("/api/leagues/{league_id}/trades")
    def api_list_trades(league_id: str, status: Optional[str] = None):
        with _service() as svc:
            return {"ok": True, "trades": svc.list_trades(league_id, status=status)}

    # ---------------------------------------------------------------------
    # Contracts, options, dead cap
    # ---------------------------------------------------------------------
    @app.get("/api/teams/{team_id}/payroll")
    def api_payroll(team_id: str, year: int):
        with _service() as svc:
            return {"ok": True, "payroll": svc.team_payroll(team_id, year)}

    @app.get("/api/teams/{team_id}/dead-cap")
    def api_list_dead_cap(team_id: str, year: Optional[int] = None):
        with _service() as svc:
            return {"ok": True, "dead_cap": svc.list_dead_cap(team_id, year)}

    @app.post("/api/teams/{team_id}/dead-cap")
    def api_add_dead_cap(team_id: str, req: DeadCapRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            penalty = svc.add_dead_cap(caller, team_id, req.amount, req.year, req.note, player_id=req.player_id)
        return {"ok": True, "dead_cap": penalty}

    @app.delete("/api/dead-cap/{penalty_id}")
    def api_delete_dead_cap(penalty_id: int, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "dead_cap": svc.delete_dead_cap(caller, penalty_id)}

    @app.get("/api/teams/{team_id}/options")
    def api_team_options(team_id: str, year: int):
        with _service() as svc:
            return {"ok": True, "options": svc.list_team_options(team_id, year)}

    @app.post("/api/players/{player_id}/options/{year}/{decision}")
    def api_option_decision(player_id: str, year: int, decision: str, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            if decision == "exercise":
                result = svc.exercise_option(caller, player_id, year)
            elif decision == "decline":
                result = svc.decline_option(caller, player_id, year)
            else:
                raise HTTPException(status_code=400, detail=f"Unknown option decision: {decision}")
        return {"ok": True, "option": result}

    @app.post("/api/players/{player_id}/arbitration")
    def api_arbitration(player_id: str, req: ArbitrationRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "action": svc.submit_arbitration(caller, player_id, req.year, req.amount, decline=req.decline)}

    @app.post("/api/players/{player_id}/extension")
    def api_extension(player_id: str, req: ExtensionRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "action": svc.submit_extension(caller, player_id, req.years, req.aav)}

    @app.post("/api/players/{player_id}/restructure")
    def api_restructure(player_id: str, req: RestructureRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            action = svc.submit_restructure(caller, player_id, req.from_year, req.to_year, req.amount)
        return {"ok": True, "action": action}

    @app.post("/api/actions/{action_id}")
    def api_process_action(action_id: str, req: ActionDecisionRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "action": svc.process_action(caller, action_id, req.decision)}

    @app.get("/api/leagues/{league_id}/actions")
    def api_list_actions(league_id: str, status: Optional[str] = ACTION_PENDING):
        with _service() as svc:
            return {"ok": True, "actions": svc.list_pending_actions(league_id, status)}

    # ---------------------------------------------------------------------
    # Calendar / settings
    # ---------------------------------------------------------------------
    @app.put("/api/leagues/{league_id}/dates/{year}/{date_type}")
    def api_set_date(league_id: str, year: int, date_type: str, req: LeagueDateRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        with _service() as svc:
            return {"ok": True, "date": svc.set_league_date(caller, league_id, year, date_type, req.event_date)}

    @app.get("/api/leagues/{league_id}/settings/{year}")
    def api_get_settings(league_id: str, year: int):
        with _service() as svc:
            return {"ok": True, "settings": svc.league_settings(league_id, year)}

    @app.put("/api/leagues/{league_id}/settings/{year}")
    def api_set_settings(league_id: str, year: int, req: LeagueSettingsRequest, x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        values: Dict[str, Any] = {
            k: v
            for k, v in {
                "roster_26_limit": req.roster_26_limit,
                "roster_40_limit": req.roster_40_limit,
                "sp_26_limit": req.sp_26_limit,
                "luxury_tax_limit": req.luxury_tax_limit,
            }.items()
            if v is not None
        }
        with _service() as svc:
            return {"ok": True, "settings": svc.set_league_settings(caller, league_id, year, values)}

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    @app.get("/api/players/{player_id}")
    def api_get_player(player_id: str):
        with _service() as svc:
            return {"ok": True, "player": svc.get_player(player_id)}

    @app.get("/api/teams/{team_id}/roster")
    def api_team_roster(team_id: str):
        with _service() as svc:
            return {"ok": True, "roster": svc.team_roster(team_id)}

    @app.get("/api/leagues/{league_id}/transactions")
    def api_transactions(league_id: str, limit: int = 200, tx_type: Optional[str] = None):
        with _service() as svc:
            return {"ok": True, "transactions": svc.list_transactions(league_id=league_id, tx_type=tx_type, limit=limit)}

    # ---------------------------------------------------------------------
    # Admin
    # ---------------------------------------------------------------------
    @app.post("/api/admin/seasonal/run")
    def api_run_seasonal(x_user_id: Optional[str] = Header(None), x_admin: Optional[str] = Header(None)):
        caller = get_caller(x_user_id, x_admin)
        if not caller.is_admin:
            raise HTTPException(status_code=403, detail="Admin access required")
        with _service() as svc:
            return {"ok": True, "ran": svc.run_seasonal_resets()}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("server:app", host="0.0.0.0", port=8000)
