"""
FastAPI backend for the Realm turn engine.
Provides REST API endpoints for game state management and actions.
"""

import json
import uuid
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .database import get_db, get_db_file_path, init_db
from .models import Game as GameModel

from realm.config import DEFAULT_SETUP_ID
from realm.engine.state import GameState
from realm.engine.actions import (
    Action,
    accept_proposal,
    cancel_colonization,
    cancel_construction,
    clear_event_log,
    create_company,
    create_country,
    decline_proposal,
    delete_agreement,
    delete_company,
    delete_country,
    demolish_building,
    end_turn,
    propose_agreement,
    set_colonization_disabled,
    start_colonization,
    start_construction,
    trim_event_log,
    withdraw_proposal,
)
from realm.engine.reducer import apply_action
from realm.engine.definitions import list_setups
from realm.engine.queries import (
    get_active_colonizations_count,
    get_available_action_types,
    get_buildable_buildings,
    get_colonization_targets,
    get_construction_queue,
    get_country_agreements,
    get_country_proposals,
    get_game_summary,
    validate_action,
)
from realm.engine.utils import create_game_from_setup

app = FastAPI(
    title="Realm API",
    description="Backend API for Realm - a province colonization and construction strategy game",
    version="1.0.0",
)

# CORS configuration for frontend
CORS_ORIGINS = ["http://localhost:5173", "http://localhost:5174", "http://localhost:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            print(f"[500] {method} {path}", flush=True)
        return response
    except Exception:
        print(f"[500] {method} {path} (exception)", flush=True)
        raise


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Return 500 with CORS headers and full traceback so the frontend can read the error."""
    import traceback
    tb = traceback.format_exc()
    traceback.print_exc()
    origin = request.headers.get("origin")
    allow_origin = origin if origin in CORS_ORIGINS else CORS_ORIGINS[0]
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "traceback": tb},
        headers={
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Credentials": "true",
        },
    )


# In-memory cache of loaded game state (also persisted in DB)
games: dict[str, GameState] = {}


# ===== Pydantic Models =====

class CreateGameRequest(BaseModel):
    name: str
    """Setup id from GET /setups. Omitted = default from realm.config.DEFAULT_SETUP_ID."""
    setup_id: str | None = None


class CreateCountryRequest(BaseModel):
    name: str
    color: str | None = None
    country_id: str | None = None


class CreateCompanyRequest(BaseModel):
    country_id: str
    name: str
    color: str | None = None


class ColonizationRequest(BaseModel):
    country_id: str
    province_id: str


class ColonizationDisabledRequest(BaseModel):
    disabled: bool = True


class ConstructionRequest(BaseModel):
    country_id: str
    province_id: str
    building_id: str
    company_id: str | None = None  # build for a company of country_id instead of the state


class CancelConstructionRequest(BaseModel):
    province_id: str
    building_id: str
    country_id: str | None = None


class DemolishRequest(BaseModel):
    country_id: str
    province_id: str
    building_id: str


class ProposalRequest(BaseModel):
    from_country_id: str
    to_country_id: str
    agreement: dict[str, Any] = {}  # terms: host/guest, allow flags, allow-lists, limits, duration
    reciprocal: bool = False


class ProposalDecisionRequest(BaseModel):
    country_id: str | None = None


class ActionRequest(BaseModel):
    type: str
    country: str | None = None
    payload: dict[str, Any] = {}


# ===== Helper Functions =====

def get_game(game_id: str, db: Session | None = None) -> GameState:
    """Get game state from DB (always fresh when db provided); raise 404 if not found."""
    if db is None:
        if game_id in games:
            return games[game_id]
        db = next(get_db())
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    try:
        raw = json.loads(row.game_state) if isinstance(row.game_state, str) else row.game_state
    except json.JSONDecodeError:
        # Corrupt state in DB; treat as not found so client can create fresh game
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    state = GameState.from_dict(raw if isinstance(raw, dict) else {})
    games[game_id] = state
    return state


def save_game(game_id: str, state: GameState, db: Session | None = None) -> None:
    """Persist game state to DB and cache."""
    games[game_id] = state
    if db is None:
        db = next(get_db())
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if row:
        row.game_state = state.to_json()
        row.turn = state.turn
        db.commit()


def state_for_response(state: GameState) -> dict[str, Any]:
    """State dict including the computed summary for the UI."""
    out = state.to_dict()
    out["summary"] = get_game_summary(state)
    return out


def run_action(game_id: str, action: Action, db: Session) -> dict[str, Any]:
    """Validate, apply and persist one action. Rejections answer 400 with error and reason."""
    state = get_game(game_id, db)
    validation = validate_action(state, action)
    if not validation.valid:
        raise HTTPException(status_code=400, detail=validation.to_dict())
    new_state, events = apply_action(state, action)
    save_game(game_id, new_state, db)
    return {
        "state": state_for_response(new_state),
        "events": [e.to_dict() for e in events],
    }


def _game_listing(row: GameModel) -> dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "setup_id": row.setup_id,
        "status": row.status,
        "turn": row.turn,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


@app.on_event("startup")
def on_startup():
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {
        "message": "Realm API",
        "version": "1.0.0",
        "database": get_db_file_path(),
        "actions": get_available_action_types(),
    }


@app.get("/setups")
def get_setups():
    """List available game setups (id, display_name). Use setup_id in POST /games."""
    return {"setups": list_setups()}


@app.post("/games")
def create_game(request: CreateGameRequest, db: Session = Depends(get_db)):
    """Create a new game from a setup. Returns game_id and the initial state."""
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Game name is required")
    setup_id = request.setup_id if request.setup_id is not None else DEFAULT_SETUP_ID
    try:
        state, setup_info = create_game_from_setup(setup_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))

    game_id = str(uuid.uuid4())
    row = GameModel(
        id=game_id,
        name=name,
        setup_id=setup_info["id"],
        status="active",
        turn=state.turn,
        game_state=state.to_json(),
    )
    db.add(row)
    db.commit()
    games[game_id] = state
    return {
        "game_id": game_id,
        "setup": setup_info,
        "state": state_for_response(state),
    }


@app.get("/games")
def list_games(db: Session = Depends(get_db)):
    """List saved games, newest first."""
    rows = db.query(GameModel).order_by(GameModel.created_at.desc()).all()
    return {"games": [_game_listing(row) for row in rows]}


@app.get("/games/{game_id}")
def get_game_state(game_id: str, db: Session = Depends(get_db)):
    """Get current game state (from DB)."""
    state = get_game(game_id, db)
    return {"game_id": game_id, "state": state_for_response(state)}


@app.delete("/games/{game_id}")
def delete_game(game_id: str, db: Session = Depends(get_db)):
    """Delete a game from DB and cache."""
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Game not found")
    db.delete(row)
    db.commit()
    games.pop(game_id, None)
    return {"message": f"Game {game_id} deleted"}


@app.get("/games/{game_id}/buildable")
def get_buildable(
    game_id: str,
    province_id: str,
    country_id: str,
    company_id: str | None = None,
    db: Session = Depends(get_db),
):
    """Every building with its construction verdict (accepted + reason) for a province."""
    state = get_game(game_id, db)
    if province_id not in state.provinces:
        raise HTTPException(status_code=404, detail=f"Province {province_id} not found")
    return {"buildings": get_buildable_buildings(state, province_id, country_id, company_id)}


# ----- Countries and companies -----

@app.get("/games/{game_id}/countries/{country_id}")
def get_country_overview(game_id: str, country_id: str, db: Session = Depends(get_db)):
    """Colonization targets, construction queue and diplomacy of one country."""
    state = get_game(game_id, db)
    country = state.get_country(country_id)
    if country is None:
        raise HTTPException(status_code=404, detail=f"Country {country_id} not found")
    return {
        "country": country.to_dict(),
        "active_colonizations": get_active_colonizations_count(state, country_id),
        "colonization_targets": get_colonization_targets(state, country_id),
        "construction_queue": get_construction_queue(state, country_id),
        "proposals": get_country_proposals(state, country_id),
        "agreements": get_country_agreements(state, country_id),
    }


@app.post("/games/{game_id}/countries")
def do_create_country(game_id: str, request: CreateCountryRequest, db: Session = Depends(get_db)):
    return run_action(game_id, create_country(request.name, request.color, request.country_id), db)


@app.delete("/games/{game_id}/countries/{country_id}")
def do_delete_country(game_id: str, country_id: str, db: Session = Depends(get_db)):
    return run_action(game_id, delete_country(country_id), db)


@app.post("/games/{game_id}/companies")
def do_create_company(game_id: str, request: CreateCompanyRequest, db: Session = Depends(get_db)):
    return run_action(game_id, create_company(request.country_id, request.name, request.color), db)


@app.delete("/games/{game_id}/companies/{company_id}")
def do_delete_company(game_id: str, company_id: str, db: Session = Depends(get_db)):
    return run_action(game_id, delete_company(company_id), db)


# ----- Colonization -----

@app.post("/games/{game_id}/colonization/start")
def do_start_colonization(game_id: str, request: ColonizationRequest, db: Session = Depends(get_db)):
    return run_action(game_id, start_colonization(request.country_id, request.province_id), db)


@app.post("/games/{game_id}/colonization/cancel")
def do_cancel_colonization(game_id: str, request: ColonizationRequest, db: Session = Depends(get_db)):
    return run_action(game_id, cancel_colonization(request.country_id, request.province_id), db)


@app.post("/games/{game_id}/provinces/{province_id}/colonization-disabled")
def do_set_colonization_disabled(
    game_id: str,
    province_id: str,
    request: ColonizationDisabledRequest,
    db: Session = Depends(get_db),
):
    """Close or reopen a province to colonization. Closing clears all progress on it."""
    return run_action(game_id, set_colonization_disabled(province_id, request.disabled), db)


# ----- Construction -----

@app.post("/games/{game_id}/construction/start")
def do_start_construction(game_id: str, request: ConstructionRequest, db: Session = Depends(get_db)):
    """Start construction. Rejections carry the eligibility reason code."""
    action = start_construction(
        request.country_id, request.province_id, request.building_id, request.company_id,
    )
    return run_action(game_id, action, db)


@app.post("/games/{game_id}/construction/cancel")
def do_cancel_construction(game_id: str, request: CancelConstructionRequest, db: Session = Depends(get_db)):
    action = cancel_construction(request.country_id, request.province_id, request.building_id)
    return run_action(game_id, action, db)


@app.post("/games/{game_id}/construction/demolish")
def do_demolish(game_id: str, request: DemolishRequest, db: Session = Depends(get_db)):
    action = demolish_building(request.country_id, request.province_id, request.building_id)
    return run_action(game_id, action, db)


# ----- Turn -----

@app.post("/games/{game_id}/end-turn")
def do_end_turn(game_id: str, db: Session = Depends(get_db)):
    """End the active country's turn; a full rotation resolves the global turn."""
    state = get_game(game_id, db)
    return run_action(game_id, end_turn(state.active_country_id), db)


# ----- Diplomacy -----

@app.post("/games/{game_id}/diplomacy/proposals")
def do_propose(game_id: str, request: ProposalRequest, db: Session = Depends(get_db)):
    action = propose_agreement(
        request.from_country_id, request.to_country_id, request.agreement, request.reciprocal,
    )
    return run_action(game_id, action, db)


@app.post("/games/{game_id}/diplomacy/proposals/{proposal_id}/accept")
def do_accept_proposal(
    game_id: str,
    proposal_id: str,
    request: ProposalDecisionRequest | None = None,
    db: Session = Depends(get_db),
):
    """Accept a proposal; for renewals this records one party's approval."""
    country_id = request.country_id if request else None
    return run_action(game_id, accept_proposal(country_id, proposal_id), db)


@app.post("/games/{game_id}/diplomacy/proposals/{proposal_id}/decline")
def do_decline_proposal(
    game_id: str,
    proposal_id: str,
    request: ProposalDecisionRequest | None = None,
    db: Session = Depends(get_db),
):
    country_id = request.country_id if request else None
    return run_action(game_id, decline_proposal(country_id, proposal_id), db)


@app.post("/games/{game_id}/diplomacy/proposals/{proposal_id}/withdraw")
def do_withdraw_proposal(
    game_id: str,
    proposal_id: str,
    request: ProposalDecisionRequest | None = None,
    db: Session = Depends(get_db),
):
    country_id = request.country_id if request else None
    return run_action(game_id, withdraw_proposal(country_id, proposal_id), db)


@app.delete("/games/{game_id}/diplomacy/agreements/{agreement_id}")
def do_delete_agreement(
    game_id: str,
    agreement_id: str,
    country_id: str | None = None,
    db: Session = Depends(get_db),
):
    return run_action(game_id, delete_agreement(country_id, agreement_id), db)


# ----- Event log -----

@app.post("/games/{game_id}/event-log/clear")
def do_clear_event_log(game_id: str, db: Session = Depends(get_db)):
    return run_action(game_id, clear_event_log(), db)


@app.post("/games/{game_id}/event-log/trim")
def do_trim_event_log(game_id: str, db: Session = Depends(get_db)):
    """Keep only the newest event log entries."""
    return run_action(game_id, trim_event_log(), db)


@app.post("/games/{game_id}/actions")
def do_action(game_id: str, request: ActionRequest, db: Session = Depends(get_db)):
    """Apply any action given in its serialized form (type, country, payload)."""
    return run_action(game_id, Action.from_dict(request.model_dump()), db)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
