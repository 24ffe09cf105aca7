"""Player pool endpoints."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel

from ..dependencies import get_store, http_error
from ..services.auto_pick import rank_players
from ..services.player_pool import (
    import_dynamo_players,
    load_players_csv,
    search_players,
    set_player_goals,
    update_goals,
)
from ..services.record_store import RecordStore

router = APIRouter()


class GoalUpdateRequest(BaseModel):
    goals: dict[str, int]  # player name -> goals
    field: str = "goals"


class PlayerGoalsRequest(BaseModel):
    goals: int


@router.post("/upload")
async def upload_players(file: UploadFile = File(...), store: RecordStore = Depends(get_store)):
    """Upload a player pool CSV (id, name, team, goals_prior, goals)."""
    content = await file.read()
    try:
        players = load_players_csv(store, content)
    except ValueError as e:
        raise http_error(e)
    return {
        "message": f"Loaded {len(players)} players from {file.filename}",
        "player_count": len(players),
        "total_in_pool": len(store.list_players()),
    }


@router.post("/import-dynamo")
async def import_dynamo(payload: Any = Body(...), store: RecordStore = Depends(get_store)):
    """Import a DynamoDB scan export (``{"Items": [...]}``)."""
    try:
        players = import_dynamo_players(store, payload)
    except ValueError as e:
        raise http_error(e)
    return {"player_count": len(players), "total_in_pool": len(store.list_players())}


@router.get("")
async def list_players(
    q: Optional[str] = Query(None, description="Fuzzy player/club search"),
    limit: Optional[int] = Query(None, ge=1),
    store: RecordStore = Depends(get_store),
):
    players = rank_players(store.list_players(), "goals")
    if q:
        players = search_players(players, q, limit=limit or 25)
    if limit is not None:
        players = players[:limit]
    return [p.model_dump() for p in players]


@router.post("/goals")
async def update_goals_endpoint(req: GoalUpdateRequest, store: RecordStore = Depends(get_store)):
    """Apply goal counts by player name (fuzzy matched)."""
    try:
        result = update_goals(store, req.goals, field=req.field)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "message": f"Matched {result['matched']} players, {result['unmatched']} unmatched",
        **result,
    }


@router.put("/{player_id}/goals")
async def set_goals(player_id: str, req: PlayerGoalsRequest, store: RecordStore = Depends(get_store)):
    try:
        player = set_player_goals(store, player_id, req.goals)
    except ValueError as e:
        raise http_error(e)
    return player.model_dump()
