"""Draft endpoints. Clients poll ``/state``; the sweeper handles timeouts."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..config import EngineConfig
from ..dependencies import get_config, get_store, http_error
from ..services import draft_service
from ..services.record_store import RecordStore

router = APIRouter()


class DraftSettingsRequest(BaseModel):
    order: Optional[list[str]] = None
    max_rounds: Optional[int] = None
    is_snake: Optional[bool] = None
    timed: Optional[bool] = None
    scheduled_start: Optional[datetime] = None
    clear_scheduled_start: bool = False


class PickRequest(BaseModel):
    team_id: str
    player_id: str


class TeamRequest(BaseModel):
    team_id: str


@router.put("/{league_id}/settings")
async def update_settings(
    league_id: str,
    req: DraftSettingsRequest,
    store: RecordStore = Depends(get_store),
):
    try:
        state = draft_service.update_draft_settings(
            store,
            league_id,
            order=req.order,
            max_rounds=req.max_rounds,
            is_snake=req.is_snake,
            timed=req.timed,
            scheduled_start=req.scheduled_start,
            clear_scheduled_start=req.clear_scheduled_start,
        )
    except ValueError as e:
        raise http_error(e)
    return state.model_dump(mode="json")


@router.post("/{league_id}/start")
async def start_draft(
    league_id: str,
    store: RecordStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    """Commissioner starts the draft."""
    try:
        state = draft_service.start_draft(store, league_id, config)
    except ValueError as e:
        raise http_error(e)
    return {"status": state.status.value, "current_participant": state.current_participant}


@router.post("/{league_id}/reset")
async def reset_draft(league_id: str, store: RecordStore = Depends(get_store)):
    try:
        state = draft_service.reset_draft(store, league_id)
    except ValueError as e:
        raise http_error(e)
    return {"status": state.status.value}


@router.get("/{league_id}/state")
async def get_draft_state(league_id: str, store: RecordStore = Depends(get_store)):
    """Current turn, round, pick number and time left."""
    try:
        return draft_service.get_draft_turn(store, league_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{league_id}/pick")
async def submit_pick(
    league_id: str,
    req: PickRequest,
    store: RecordStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    try:
        pick = draft_service.submit_pick(store, league_id, req.team_id, req.player_id, config)
    except ValueError as e:
        raise http_error(e)
    return pick.model_dump(mode="json")


@router.get("/{league_id}/available")
async def list_available(
    league_id: str,
    q: Optional[str] = Query(None, description="Fuzzy player/club search"),
    limit: Optional[int] = Query(None, ge=1),
    store: RecordStore = Depends(get_store),
):
    try:
        players = draft_service.list_available_players(store, league_id, query=q, limit=limit)
    except ValueError as e:
        raise http_error(e)
    return [p.model_dump() for p in players]


@router.get("/{league_id}/drafted")
async def list_drafted(league_id: str, store: RecordStore = Depends(get_store)):
    try:
        picks = draft_service.list_drafted_players(store, league_id)
    except ValueError as e:
        raise http_error(e)
    return picks


@router.post("/{league_id}/join")
async def join_draft(league_id: str, req: TeamRequest, store: RecordStore = Depends(get_store)):
    """Mark the team as attended. Clients repeat this as a heartbeat."""
    try:
        return draft_service.join_draft(store, league_id, req.team_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{league_id}/heartbeat")
async def heartbeat(league_id: str, req: TeamRequest, store: RecordStore = Depends(get_store)):
    try:
        draft_service.join_draft(store, league_id, req.team_id)
    except ValueError as e:
        raise http_error(e)
    return {"status": "ok"}
