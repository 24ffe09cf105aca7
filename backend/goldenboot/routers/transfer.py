"""Transfer window endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..config import EngineConfig
from ..dependencies import get_config, get_store, http_error
from ..services import transfer_service
from ..services.record_store import RecordStore

router = APIRouter()


class WindowRequest(BaseModel):
    window_start: datetime
    window_end: datetime
    max_rounds: Optional[int] = None
    is_snake: bool = False
    order: Optional[list[str]] = None
    timed: bool = True


class PlayerActionRequest(BaseModel):
    team_id: str
    player_id: str


class TeamRequest(BaseModel):
    team_id: str


@router.post("/{league_id}/window")
async def start_window(
    league_id: str,
    req: WindowRequest,
    store: RecordStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    """Commissioner opens a transfer window."""
    try:
        state = transfer_service.start_transfer_window(
            store,
            league_id,
            req.window_start,
            req.window_end,
            max_rounds=req.max_rounds,
            is_snake=req.is_snake,
            order=req.order,
            timed=req.timed,
            config=config,
        )
    except ValueError as e:
        raise http_error(e)
    return state.model_dump(mode="json")


@router.get("/{league_id}/state")
async def get_window(league_id: str, store: RecordStore = Depends(get_store)):
    try:
        return transfer_service.get_transfer_window(store, league_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{league_id}/drop")
async def drop_player(league_id: str, req: PlayerActionRequest, store: RecordStore = Depends(get_store)):
    try:
        action = transfer_service.submit_drop(store, league_id, req.team_id, req.player_id)
    except ValueError as e:
        raise http_error(e)
    return action.model_dump(mode="json")


@router.post("/{league_id}/pickup")
async def pickup_player(
    league_id: str,
    req: PlayerActionRequest,
    store: RecordStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    try:
        action = transfer_service.submit_pickup(store, league_id, req.team_id, req.player_id, config)
    except ValueError as e:
        raise http_error(e)
    return action.model_dump(mode="json")


@router.post("/{league_id}/skip")
async def skip_turn(
    league_id: str,
    req: TeamRequest,
    store: RecordStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    try:
        action = transfer_service.skip_turn(store, league_id, req.team_id, config)
    except ValueError as e:
        raise http_error(e)
    return action.model_dump(mode="json")


@router.post("/{league_id}/done")
async def done_transferring(
    league_id: str,
    req: TeamRequest,
    store: RecordStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    """Team skips every remaining round of the window."""
    try:
        state = transfer_service.mark_done_transferring(store, league_id, req.team_id, config)
    except ValueError as e:
        raise http_error(e)
    return {
        "status": state.status.value,
        "finished_teams": state.finished_teams,
        "current_participant": state.current_participant,
    }


@router.get("/{league_id}/free-agents")
async def list_free_agents(
    league_id: str,
    q: Optional[str] = Query(None, description="Fuzzy player/club search"),
    limit: Optional[int] = Query(None, ge=1),
    store: RecordStore = Depends(get_store),
):
    try:
        players = transfer_service.list_free_agents(store, league_id, query=q, limit=limit)
    except ValueError as e:
        raise http_error(e)
    return [p.model_dump() for p in players]


@router.get("/{league_id}/actions")
async def list_actions(league_id: str, store: RecordStore = Depends(get_store)):
    try:
        actions = transfer_service.list_transfer_actions(store, league_id)
    except ValueError as e:
        raise http_error(e)
    return [a.model_dump(mode="json") for a in actions]


@router.post("/{league_id}/join")
async def join_window(league_id: str, req: TeamRequest, store: RecordStore = Depends(get_store)):
    """Mark the team as attended. Clients repeat this as a heartbeat."""
    try:
        return transfer_service.join_transfer_window(store, league_id, req.team_id)
    except ValueError as e:
        raise http_error(e)
