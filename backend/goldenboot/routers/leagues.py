"""League endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..config import EngineConfig
from ..dependencies import get_config, get_store, http_error
from ..models.league import FantasyTeam
from ..services.league_manager import create_league, get_league_or_raise
from ..services.record_store import RecordStore

router = APIRouter()


class CreateLeagueRequest(BaseModel):
    name: str
    commissioner: str
    teams: list[FantasyTeam]
    draft_order: Optional[list[str]] = None


@router.post("")
async def create_league_endpoint(
    req: CreateLeagueRequest,
    store: RecordStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    """Create a league and its (not yet started) draft."""
    try:
        league = create_league(
            store, req.name, req.commissioner, req.teams, config, draft_order=req.draft_order
        )
    except ValueError as e:
        raise http_error(e)
    return league.model_dump(mode="json")


@router.get("")
async def list_leagues(store: RecordStore = Depends(get_store)):
    return [l.model_dump(mode="json") for l in store.list_leagues()]


@router.get("/{league_id}")
async def get_league(league_id: str, store: RecordStore = Depends(get_store)):
    try:
        league = get_league_or_raise(store, league_id)
    except ValueError as e:
        raise http_error(e)
    return league.model_dump(mode="json")


@router.get("/{league_id}/teams/{team_id}/roster")
async def get_team_roster(league_id: str, team_id: str, store: RecordStore = Depends(get_store)):
    """Players currently on a team."""
    try:
        league = get_league_or_raise(store, league_id)
    except ValueError as e:
        raise http_error(e)
    team = league.get_team(team_id)
    if team is None:
        raise HTTPException(status_code=404, detail=f"Team '{team_id}' not found")

    players = []
    for entry in store.list_roster(league_id, team_id=team_id):
        player = store.get_player(entry.player_id)
        players.append({
            **entry.model_dump(mode="json"),
            "player_name": player.name if player else entry.player_id,
            "club": player.team if player else "",
            "goals": player.goals if player else 0,
        })
    return {"team_id": team_id, "team_name": team.team_name, "players": players}
