"""League creation and lookup."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..errors import InvalidSettingsError, NotFoundError
from ..models.league import FantasyTeam, League
from ..models.session import SessionMode, SessionState, session_id_for
from .record_store import RecordStore

logger = logging.getLogger(__name__)


def generate_league_id(store: RecordStore, rng: Optional[random.Random] = None) -> str:
    """Random six-digit id not used by any existing league."""
    rng = rng or random.Random()
    while True:
        league_id = f"{rng.randint(0, 999999):06d}"
        if store.get_league(league_id) is None:
            return league_id


def create_league(
    store: RecordStore,
    name: str,
    commissioner: str,
    teams: list[FantasyTeam],
    config: EngineConfig = DEFAULT_CONFIG,
    draft_order: Optional[list[str]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> League:
    """Create a league and its not-yet-started draft.

    The draft order defaults to the order the teams were listed in.
    """
    if not name.strip():
        raise InvalidSettingsError("League name is required")
    if not teams:
        raise InvalidSettingsError("A league needs at least one team")
    team_ids = [t.team_id for t in teams]
    if len(set(team_ids)) != len(team_ids):
        raise InvalidSettingsError("Team ids must be unique")

    order = list(draft_order) if draft_order else team_ids
    if sorted(order) != sorted(team_ids):
        raise InvalidSettingsError("Draft order must list every team exactly once")

    league = League(
        league_id=generate_league_id(store, rng),
        name=name.strip(),
        commissioner=commissioner,
        teams=teams,
        created_at=now or datetime.now(timezone.utc),
    )
    store.put_league(league)
    store.create_session(SessionState(
        session_id=session_id_for(league.league_id, SessionMode.DRAFT),
        league_id=league.league_id,
        mode=SessionMode.DRAFT,
        order=order,
        max_rounds=config.default_draft_rounds,
        current_participant=order[0],
    ))
    logger.info(f"Created league {league.league_id} '{league.name}' with {len(teams)} teams")
    return league


def get_league_or_raise(store: RecordStore, league_id: str) -> League:
    league = store.get_league(league_id)
    if league is None:
        raise NotFoundError(f"League '{league_id}' not found")
    return league


def get_team_or_raise(league: League, team_id: str) -> FantasyTeam:
    team = league.get_team(team_id)
    if team is None:
        raise NotFoundError(f"Team '{team_id}' not found in league '{league.league_id}'")
    return team
