"""Draft mode: settings, start, picks, timeout auto-picks, reset."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..errors import (
    InvalidSettingsError,
    InvalidTurnError,
    NotFoundError,
    PersistenceConflict,
)
from ..models.draft import DraftPick
from ..models.player import Player
from ..models.session import SessionMode, SessionState, SessionStatus, session_id_for
from . import turn_engine
from .auto_pick import DRAFT_METRIC, rank_players, select_auto_pick
from .league_manager import get_league_or_raise, get_team_or_raise
from .player_pool import get_player_or_raise, search_players
from .presence import attended_participants, record_heartbeat
from .record_store import RecordStore

logger = logging.getLogger(__name__)


def _utcnow(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def get_draft_session(store: RecordStore, league_id: str) -> SessionState:
    state = store.read_session_state(session_id_for(league_id, SessionMode.DRAFT))
    if state is None:
        raise NotFoundError(f"No draft found for league '{league_id}'")
    return state


def _reconcile(
    store: RecordStore, state: SessionState, now: datetime, config: EngineConfig
) -> SessionState:
    """Bring the stored cursor in line with the pick log after a rejected write.

    Runs once. A second rejection means another writer already moved the
    cursor, which leaves the repair to them.
    """
    fresh = store.read_session_state(state.session_id)
    if fresh is None:
        raise NotFoundError(f"Session '{state.session_id}' disappeared")
    picks_made = len(store.list_picks(fresh.league_id))
    attended = attended_participants(store, fresh.session_id, now, config)
    repaired = turn_engine.sync_to_turn_count(fresh, picks_made, now, attended, config)
    if repaired is fresh:
        return fresh
    try:
        return store.write_session_state(fresh.session_id, fresh.version, repaired)
    except PersistenceConflict:
        logger.warning(f"Draft {fresh.session_id} changed again during reconcile; leaving it")
        return store.read_session_state(fresh.session_id) or fresh


def _save(
    store: RecordStore,
    state: SessionState,
    new_state: SessionState,
    now: datetime,
    config: EngineConfig,
) -> SessionState:
    try:
        return store.write_session_state(state.session_id, state.version, new_state)
    except PersistenceConflict:
        logger.warning(f"Draft {state.session_id} write rejected at v{state.version}; reconciling")
        return _reconcile(store, state, now, config)


# ---------------------------------------------------------------------------
# Settings & lifecycle
# ---------------------------------------------------------------------------

def update_draft_settings(
    store: RecordStore,
    league_id: str,
    order: Optional[list[str]] = None,
    max_rounds: Optional[int] = None,
    is_snake: Optional[bool] = None,
    timed: Optional[bool] = None,
    scheduled_start: Optional[datetime] = None,
    clear_scheduled_start: bool = False,
) -> SessionState:
    """Change draft settings. Only allowed before the draft starts.

    ``None`` leaves a setting as it is; pass ``clear_scheduled_start`` to
    drop a previously scheduled start.
    """
    league = get_league_or_raise(store, league_id)
    state = get_draft_session(store, league_id)
    if state.status != SessionStatus.NOT_STARTED:
        raise InvalidSettingsError("Draft settings cannot change once the draft has started")

    updates: dict = {}
    if order is not None:
        if not order or sorted(order) != sorted(league.team_ids):
            raise InvalidSettingsError("Draft order must list every team in the league exactly once")
        updates["order"] = list(order)
        updates["current_participant"] = order[0]
    if max_rounds is not None:
        if max_rounds < 1:
            raise InvalidSettingsError("Number of rounds must be at least 1")
        updates["max_rounds"] = max_rounds
    if is_snake is not None:
        updates["is_snake"] = is_snake
    if timed is not None:
        updates["timed"] = timed
    if clear_scheduled_start and scheduled_start is not None:
        raise InvalidSettingsError("Give a scheduled start or clear it, not both")
    if scheduled_start is not None:
        updates["scheduled_start"] = scheduled_start
    elif clear_scheduled_start:
        updates["scheduled_start"] = None

    if not updates:
        return state
    new_state = state.model_copy(update=updates)
    return store.write_session_state(state.session_id, state.version, new_state)


def start_draft(
    store: RecordStore,
    league_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> SessionState:
    now = _utcnow(now)
    state = get_draft_session(store, league_id)
    attended = attended_participants(store, state.session_id, now, config)
    # A scheduled draft starts its first clock at the scheduled time
    clock_start = max(now, state.scheduled_start) if state.scheduled_start else now
    new_state = turn_engine.start_session(state, clock_start, attended, config)

    picks_made = len(store.list_picks(league_id))
    if picks_made:
        new_state = turn_engine.sync_to_turn_count(new_state, picks_made, clock_start, attended, config)

    stored = store.write_session_state(state.session_id, state.version, new_state)
    logger.info(f"Draft started for league {league_id}: {stored.max_rounds} rounds, snake={stored.is_snake}")
    return stored


def reset_draft(store: RecordStore, league_id: str) -> SessionState:
    """Clear all picks and return the draft to NotStarted with the same settings."""
    state = get_draft_session(store, league_id)
    removed = store.clear_picks(league_id)
    new_state = state.model_copy(update={
        "status": SessionStatus.NOT_STARTED,
        "round": 1,
        "current_participant": state.order[0],
        "deadline": None,
        "started_at": None,
        "completed_at": None,
        "completion_reason": None,
    })
    stored = store.write_session_state(state.session_id, state.version, new_state)
    logger.info(f"Draft reset for league {league_id}: {removed} picks cleared")
    return stored


# ---------------------------------------------------------------------------
# Turn view
# ---------------------------------------------------------------------------

def get_draft_turn(
    store: RecordStore,
    league_id: str,
    now: Optional[datetime] = None,
) -> dict:
    """Whose turn it is, derived from the pick count, plus the clock."""
    now = _utcnow(now)
    state = get_draft_session(store, league_id)
    picks_made = len(store.list_picks(league_id))
    round_number = min(picks_made // state.team_count + 1, state.max_rounds)
    return {
        "league_id": league_id,
        "status": state.status.value,
        "order": state.order,
        "round_order": turn_engine.effective_order(state.order, round_number, state.is_snake),
        "round": state.round if not state.is_active else round_number,
        "max_rounds": state.max_rounds,
        "is_snake": state.is_snake,
        "timed": state.timed,
        "current_participant": state.current_participant if state.is_active else None,
        "picks_made": picks_made,
        "total_picks": state.total_turns,
        "pick_number": picks_made + 1 if state.is_active else None,
        "deadline": state.deadline,
        "seconds_remaining": turn_engine.seconds_remaining(state, now),
        "scheduled_start": state.scheduled_start,
        "version": state.version,
    }


# ---------------------------------------------------------------------------
# Picks
# ---------------------------------------------------------------------------

def submit_pick(
    store: RecordStore,
    league_id: str,
    team_id: str,
    player_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
    auto: bool = False,
) -> DraftPick:
    """Record a pick for the team on the clock and pass the turn on.

    The pick is appended with a create-if-absent precondition on the player
    and on the pick slot; losing either race raises without side effects.
    """
    now = _utcnow(now)
    state = get_draft_session(store, league_id)
    turn_engine.ensure_accepting(state, now)
    get_player_or_raise(store, player_id)

    picks_made = len(store.list_picks(league_id))
    if picks_made >= state.total_turns:
        raise InvalidSettingsError("All picks for this draft have been made")
    round_number, on_clock = turn_engine.turn_position(state.order, picks_made, state.is_snake)
    if team_id != on_clock:
        raise InvalidTurnError(f"It's not your turn. Current turn: {on_clock}")

    pick = store.append_pick(league_id, player_id, team_id, now, picks_made + 1, auto=auto)
    logger.info(
        f"League {league_id} pick {pick.pick_number}: {team_id} took {player_id}"
        + (" (auto)" if auto else "")
    )

    attended = attended_participants(store, state.session_id, now, config)
    if state.current_participant == team_id and state.round == round_number:
        new_state = turn_engine.advance_turn(state, team_id, now, attended, config)
    else:
        new_state = turn_engine.sync_to_turn_count(state, pick.pick_number, now, attended, config)
    _save(store, state, new_state, now, config)
    return pick


def auto_pick_if_expired(
    store: RecordStore,
    league_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> Optional[DraftPick]:
    """Pick for the team on the clock when its deadline has passed.

    Returns None when nothing was due. The pick is the best remaining player
    by prior-season goals, lowest id on ties.
    """
    now = _utcnow(now)
    state = get_draft_session(store, league_id)
    if not state.is_active or not turn_engine.check_timeout(state, now):
        return None

    picks = store.list_picks(league_id)
    taken = {p.player_id for p in picks}
    taken.update(e.player_id for e in store.list_roster(league_id))
    player = select_auto_pick(store.list_players(), taken, DRAFT_METRIC)
    if player is None:
        logger.warning(f"League {league_id}: player pool exhausted, closing draft")
        _save(store, state, turn_engine.complete_session(state, now, "pool_exhausted"), now, config)
        return None

    _, on_clock = turn_engine.turn_position(state.order, len(picks), state.is_snake)
    return submit_pick(store, league_id, on_clock, player.id, config, now, auto=True)


def list_available_players(
    store: RecordStore,
    league_id: str,
    query: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Player]:
    get_league_or_raise(store, league_id)
    owned = {e.player_id for e in store.list_roster(league_id)}
    available = rank_players([p for p in store.list_players() if p.id not in owned], DRAFT_METRIC)
    if query:
        available = search_players(available, query, limit=limit or 25)
    if limit is not None:
        available = available[:limit]
    return available


def list_drafted_players(store: RecordStore, league_id: str) -> list[dict]:
    league = get_league_or_raise(store, league_id)
    drafted = []
    for pick in store.list_picks(league_id):
        player = store.get_player(pick.player_id)
        team = league.get_team(pick.team_drafted_by)
        drafted.append({
            **pick.model_dump(),
            "player_name": player.name if player else pick.player_id,
            "club": player.team if player else "",
            "goals_prior": player.goals_prior if player else 0,
            "team_name": team.team_name if team else pick.team_drafted_by,
        })
    return drafted


def join_draft(
    store: RecordStore,
    league_id: str,
    team_id: str,
    now: Optional[datetime] = None,
) -> dict:
    """Register the caller as attending *team_id*; doubles as the heartbeat."""
    now = _utcnow(now)
    get_team_or_raise(get_league_or_raise(store, league_id), team_id)
    record_heartbeat(store, session_id_for(league_id, SessionMode.DRAFT), team_id, now)
    return get_draft_turn(store, league_id, now)
