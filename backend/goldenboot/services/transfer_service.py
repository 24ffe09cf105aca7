"""Transfer window: drop -> pickup turns, passing, finishing, timeouts."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..errors import (
    AlreadyTakenError,
    InvalidSettingsError,
    NotFoundError,
    NotOwnedError,
    PersistenceConflict,
    SessionClosedError,
)
from ..models.player import Player
from ..models.session import (
    SessionMode,
    SessionState,
    TeamTransferProgress,
    session_id_for,
)
from ..models.transfer import ActionType, TransferAction
from . import turn_engine
from .auto_pick import TRANSFER_METRIC, rank_players, select_auto_pick
from .league_manager import get_league_or_raise, get_team_or_raise
from .player_pool import get_player_or_raise, search_players
from .presence import attended_participants, record_heartbeat
from .record_store import RecordStore

logger = logging.getLogger(__name__)

WINDOW_PENDING = "pending"
WINDOW_ACTIVE = "active"
WINDOW_COMPLETED = "completed"


def _utcnow(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def get_transfer_session(store: RecordStore, league_id: str) -> SessionState:
    state = store.read_session_state(session_id_for(league_id, SessionMode.TRANSFER))
    if state is None:
        raise NotFoundError(f"No transfer window has been set up for league '{league_id}'")
    return state


def _write(store: RecordStore, state: SessionState, new_state: SessionState) -> SessionState:
    try:
        return store.write_session_state(state.session_id, state.version, new_state)
    except PersistenceConflict:
        logger.warning(f"Transfer {state.session_id} write rejected at v{state.version}")
        raise


def _close_if_ended(store: RecordStore, state: SessionState, now: datetime) -> SessionState:
    """Persist the Completed transition once the window end has been observed."""
    expired = turn_engine.expire_if_due(state, now)
    if expired is None:
        return state
    try:
        return store.write_session_state(state.session_id, state.version, expired)
    except PersistenceConflict:
        # Someone else observed it first
        return store.read_session_state(state.session_id) or expired


def _load_accepting(store: RecordStore, league_id: str, now: datetime) -> SessionState:
    state = _close_if_ended(store, get_transfer_session(store, league_id), now)
    turn_engine.ensure_accepting(state, now)
    return state


def _log_action(
    store: RecordStore,
    league_id: str,
    team_id: str,
    action_type: ActionType,
    transfer_round: int,
    now: datetime,
    player: Optional[Player] = None,
    auto: bool = False,
) -> TransferAction:
    action = TransferAction(
        fantasy_team_id=team_id,
        action_type=action_type,
        player_id=player.id if player else "",
        player_name=player.name if player else "",
        action_date=now,
        goals_at_action=player.goals if player else 0,
        transfer_round=transfer_round,
        auto=auto,
    )
    store.append_transfer_action(league_id, action)
    logger.info(
        f"League {league_id} transfer round {transfer_round}: {team_id} {action_type.value}"
        + (f" {player.id}" if player else "")
        + (" (auto)" if auto else "")
    )
    return action


# ---------------------------------------------------------------------------
# Window setup & status
# ---------------------------------------------------------------------------

def start_transfer_window(
    store: RecordStore,
    league_id: str,
    window_start: datetime,
    window_end: datetime,
    max_rounds: Optional[int] = None,
    is_snake: bool = False,
    order: Optional[list[str]] = None,
    timed: bool = True,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> SessionState:
    """Open a new transfer window, replacing any earlier one.

    The order defaults to the draft order. Finished teams and per-team
    progress always start empty.
    """
    now = _utcnow(now)
    league = get_league_or_raise(store, league_id)
    if window_end <= window_start:
        raise InvalidSettingsError("Transfer window must end after it starts")
    if window_end <= now:
        raise InvalidSettingsError("Transfer window end time has already passed")

    if order is None:
        draft = store.read_session_state(session_id_for(league_id, SessionMode.DRAFT))
        order = draft.order if draft is not None else league.team_ids
    if not order or sorted(order) != sorted(league.team_ids):
        raise InvalidSettingsError("Transfer order must list every team in the league exactly once")
    rounds = max_rounds if max_rounds is not None else config.default_transfer_rounds
    if rounds < 1:
        raise InvalidSettingsError("Transfer window needs at least one round")

    session_id = session_id_for(league_id, SessionMode.TRANSFER)
    existing = store.read_session_state(session_id)
    if existing is not None and existing.is_active and not turn_engine.window_has_ended(existing, now):
        raise InvalidSettingsError("A transfer window is already open for this league")

    fresh = SessionState(
        session_id=session_id,
        league_id=league_id,
        mode=SessionMode.TRANSFER,
        order=list(order),
        is_snake=is_snake,
        max_rounds=rounds,
        current_participant=order[0],
        timed=timed,
        window_start=window_start,
        window_end=window_end,
    )
    # The first turn's clock runs from the moment the window opens
    clock_start = max(now, window_start)
    attended = attended_participants(store, session_id, now, config)
    started = turn_engine.start_session(fresh, clock_start, attended, config)

    if existing is None:
        stored = store.create_session(started)
    else:
        stored = store.write_session_state(session_id, existing.version, started)
    logger.info(
        f"Transfer window for league {league_id}: {window_start.isoformat()} -> "
        f"{window_end.isoformat()}, {rounds} rounds"
    )
    return stored


def window_status(state: SessionState, now: datetime) -> str:
    if state.is_completed or turn_engine.window_has_ended(state, now):
        return WINDOW_COMPLETED
    if state.window_start is not None and now < state.window_start:
        return WINDOW_PENDING
    return WINDOW_ACTIVE


def get_transfer_window(
    store: RecordStore,
    league_id: str,
    now: Optional[datetime] = None,
) -> dict:
    now = _utcnow(now)
    state = _close_if_ended(store, get_transfer_session(store, league_id), now)
    window_left = None
    if state.window_end is not None and not state.is_completed:
        window_left = max(int((state.window_end - now).total_seconds()), 0)
    return {
        "league_id": league_id,
        "status": state.status.value,
        "window_status": window_status(state, now),
        "window_start": state.window_start,
        "window_end": state.window_end,
        "window_seconds_remaining": window_left,
        "order": state.order,
        "round_order": turn_engine.effective_order(state.order, state.round, state.is_snake),
        "round": state.round,
        "max_rounds": state.max_rounds,
        "is_snake": state.is_snake,
        "timed": state.timed,
        "current_participant": state.current_participant,
        "current_step": (
            state.progress_for(state.current_participant).value
            if state.current_participant else None
        ),
        "deadline": state.deadline,
        "seconds_remaining": turn_engine.seconds_remaining(state, now),
        "progress": {k: v.value for k, v in state.progress.items()},
        "pending_drops": state.pending_drops,
        "finished_teams": state.finished_teams,
        "completion_reason": state.completion_reason,
        "version": state.version,
    }


# ---------------------------------------------------------------------------
# Turn actions
# ---------------------------------------------------------------------------

def submit_drop(
    store: RecordStore,
    league_id: str,
    team_id: str,
    player_id: str,
    now: Optional[datetime] = None,
) -> TransferAction:
    """First half of a transfer: release a player the team owns."""
    now = _utcnow(now)
    state = _load_accepting(store, league_id, now)
    stepped = turn_engine.record_drop(state, team_id, player_id)
    player = get_player_or_raise(store, player_id)
    if store.active_owner(league_id, player_id) != team_id:
        raise NotOwnedError(f"{player.name} is not on your team")

    _write(store, state, stepped)
    store.release_player(league_id, player_id, team_id, now, goals_at_drop=player.goals)
    return _log_action(store, league_id, team_id, ActionType.DROP, state.round, now, player)


def submit_pickup(
    store: RecordStore,
    league_id: str,
    team_id: str,
    player_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
    auto: bool = False,
) -> TransferAction:
    """Second half of a transfer: claim a free player and pass the turn on."""
    now = _utcnow(now)
    state = _load_accepting(store, league_id, now)
    stepped = turn_engine.record_pickup(state, team_id)
    player = get_player_or_raise(store, player_id)
    owner = store.active_owner(league_id, player_id)
    if owner is not None:
        raise AlreadyTakenError(f"{player.name} is already on team '{owner}'")

    attended = attended_participants(store, state.session_id, now, config)
    advanced = turn_engine.advance_turn(stepped, team_id, now, attended, config)
    _write(store, state, advanced)
    store.claim_player(
        league_id, player_id, team_id, now, via_transfer=True, goals_before_pickup=player.goals
    )
    return _log_action(store, league_id, team_id, ActionType.PICKUP, state.round, now, player, auto)


def skip_turn(
    store: RecordStore,
    league_id: str,
    team_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
    auto: bool = False,
) -> TransferAction:
    """Pass this round's turn without transferring."""
    now = _utcnow(now)
    state = _load_accepting(store, league_id, now)
    stepped = turn_engine.record_skip(state, team_id)
    attended = attended_participants(store, state.session_id, now, config)
    _write(store, state, turn_engine.advance_turn(stepped, team_id, now, attended, config))
    return _log_action(store, league_id, team_id, ActionType.SKIP, state.round, now, auto=auto)


def mark_done_transferring(
    store: RecordStore,
    league_id: str,
    team_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> SessionState:
    """Team sits out every remaining round of this window."""
    now = _utcnow(now)
    state = _load_accepting(store, league_id, now)
    attended = attended_participants(store, state.session_id, now, config)
    stored = _write(store, state, turn_engine.mark_finished(state, team_id, now, attended, config))
    _log_action(store, league_id, team_id, ActionType.DONE, state.round, now)
    return stored


def auto_action_if_expired(
    store: RecordStore,
    league_id: str,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> Optional[TransferAction]:
    """Act for the team on the clock once its deadline has passed.

    Awaiting a drop the turn is passed; awaiting a pickup the best free
    player by current-season goals is picked up. Returns None when nothing
    was due.
    """
    now = _utcnow(now)
    state = get_transfer_session(store, league_id)
    if not state.is_active:
        return None
    state = _close_if_ended(store, state, now)
    if not state.is_active or not turn_engine.check_timeout(state, now):
        return None

    team_id = state.current_participant
    if state.progress_for(team_id) != TeamTransferProgress.DROPPED_AWAITING_PICKUP:
        return skip_turn(store, league_id, team_id, config, now, auto=True)

    owned = {e.player_id for e in store.list_roster(league_id)}
    player = select_auto_pick(store.list_players(), owned, TRANSFER_METRIC)
    if player is None:
        raise SessionClosedError("No free players left to pick up")
    return submit_pickup(store, league_id, team_id, player.id, config, now, auto=True)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

def list_free_agents(
    store: RecordStore,
    league_id: str,
    query: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Player]:
    """Players not on any team, best current-season scorers first."""
    get_league_or_raise(store, league_id)
    owned = {e.player_id for e in store.list_roster(league_id)}
    free = rank_players([p for p in store.list_players() if p.id not in owned], TRANSFER_METRIC)
    if query:
        free = search_players(free, query, limit=limit or 25)
    if limit is not None:
        free = free[:limit]
    return free


def list_transfer_actions(store: RecordStore, league_id: str) -> list[TransferAction]:
    get_league_or_raise(store, league_id)
    return store.list_transfer_actions(league_id)


def join_transfer_window(
    store: RecordStore,
    league_id: str,
    team_id: str,
    now: Optional[datetime] = None,
) -> dict:
    now = _utcnow(now)
    get_team_or_raise(get_league_or_raise(store, league_id), team_id)
    record_heartbeat(store, session_id_for(league_id, SessionMode.TRANSFER), team_id, now)
    return get_transfer_window(store, league_id, now)
