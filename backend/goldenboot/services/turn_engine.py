"""Turn rotation state machine shared by drafts and transfer windows.

Every function here is pure: it takes a ``SessionState`` (plus the wall-clock
``now`` where timing matters) and returns a new ``SessionState``. Persisting
the result is the caller's job; the record store's conditional write is the
only serialization point between competing writers.

Lifecycle::

    NotStarted --start_session--> Active --advance_turn--> Active
                                         \\--(rounds exhausted | window end |
                                             everyone finished)--> Completed
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Collection, Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..errors import (
    InvalidSettingsError,
    InvalidTurnError,
    NotFoundError,
    SessionClosedError,
    SessionNotStartedError,
    StepOutOfOrderError,
)
from ..models.session import SessionState, SessionStatus, TeamTransferProgress

logger = logging.getLogger(__name__)

NO_ONE: frozenset[str] = frozenset()


# ---------------------------------------------------------------------------
# Turn order
# ---------------------------------------------------------------------------

def effective_order(order: list[str], round_number: int, is_snake: bool) -> list[str]:
    """Order of play for *round_number* (1-based).

    Snake rotation reverses the base order on even rounds.
    """
    if round_number < 1:
        raise ValueError(f"round must be >= 1, got {round_number}")
    if is_snake and round_number % 2 == 0:
        return list(reversed(order))
    return list(order)


def turn_position(order: list[str], turns_taken: int, is_snake: bool) -> tuple[int, str]:
    """Round and participant for the next turn after *turns_taken* turns.

    For drafts ``turns_taken`` is the pick count, so the overall pick number
    ``p = turns_taken + 1`` lands in round ``(p - 1) // len(order) + 1``.
    """
    round_number = turns_taken // len(order) + 1
    index = turns_taken % len(order)
    return round_number, effective_order(order, round_number, is_snake)[index]


# ---------------------------------------------------------------------------
# Timers
# ---------------------------------------------------------------------------

def turn_length(
    participant: str,
    attended: Collection[str] = NO_ONE,
    config: EngineConfig = DEFAULT_CONFIG,
) -> timedelta:
    if participant in attended:
        return config.turn_length
    return config.unattended_turn_length


def _deadline(
    state: SessionState,
    participant: Optional[str],
    now: datetime,
    attended: Collection[str],
    config: EngineConfig,
) -> Optional[datetime]:
    if not state.timed or participant is None:
        return None
    return now + turn_length(participant, attended, config)


def check_timeout(state: SessionState, now: datetime) -> bool:
    """True iff the stored deadline has been reached. Untimed sessions never expire."""
    return state.deadline is not None and now >= state.deadline


def seconds_remaining(state: SessionState, now: datetime) -> Optional[int]:
    """Whole seconds left on the clock, recomputed from the absolute deadline."""
    if state.deadline is None:
        return None
    remaining = (state.deadline - now).total_seconds()
    return max(int(-(-remaining // 1)), 0)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def start_session(
    state: SessionState,
    now: datetime,
    attended: Collection[str] = NO_ONE,
    config: EngineConfig = DEFAULT_CONFIG,
) -> SessionState:
    """NotStarted -> Active with round 1 and the first participant on the clock."""
    if state.status == SessionStatus.COMPLETED:
        raise SessionClosedError(f"Session '{state.session_id}' is already completed")
    if state.status == SessionStatus.ACTIVE:
        raise InvalidSettingsError(f"Session '{state.session_id}' has already started")

    first = effective_order(state.order, 1, state.is_snake)[0]
    logger.info(f"Session {state.session_id} started: {first} on the clock")
    return state.model_copy(update={
        "status": SessionStatus.ACTIVE,
        "round": 1,
        "current_participant": first,
        "deadline": _deadline(state, first, now, attended, config),
        "started_at": now,
        "completed_at": None,
        "completion_reason": None,
        "progress": {},
        "pending_drops": {},
    })


def complete_session(state: SessionState, now: datetime, reason: str) -> SessionState:
    """Move to the terminal Completed state. Completing twice is a no-op."""
    if state.is_completed:
        return state
    logger.info(f"Session {state.session_id} completed ({reason})")
    return state.model_copy(update={
        "status": SessionStatus.COMPLETED,
        "round": min(state.round, state.max_rounds),
        "current_participant": None,
        "deadline": None,
        "completed_at": now,
        "completion_reason": reason,
        "progress": {},
        "pending_drops": {},
    })


def window_has_ended(state: SessionState, now: datetime) -> bool:
    return state.window_end is not None and now > state.window_end


def expire_if_due(state: SessionState, now: datetime) -> Optional[SessionState]:
    """Completed state when an active window's end time has passed, else None."""
    if state.is_active and window_has_ended(state, now):
        return complete_session(state, now, "window_ended")
    return None


def ensure_accepting(state: SessionState, now: datetime) -> None:
    """Raise unless the session currently accepts pick/drop/pickup actions."""
    if state.status == SessionStatus.COMPLETED:
        raise SessionClosedError(f"{state.mode.value.capitalize()} session is closed")
    if state.status == SessionStatus.NOT_STARTED:
        raise SessionNotStartedError(f"{state.mode.value.capitalize()} session has not started yet")
    opens_at = state.window_start or state.scheduled_start
    if opens_at is not None and now < opens_at:
        raise SessionNotStartedError(
            f"{state.mode.value.capitalize()} opens at {opens_at.isoformat()}"
        )
    if window_has_ended(state, now):
        raise SessionClosedError("Transfer window has ended")


def _ensure_on_clock(state: SessionState, participant: str) -> None:
    if participant != state.current_participant:
        raise InvalidTurnError(
            f"It's not your turn. Current turn: {state.current_participant}"
        )


# ---------------------------------------------------------------------------
# Advancing
# ---------------------------------------------------------------------------

def advance_turn(
    state: SessionState,
    acting: str,
    now: datetime,
    attended: Collection[str] = NO_ONE,
    config: EngineConfig = DEFAULT_CONFIG,
) -> SessionState:
    """Pass the turn on after *acting* has finished their action.

    Moves to the next entry of the round's effective order, or to the first
    entry of the next round; exhausting ``max_rounds`` completes the session.
    Participants who marked themselves finished are skipped. Transfer
    progress is cleared whenever the round changes.
    """
    if state.status == SessionStatus.COMPLETED:
        raise SessionClosedError(f"Session '{state.session_id}' is already completed")
    if state.status != SessionStatus.ACTIVE:
        raise SessionNotStartedError(f"Session '{state.session_id}' has not started yet")
    _ensure_on_clock(state, acting)

    finished = set(state.finished_teams)
    if finished.issuperset(state.order):
        return complete_session(state, now, "all_finished")

    round_number = state.round
    order = effective_order(state.order, round_number, state.is_snake)
    index = order.index(acting)
    progress = dict(state.progress)
    pending_drops = dict(state.pending_drops)

    while True:
        index += 1
        if index >= len(order):
            round_number += 1
            if round_number > state.max_rounds:
                return complete_session(state, now, "max_rounds")
            order = effective_order(state.order, round_number, state.is_snake)
            index = 0
            progress = {}
            pending_drops = {}
        if order[index] not in finished:
            break

    next_participant = order[index]
    logger.info(
        f"Session {state.session_id}: {acting} -> {next_participant} (round {round_number})"
    )
    return state.model_copy(update={
        "round": round_number,
        "current_participant": next_participant,
        "deadline": _deadline(state, next_participant, now, attended, config),
        "progress": progress,
        "pending_drops": pending_drops,
    })


def sync_to_turn_count(
    state: SessionState,
    turns_taken: int,
    now: datetime,
    attended: Collection[str] = NO_ONE,
    config: EngineConfig = DEFAULT_CONFIG,
) -> SessionState:
    """Re-derive round and participant from the canonical turn count.

    Used after a rejected write: the pick log, not the stored cursor, decides
    whose turn it is. The deadline is only reset when the cursor moves.
    """
    if not state.is_active:
        return state
    if turns_taken >= state.total_turns:
        return complete_session(state, now, "max_rounds")
    round_number, participant = turn_position(state.order, turns_taken, state.is_snake)
    if round_number == state.round and participant == state.current_participant:
        return state
    return state.model_copy(update={
        "round": round_number,
        "current_participant": participant,
        "deadline": _deadline(state, participant, now, attended, config),
    })


# ---------------------------------------------------------------------------
# Transfer sub-steps
# ---------------------------------------------------------------------------

def record_drop(state: SessionState, team_id: str, player_id: str) -> SessionState:
    """AwaitingDrop -> AwaitingPickup for the team on the clock."""
    _ensure_on_clock(state, team_id)
    step = state.progress_for(team_id)
    if step == TeamTransferProgress.DROPPED_AWAITING_PICKUP:
        raise StepOutOfOrderError("You already dropped a player this turn; pick one up next")
    if step == TeamTransferProgress.DONE_FOR_ROUND:
        raise StepOutOfOrderError("Your transfer for this round is already complete")

    progress = dict(state.progress)
    progress[team_id] = TeamTransferProgress.DROPPED_AWAITING_PICKUP
    pending_drops = dict(state.pending_drops)
    pending_drops[team_id] = player_id
    return state.model_copy(update={"progress": progress, "pending_drops": pending_drops})


def record_pickup(state: SessionState, team_id: str) -> SessionState:
    """AwaitingPickup -> TurnComplete. The step check comes before the turn
    check: a team without a pending drop can never pick up."""
    if state.progress_for(team_id) != TeamTransferProgress.DROPPED_AWAITING_PICKUP:
        raise StepOutOfOrderError("You must drop a player before picking one up")
    _ensure_on_clock(state, team_id)

    progress = dict(state.progress)
    progress[team_id] = TeamTransferProgress.DONE_FOR_ROUND
    pending_drops = dict(state.pending_drops)
    pending_drops.pop(team_id, None)
    return state.model_copy(update={"progress": progress, "pending_drops": pending_drops})


def record_skip(state: SessionState, team_id: str) -> SessionState:
    """Pass without transferring. Not allowed once a player has been dropped."""
    _ensure_on_clock(state, team_id)
    step = state.progress_for(team_id)
    if step == TeamTransferProgress.DROPPED_AWAITING_PICKUP:
        raise StepOutOfOrderError("You dropped a player this turn; pick one up before passing")
    progress = dict(state.progress)
    progress[team_id] = TeamTransferProgress.DONE_FOR_ROUND
    return state.model_copy(update={"progress": progress})


def mark_finished(
    state: SessionState,
    team_id: str,
    now: datetime,
    attended: Collection[str] = NO_ONE,
    config: EngineConfig = DEFAULT_CONFIG,
) -> SessionState:
    """Team is done transferring for the rest of the window.

    If it was their turn the turn advances; once every team is finished the
    window completes.
    """
    if team_id not in state.order:
        raise NotFoundError(f"Team '{team_id}' is not part of this transfer window")
    if state.progress_for(team_id) == TeamTransferProgress.DROPPED_AWAITING_PICKUP:
        raise StepOutOfOrderError("Pick up a player before finishing your transfers")

    finished = list(state.finished_teams)
    if team_id not in finished:
        finished.append(team_id)
    progress = dict(state.progress)
    progress.pop(team_id, None)
    updated = state.model_copy(update={"finished_teams": finished, "progress": progress})

    if set(finished).issuperset(state.order):
        return complete_session(updated, now, "all_finished")
    if state.current_participant == team_id:
        return advance_turn(updated, team_id, now, attended, config)
    return updated
