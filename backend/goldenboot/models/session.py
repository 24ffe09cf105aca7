"""Persisted turn-rotation state for a draft or transfer window."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator


class SessionMode(str, Enum):
    DRAFT = "draft"
    TRANSFER = "transfer"


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    COMPLETED = "completed"


class TeamTransferProgress(str, Enum):
    """Per-team step within a transfer turn.

    NOT_STARTED is "awaiting drop", DROPPED_AWAITING_PICKUP is "awaiting
    pickup", DONE_FOR_ROUND is "turn complete".
    """

    NOT_STARTED = "not_started"
    DROPPED_AWAITING_PICKUP = "dropped_awaiting_pickup"
    DONE_FOR_ROUND = "done_for_round"


def session_id_for(league_id: str, mode: SessionMode) -> str:
    return f"{league_id}:{SessionMode(mode).value}"


class SessionState(BaseModel):
    session_id: str
    league_id: str
    mode: SessionMode
    status: SessionStatus = SessionStatus.NOT_STARTED

    # Rotation
    order: list[str]
    is_snake: bool = False
    max_rounds: int = 1
    round: int = 1
    current_participant: Optional[str] = None

    # Turn timer; an untimed session never has a deadline
    timed: bool = True
    deadline: Optional[datetime] = None

    # Bumped by the record store on every accepted write
    version: int = 0

    scheduled_start: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completion_reason: Optional[str] = None

    # Transfer window only
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    finished_teams: list[str] = []
    progress: dict[str, TeamTransferProgress] = {}
    pending_drops: dict[str, str] = {}  # team_id -> dropped player_id

    @model_validator(mode="after")
    def _check_rotation(self) -> "SessionState":
        if not self.order:
            raise ValueError("turn order must not be empty")
        if len(set(self.order)) != len(self.order):
            raise ValueError("turn order must contain each participant exactly once")
        if self.max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        if self.current_participant is not None and self.current_participant not in self.order:
            raise ValueError(f"current participant '{self.current_participant}' is not in the turn order")
        return self

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def team_count(self) -> int:
        return len(self.order)

    @property
    def total_turns(self) -> int:
        return self.team_count * self.max_rounds

    def progress_for(self, team_id: str) -> TeamTransferProgress:
        return self.progress.get(team_id, TeamTransferProgress.NOT_STARTED)
