"""Draft pick and roster ownership records."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DraftPick(BaseModel):
    """Append-only; a player appears at most once across a league's picks."""

    player_id: str
    team_drafted_by: str
    draft_time: datetime
    pick_number: int  # 1-based overall pick
    auto: bool = False  # made by the timeout auto-pick

    model_config = {"frozen": True}


class RosterEntry(BaseModel):
    """One stint of a player on a fantasy team.

    A player has at most one active (not dropped) entry per league. Dropping
    closes the stint; a later pickup opens a new one.
    """

    player_id: str
    team_id: str
    acquired_at: datetime
    via_transfer: bool = False
    goals_before_pickup: int = 0

    dropped: bool = False
    dropped_at: Optional[datetime] = None
    goals_at_drop: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return not self.dropped
