"""Transfer window audit log."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ActionType(str, Enum):
    DROP = "drop"
    PICKUP = "pickup"
    SKIP = "skip"
    DONE = "done"


class TransferAction(BaseModel):
    """Append-only record of one transfer step."""

    fantasy_team_id: str
    action_type: ActionType
    player_id: str = ""
    player_name: str = ""
    action_date: datetime
    goals_at_action: int = 0
    transfer_round: int = 1
    auto: bool = False

    model_config = {"frozen": True}
