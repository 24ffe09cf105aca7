"""League and fantasy team models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class FantasyTeam(BaseModel):
    team_id: str
    team_name: str
    owner_name: str = ""
    owner_email: Optional[str] = None


class League(BaseModel):
    league_id: str
    name: str
    commissioner: str = ""
    teams: list[FantasyTeam] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def get_team(self, team_id: str) -> Optional[FantasyTeam]:
        return next((t for t in self.teams if t.team_id == team_id), None)

    @property
    def team_ids(self) -> list[str]:
        return [t.team_id for t in self.teams]
