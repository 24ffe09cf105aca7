"""MLS player pool model."""

from __future__ import annotations

from pydantic import BaseModel


class Player(BaseModel):
    id: str
    name: str
    team: str = ""  # MLS club
    goals_prior: int = 0  # previous season, used to rank the draft pool
    goals: int = 0  # current season, used for standings and transfer ranking

    is_new: bool = False  # new to MLS
    is_new_to_team: bool = False  # moved between MLS clubs
