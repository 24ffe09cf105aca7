"""Golden Boot table: team goal totals adjusted for transfers."""

from __future__ import annotations

import logging

import pandas as pd

from ..models.draft import RosterEntry
from ..models.player import Player
from .league_manager import get_league_or_raise
from .record_store import RecordStore

logger = logging.getLogger(__name__)

ORIGINAL = "original"
TRANSFERRED_IN = "transferred_in"
TRANSFERRED_OUT = "transferred_out"
IN_AND_OUT = "in_and_out"


def credited_goals(entry: RosterEntry, player: Player) -> tuple[int, str]:
    """Goals a team earns from one roster stint, and how the stint ended.

    Only goals scored while the player was on the team count.
    """
    if entry.via_transfer and entry.dropped:
        goals = (entry.goals_at_drop or 0) - entry.goals_before_pickup
        return max(goals, 0), IN_AND_OUT
    if entry.via_transfer:
        return max(player.goals - entry.goals_before_pickup, 0), TRANSFERRED_IN
    if entry.dropped:
        return entry.goals_at_drop or 0, TRANSFERRED_OUT
    return player.goals, ORIGINAL


def compute_standings(store: RecordStore, league_id: str) -> list[dict]:
    """Teams sorted by total credited goals, highest first.

    Ties share a rank and are listed by team name.
    """
    league = get_league_or_raise(store, league_id)
    roster = store.list_roster(league_id, include_dropped=True)

    rows = []
    for team in league.teams:
        players = []
        for entry in roster:
            if entry.team_id != team.team_id:
                continue
            player = store.get_player(entry.player_id)
            if player is None:
                logger.warning(f"Roster entry for unknown player {entry.player_id} in league {league_id}")
                continue
            goals, status = credited_goals(entry, player)
            players.append({
                "player_id": player.id,
                "player_name": player.name,
                "club": player.team,
                "goals": goals,
                "season_goals": player.goals,
                "status": status,
                "acquired_at": entry.acquired_at,
                "dropped_at": entry.dropped_at,
            })
        players.sort(key=lambda p: (-p["goals"], p["player_name"]))
        rows.append({
            "team_id": team.team_id,
            "team_name": team.team_name,
            "owner_name": team.owner_name,
            "total_goals": sum(p["goals"] for p in players),
            "players": players,
        })

    rows.sort(key=lambda r: (-r["total_goals"], r["team_name"]))
    rank = 0
    previous = None
    for position, row in enumerate(rows, start=1):
        if row["total_goals"] != previous:
            rank = position
            previous = row["total_goals"]
        row["rank"] = rank
    return rows


def standings_frame(rows: list[dict]) -> pd.DataFrame:
    """One spreadsheet row per team."""
    return pd.DataFrame([
        {
            "Rank": r["rank"],
            "Team": r["team_name"],
            "Owner": r["owner_name"],
            "Goals": r["total_goals"],
            "Top Scorer": r["players"][0]["player_name"] if r["players"] else "",
            "Players": len([p for p in r["players"] if p["status"] in (ORIGINAL, TRANSFERRED_IN)]),
        }
        for r in rows
    ], columns=["Rank", "Team", "Owner", "Goals", "Top Scorer", "Players"])
