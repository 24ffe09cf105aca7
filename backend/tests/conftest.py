"""Shared fixtures: an in-memory store, a two-team league and a small pool."""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from goldenboot.models.league import FantasyTeam
from goldenboot.models.player import Player
from goldenboot.services.league_manager import create_league
from goldenboot.services.record_store import InMemoryRecordStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

# (id, name, club, goals_prior, goals)
POOL = [
    ("1", "Luis Suárez", "MIA", 5, 2),
    ("2", "Denis Bouanga", "LAFC", 12, 6),
    ("3", "Christian Benteke", "DC", 12, 1),
    ("4", "Cucho Hernández", "CLB", 3, 4),
    ("5", "Lionel Messi", "MIA", 20, 9),
    ("6", "Hany Mukhtar", "NSH", 7, 0),
    ("7", "Sam Surridge", "NSH", 9, 7),
    ("8", "Petar Musa", "DAL", 1, 3),
    ("9", "Chicho Arango", "SJ", 15, 5),
    ("10", "Brian White", "VAN", 0, 8),
    ("11", "Diego Rossi", "CLB", 8, 2),
    ("12", "Evander", "CIN", 6, 1),
]


def make_players() -> list[Player]:
    return [
        Player(id=pid, name=name, team=club, goals_prior=prior, goals=goals)
        for pid, name, club, prior, goals in POOL
    ]


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def store():
    store = InMemoryRecordStore()
    store.put_players(make_players())
    return store


@pytest.fixture
def league(store):
    return create_league(
        store,
        "Golden Boot Test League",
        "commish@example.com",
        [
            FantasyTeam(team_id="A", team_name="Alpha FC", owner_name="Ana"),
            FantasyTeam(team_id="B", team_name="Bravo United", owner_name="Ben"),
        ],
        rng=random.Random(7),
        now=T0,
    )
