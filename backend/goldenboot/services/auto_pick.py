"""Deterministic player selection for timed-out turns."""

from __future__ import annotations

from typing import Collection, Iterable, Optional

from ..models.player import Player

# Draft ranks on last season, transfers on the season in progress
DRAFT_METRIC = "goals_prior"
TRANSFER_METRIC = "goals"


def id_sort_key(player_id: str) -> tuple:
    """Numeric ids compare as numbers and sort ahead of non-numeric ones."""
    if player_id.isdigit():
        return (0, int(player_id), player_id)
    return (1, 0, player_id)


def rank_players(players: Iterable[Player], metric: str = DRAFT_METRIC) -> list[Player]:
    """Sort by *metric* descending; equal goal counts fall back to lowest id."""
    return sorted(players, key=lambda p: (-getattr(p, metric), id_sort_key(p.id)))


def select_auto_pick(
    players: Iterable[Player],
    taken: Collection[str],
    metric: str = DRAFT_METRIC,
) -> Optional[Player]:
    """Best player not in *taken*, or None when the pool is exhausted.

    Same pool and same taken set always produce the same player.
    """
    available = [p for p in players if p.id not in taken]
    if not available:
        return None
    return rank_players(available, metric)[0]
