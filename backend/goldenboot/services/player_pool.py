"""MLS player pool: CSV and DynamoDB import, fuzzy search, goal updates."""

from __future__ import annotations

import io
import logging
import unicodedata
import uuid
from typing import Any, Iterable, Optional

import pandas as pd
from thefuzz import fuzz, process

from ..errors import NotFoundError
from ..models.player import Player
from ..utils.dynamo import deserialize_scan
from .record_store import RecordStore

logger = logging.getLogger(__name__)

# Column aliases seen in season exports and hand-made sheets
COLUMN_MAP = {
    "id": "id",
    "ID": "id",
    "player_id": "id",
    "playerId": "id",
    "\ufeffid": "id",  # BOM-prefixed
    "name": "name",
    "Name": "name",
    "player_name": "name",
    "Player": "name",
    "\ufeffName": "name",
    "team": "team",
    "Team": "team",
    "club": "team",
    "Club": "team",
    "goals_prior": "goals_prior",
    "prior_goals": "goals_prior",
    "goals_2025": "goals_prior",
    "Goals Prior": "goals_prior",
    "goals": "goals",
    "Goals": "goals",
    "G": "goals",
    "goals_2026": "goals",
    "is_new": "is_new",
    "isNew": "is_new",
    "is_new_to_team": "is_new_to_team",
    "isNewToTeam": "is_new_to_team",
}

SEARCH_CUTOFF = 70
GOAL_MATCH_THRESHOLD = 85


def _to_int(value: Any) -> int:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return 0
    text = str(value).strip()
    if not text:
        return 0
    return int(float(text))


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "y")


def normalize_name(name: str) -> str:
    """Lowercase, accents stripped, punctuation removed."""
    decomposed = unicodedata.normalize("NFD", name)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = "".join(c for c in stripped.lower() if c.isalpha() or c.isspace())
    return " ".join(cleaned.split())


def records_to_players(records: Iterable[dict[str, Any]]) -> list[Player]:
    """Build players from plain dict records using the column aliases."""
    players = []
    for record in records:
        row = {COLUMN_MAP[k]: v for k, v in record.items() if k in COLUMN_MAP}
        name = str(row.get("name") or "").strip()
        if not name:
            continue
        player_id = str(row.get("id") or "").strip() or str(uuid.uuid4())[:8]
        players.append(Player(
            id=player_id,
            name=name,
            team=str(row.get("team") or "").strip(),
            goals_prior=_to_int(row.get("goals_prior")),
            goals=_to_int(row.get("goals")),
            is_new=_to_bool(row.get("is_new", False)),
            is_new_to_team=_to_bool(row.get("is_new_to_team", False)),
        ))
    return players


def load_players_csv(store: RecordStore, csv_content: bytes) -> list[Player]:
    """Parse a player CSV and upsert it into the pool."""
    df = pd.read_csv(io.BytesIO(csv_content), dtype=str, keep_default_na=False)
    df = df.rename(columns={c: COLUMN_MAP[c] for c in df.columns if c in COLUMN_MAP})
    if "name" not in df.columns:
        raise ValueError("CSV must contain a 'name' column")

    players = records_to_players(df.to_dict(orient="records"))
    store.put_players(players)
    logger.info(f"Imported {len(players)} players from CSV")
    return players


def import_dynamo_players(store: RecordStore, payload: dict | list) -> list[Player]:
    """Import a DynamoDB scan export (typed attribute envelopes)."""
    players = records_to_players(deserialize_scan(payload))
    store.put_players(players)
    logger.info(f"Imported {len(players)} players from DynamoDB export")
    return players


def get_player_or_raise(store: RecordStore, player_id: str) -> Player:
    player = store.get_player(player_id)
    if player is None:
        raise NotFoundError(f"Player '{player_id}' not found")
    return player


# ---------------------------------------------------------------------------
# Fuzzy search & goal updates
# ---------------------------------------------------------------------------

def search_players(players: list[Player], query: Optional[str], limit: int = 25) -> list[Player]:
    """Players whose name (or club) fuzzily matches *query*, best first.

    An empty query returns the input unchanged.
    """
    if not query or not query.strip():
        return players
    by_id = {p.id: p for p in players}
    choices = {p.id: f"{normalize_name(p.name)} {p.team.lower()}" for p in players}
    results = process.extractBests(
        normalize_name(query),
        choices,
        scorer=fuzz.partial_ratio,
        score_cutoff=SEARCH_CUTOFF,
        limit=limit,
    )
    # result is (matched_text, score, player_id)
    return [by_id[player_id] for _text, _score, player_id in results]


def _fuzzy_match(name: str, choices: dict[str, str], threshold: int = GOAL_MATCH_THRESHOLD) -> Optional[str]:
    if not choices:
        return None
    result = process.extractOne(
        normalize_name(name), choices, scorer=fuzz.token_sort_ratio, score_cutoff=threshold
    )
    if result is None:
        return None
    _matched_name, _score, player_id = result
    return player_id


def update_goals(
    store: RecordStore,
    updates: dict[str, int],
    field: str = "goals",
    threshold: int = GOAL_MATCH_THRESHOLD,
) -> dict:
    """Apply ``{player_name: goals}`` to the pool, matching names fuzzily.

    Source data rarely shares ids with the pool, so names are matched after
    accent/punctuation normalization.
    """
    if field not in ("goals", "goals_prior"):
        raise ValueError(f"Unknown goal field '{field}'")

    players = {p.id: p for p in store.list_players()}
    choices = {pid: normalize_name(p.name) for pid, p in players.items()}

    changed: list[Player] = []
    details: list[dict] = []
    for name, goals in updates.items():
        player_id = _fuzzy_match(name, choices, threshold)
        if player_id is None:
            details.append({"name": name, "player_id": None, "status": "unmatched"})
            continue
        player = players[player_id]
        if getattr(player, field) != goals:
            player = player.model_copy(update={field: int(goals)})
            players[player_id] = player
            changed.append(player)
        details.append({"name": name, "player_id": player_id, "matched_player": player.name, "status": "matched"})

    store.put_players(changed)
    matched = sum(1 for d in details if d["status"] == "matched")
    logger.info(f"Goal update: {matched} matched, {len(details) - matched} unmatched, {len(changed)} changed")
    return {
        "matched": matched,
        "unmatched": len(details) - matched,
        "updated": len(changed),
        "details": details,
    }


def set_player_goals(store: RecordStore, player_id: str, goals: int) -> Player:
    player = get_player_or_raise(store, player_id)
    updated = player.model_copy(update={"goals": goals})
    store.put_players([updated])
    return updated
