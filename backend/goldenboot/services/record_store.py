"""Keyed record store with the conditional primitives the engine relies on.

Two kinds of precondition are enforced here and nowhere else:

* create-if-absent: a player can be picked once per league, and owned by at
  most one team at a time;
* versioned writes: a session state is only replaced when the caller saw the
  latest version.

A rejected precondition raises (``AlreadyTakenError`` / ``PersistenceConflict``
/ ``NotOwnedError``) instead of overwriting.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from ..errors import AlreadyTakenError, NotOwnedError, PersistenceConflict
from ..models.draft import DraftPick, RosterEntry
from ..models.league import League
from ..models.player import Player
from ..models.session import SessionState, SessionStatus
from ..models.transfer import TransferAction

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    # -- sessions ---------------------------------------------------------
    @abstractmethod
    def create_session(self, state: SessionState) -> SessionState: ...

    @abstractmethod
    def read_session_state(self, session_id: str) -> Optional[SessionState]: ...

    @abstractmethod
    def write_session_state(
        self, session_id: str, expected_version: int, new_state: SessionState
    ) -> SessionState: ...

    @abstractmethod
    def list_sessions(self, status: Optional[SessionStatus] = None) -> list[SessionState]: ...

    # -- picks ------------------------------------------------------------
    @abstractmethod
    def append_pick(
        self,
        league_id: str,
        player_id: str,
        team_id: str,
        at: datetime,
        expected_pick_number: int,
        auto: bool = False,
    ) -> DraftPick: ...

    @abstractmethod
    def list_picks(self, league_id: str) -> list[DraftPick]: ...

    @abstractmethod
    def clear_picks(self, league_id: str) -> int: ...

    # -- roster -----------------------------------------------------------
    @abstractmethod
    def claim_player(
        self,
        league_id: str,
        player_id: str,
        team_id: str,
        at: datetime,
        via_transfer: bool = False,
        goals_before_pickup: int = 0,
    ) -> RosterEntry: ...

    @abstractmethod
    def release_player(
        self, league_id: str, player_id: str, team_id: str, at: datetime, goals_at_drop: int = 0
    ) -> RosterEntry: ...

    @abstractmethod
    def list_roster(
        self, league_id: str, team_id: Optional[str] = None, include_dropped: bool = False
    ) -> list[RosterEntry]: ...

    # -- transfers --------------------------------------------------------
    @abstractmethod
    def append_transfer_action(self, league_id: str, action: TransferAction) -> TransferAction: ...

    @abstractmethod
    def list_transfer_actions(self, league_id: str) -> list[TransferAction]: ...

    # -- presence ---------------------------------------------------------
    @abstractmethod
    def record_heartbeat(self, session_id: str, team_id: str, at: datetime) -> None: ...

    @abstractmethod
    def list_heartbeats(self, session_id: str) -> dict[str, datetime]: ...

    # -- leagues and player pool -----------------------------------------
    @abstractmethod
    def put_league(self, league: League) -> League: ...

    @abstractmethod
    def get_league(self, league_id: str) -> Optional[League]: ...

    @abstractmethod
    def list_leagues(self) -> list[League]: ...

    @abstractmethod
    def put_players(self, players: Iterable[Player]) -> int: ...

    @abstractmethod
    def get_player(self, player_id: str) -> Optional[Player]: ...

    @abstractmethod
    def list_players(self) -> list[Player]: ...

    def active_owner(self, league_id: str, player_id: str) -> Optional[str]:
        for entry in self.list_roster(league_id):
            if entry.player_id == player_id:
                return entry.team_id
        return None


class InMemoryRecordStore(RecordStore):
    """All conditional operations run under one lock, so each is atomic."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: dict[str, SessionState] = {}
        self._picks: dict[str, list[DraftPick]] = {}
        self._roster: dict[str, list[RosterEntry]] = {}
        self._transfers: dict[str, list[TransferAction]] = {}
        self._heartbeats: dict[str, dict[str, datetime]] = {}
        self._leagues: dict[str, League] = {}
        self._players: dict[str, Player] = {}

    def _commit(self) -> None:
        """Hook run after every accepted mutation, inside the lock."""

    # ---------------------------------------------------------------------
    # Sessions
    # ---------------------------------------------------------------------

    def create_session(self, state: SessionState) -> SessionState:
        with self._lock:
            if state.session_id in self._sessions:
                raise PersistenceConflict(f"Session '{state.session_id}' already exists")
            stored = state.model_copy(update={"version": 1})
            self._sessions[state.session_id] = stored
            self._commit()
            return stored

    def read_session_state(self, session_id: str) -> Optional[SessionState]:
        with self._lock:
            return self._sessions.get(session_id)

    def write_session_state(
        self, session_id: str, expected_version: int, new_state: SessionState
    ) -> SessionState:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise PersistenceConflict(f"Session '{session_id}' does not exist")
            if current.version != expected_version:
                logger.warning(
                    f"Stale write to {session_id}: expected v{expected_version}, store has v{current.version}"
                )
                raise PersistenceConflict(
                    f"Session '{session_id}' changed since it was read; refresh and try again"
                )
            stored = new_state.model_copy(update={"version": expected_version + 1})
            self._sessions[session_id] = stored
            self._commit()
            return stored

    def list_sessions(self, status: Optional[SessionStatus] = None) -> list[SessionState]:
        with self._lock:
            return [s for s in self._sessions.values() if status is None or s.status == status]

    # ---------------------------------------------------------------------
    # Picks and roster
    # ---------------------------------------------------------------------

    def _active_entry(self, league_id: str, player_id: str) -> Optional[RosterEntry]:
        for entry in self._roster.get(league_id, []):
            if entry.player_id == player_id and entry.is_active:
                return entry
        return None

    def append_pick(
        self,
        league_id: str,
        player_id: str,
        team_id: str,
        at: datetime,
        expected_pick_number: int,
        auto: bool = False,
    ) -> DraftPick:
        with self._lock:
            picks = self._picks.setdefault(league_id, [])
            if any(p.player_id == player_id for p in picks) or self._active_entry(league_id, player_id):
                raise AlreadyTakenError(f"Player '{player_id}' has already been drafted")
            if len(picks) != expected_pick_number - 1:
                raise PersistenceConflict(
                    f"Pick {expected_pick_number} is no longer open ({len(picks)} picks made)"
                )
            pick = DraftPick(
                player_id=player_id,
                team_drafted_by=team_id,
                draft_time=at,
                pick_number=expected_pick_number,
                auto=auto,
            )
            picks.append(pick)
            self._roster.setdefault(league_id, []).append(
                RosterEntry(player_id=player_id, team_id=team_id, acquired_at=at)
            )
            self._commit()
            return pick

    def list_picks(self, league_id: str) -> list[DraftPick]:
        with self._lock:
            return list(self._picks.get(league_id, []))

    def clear_picks(self, league_id: str) -> int:
        """Remove every pick and roster entry of a league."""
        with self._lock:
            removed = len(self._picks.pop(league_id, []))
            self._roster.pop(league_id, None)
            self._commit()
            return removed

    def claim_player(
        self,
        league_id: str,
        player_id: str,
        team_id: str,
        at: datetime,
        via_transfer: bool = False,
        goals_before_pickup: int = 0,
    ) -> RosterEntry:
        with self._lock:
            owner = self._active_entry(league_id, player_id)
            if owner is not None:
                raise AlreadyTakenError(f"Player '{player_id}' is already on team '{owner.team_id}'")
            entry = RosterEntry(
                player_id=player_id,
                team_id=team_id,
                acquired_at=at,
                via_transfer=via_transfer,
                goals_before_pickup=goals_before_pickup,
            )
            self._roster.setdefault(league_id, []).append(entry)
            self._commit()
            return entry

    def release_player(
        self, league_id: str, player_id: str, team_id: str, at: datetime, goals_at_drop: int = 0
    ) -> RosterEntry:
        with self._lock:
            entries = self._roster.get(league_id, [])
            for i, entry in enumerate(entries):
                if entry.player_id == player_id and entry.is_active:
                    if entry.team_id != team_id:
                        break
                    released = entry.model_copy(update={
                        "dropped": True,
                        "dropped_at": at,
                        "goals_at_drop": goals_at_drop,
                    })
                    entries[i] = released
                    self._commit()
                    return released
            raise NotOwnedError(f"Player '{player_id}' is not on team '{team_id}'")

    def list_roster(
        self, league_id: str, team_id: Optional[str] = None, include_dropped: bool = False
    ) -> list[RosterEntry]:
        with self._lock:
            return [
                e for e in self._roster.get(league_id, [])
                if (team_id is None or e.team_id == team_id) and (include_dropped or e.is_active)
            ]

    # ---------------------------------------------------------------------
    # Transfers and presence
    # ---------------------------------------------------------------------

    def append_transfer_action(self, league_id: str, action: TransferAction) -> TransferAction:
        with self._lock:
            self._transfers.setdefault(league_id, []).append(action)
            self._commit()
            return action

    def list_transfer_actions(self, league_id: str) -> list[TransferAction]:
        with self._lock:
            return list(self._transfers.get(league_id, []))

    def record_heartbeat(self, session_id: str, team_id: str, at: datetime) -> None:
        with self._lock:
            self._heartbeats.setdefault(session_id, {})[team_id] = at

    def list_heartbeats(self, session_id: str) -> dict[str, datetime]:
        with self._lock:
            return dict(self._heartbeats.get(session_id, {}))

    # ---------------------------------------------------------------------
    # Leagues and player pool
    # ---------------------------------------------------------------------

    def put_league(self, league: League) -> League:
        with self._lock:
            self._leagues[league.league_id] = league
            self._commit()
            return league

    def get_league(self, league_id: str) -> Optional[League]:
        with self._lock:
            return self._leagues.get(league_id)

    def list_leagues(self) -> list[League]:
        with self._lock:
            return list(self._leagues.values())

    def put_players(self, players: Iterable[Player]) -> int:
        """Insert or replace players by id."""
        with self._lock:
            count = 0
            for player in players:
                self._players[player.id] = player
                count += 1
            self._commit()
            return count

    def get_player(self, player_id: str) -> Optional[Player]:
        with self._lock:
            return self._players.get(player_id)

    def list_players(self) -> list[Player]:
        with self._lock:
            return list(self._players.values())


class JsonFileRecordStore(InMemoryRecordStore):
    """In-memory store mirrored to a single JSON document after each write.

    Heartbeats are not persisted; presence starts empty after a restart.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        with open(self.path, "r") as f:
            data = json.load(f)

        self._sessions = {k: SessionState(**v) for k, v in data.get("sessions", {}).items()}
        self._picks = {k: [DraftPick(**p) for p in v] for k, v in data.get("picks", {}).items()}
        self._roster = {k: [RosterEntry(**e) for e in v] for k, v in data.get("roster", {}).items()}
        self._transfers = {
            k: [TransferAction(**a) for a in v] for k, v in data.get("transfers", {}).items()
        }
        self._leagues = {k: League(**v) for k, v in data.get("leagues", {}).items()}
        self._players = {k: Player(**v) for k, v in data.get("players", {}).items()}
        logger.info(
            f"Loaded record store from {self.path}: {len(self._leagues)} leagues, "
            f"{len(self._players)} players, {len(self._sessions)} sessions"
        )

    def _commit(self) -> None:
        def dump(models):
            return [m.model_dump(mode="json") for m in models]

        data = {
            "sessions": {k: v.model_dump(mode="json") for k, v in self._sessions.items()},
            "picks": {k: dump(v) for k, v in self._picks.items()},
            "roster": {k: dump(v) for k, v in self._roster.items()},
            "transfers": {k: dump(v) for k, v in self._transfers.items()},
            "leagues": {k: v.model_dump(mode="json") for k, v in self._leagues.items()},
            "players": {k: v.model_dump(mode="json") for k, v in self._players.items()},
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2, default=str)
        tmp.replace(self.path)
