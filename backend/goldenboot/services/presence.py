"""Server-side attendance: who is watching the session right now."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from .record_store import RecordStore

logger = logging.getLogger(__name__)


def is_attended(
    last_seen: Optional[datetime], now: datetime, config: EngineConfig = DEFAULT_CONFIG
) -> bool:
    """A team is attended while its last heartbeat is within the presence timeout."""
    return last_seen is not None and now - last_seen <= config.presence_timeout


def attended_participants(
    store: RecordStore,
    session_id: str,
    now: datetime,
    config: EngineConfig = DEFAULT_CONFIG,
) -> frozenset[str]:
    heartbeats = store.list_heartbeats(session_id)
    return frozenset(
        team_id for team_id, last_seen in heartbeats.items() if is_attended(last_seen, now, config)
    )


def record_heartbeat(store: RecordStore, session_id: str, team_id: str, now: datetime) -> None:
    """Record a ping from the client attending *team_id*."""
    previous = store.list_heartbeats(session_id).get(team_id)
    if previous is None:
        logger.info(f"{team_id} joined {session_id}")
    store.record_heartbeat(session_id, team_id, now)
