"""Request-scoped access to the store and config held on ``app.state``."""

from __future__ import annotations

from fastapi import HTTPException, Request

from .config import EngineConfig
from .errors import TurnEngineError
from .services.record_store import RecordStore


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_config(request: Request) -> EngineConfig:
    return request.app.state.config


def http_error(e: ValueError) -> HTTPException:
    """Map a service failure to the HTTP status it carries (400 for plain ValueError)."""
    status_code = e.status_code if isinstance(e, TurnEngineError) else 400
    return HTTPException(status_code=status_code, detail=str(e))
