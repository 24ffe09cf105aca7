"""FastAPI entry point for the Golden Boot draft and transfer service."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import EngineConfig
from .routers import draft, leagues, players, standings, transfer
from .services.poller import TimeoutSweeper
from .services.record_store import InMemoryRecordStore, JsonFileRecordStore, RecordStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = app.state.sweeper.as_task()
    sweeper.start()
    logger.info(f"Timeout sweeper running every {app.state.config.poll_interval_seconds}s")
    try:
        yield
    finally:
        await sweeper.stop()


def create_app(
    config: Optional[EngineConfig] = None,
    store: Optional[RecordStore] = None,
) -> FastAPI:
    config = config or EngineConfig()
    if store is None:
        store = JsonFileRecordStore(config.store_path) if config.store_path else InMemoryRecordStore()

    app = FastAPI(
        title="Golden Boot",
        description="MLS Golden Boot fantasy league - drafts, transfer windows and standings",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.sweeper = TimeoutSweeper(store, config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(leagues.router, prefix="/api/leagues", tags=["leagues"])
    app.include_router(players.router, prefix="/api/players", tags=["players"])
    app.include_router(draft.router, prefix="/api/draft", tags=["draft"])
    app.include_router(transfer.router, prefix="/api/transfer", tags=["transfer"])
    app.include_router(standings.router, prefix="/api/standings", tags=["standings"])

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Serve ``app`` with uvicorn on the configured host and port."""
    config: EngineConfig = app.state.config
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
