"""Cancellable repeating task and the timeout sweeper it drives."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..errors import TurnEngineError
from ..models.session import SessionMode, SessionStatus
from . import draft_service, transfer_service
from .record_store import RecordStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RepeatingTask:
    """Run *callback* every *interval* seconds until stopped.

    ``sleep`` is injectable so tests can drive the loop without waiting on the
    wall clock. A failing callback is logged and retried on the next cycle.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        interval: float,
        sleep: Sleep = asyncio.sleep,
        name: str = "repeating-task",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._callback = callback
        self.interval = interval
        self._sleep = sleep
        self.name = name
        self.runs = 0
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def run_once(self) -> None:
        self.runs += 1
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"{self.name}: cycle {self.runs} failed")

    async def _loop(self) -> None:
        while True:
            await self._sleep(self.interval)
            await self.run_once()


class TimeoutSweeper:
    """Fire the automatic action for every active session whose turn expired.

    Losing a race to a client (or another sweeper) is expected and only logged.
    """

    def __init__(
        self,
        store: RecordStore,
        config: EngineConfig = DEFAULT_CONFIG,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.config = config
        self._clock = clock

    def sweep(self, now: Optional[datetime] = None) -> list[dict]:
        now = now or self._clock()
        fired = []
        for state in self.store.list_sessions(SessionStatus.ACTIVE):
            try:
                if state.mode == SessionMode.DRAFT:
                    pick = draft_service.auto_pick_if_expired(
                        self.store, state.league_id, self.config, now
                    )
                    if pick is not None:
                        fired.append({
                            "session_id": state.session_id,
                            "action": "pick",
                            "team_id": pick.team_drafted_by,
                            "player_id": pick.player_id,
                        })
                else:
                    action = transfer_service.auto_action_if_expired(
                        self.store, state.league_id, self.config, now
                    )
                    if action is not None:
                        fired.append({
                            "session_id": state.session_id,
                            "action": action.action_type.value,
                            "team_id": action.fantasy_team_id,
                            "player_id": action.player_id,
                        })
            except TurnEngineError as e:
                logger.warning(f"Sweep of {state.session_id} skipped: {type(e).__name__}: {e}")
        if fired:
            logger.info(f"Timeout sweep fired {len(fired)} automatic action(s)")
        return fired

    def as_task(self, sleep: Sleep = asyncio.sleep) -> RepeatingTask:
        return RepeatingTask(
            self.sweep, self.config.poll_interval_seconds, sleep=sleep, name="timeout-sweeper"
        )
