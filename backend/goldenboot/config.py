"""Engine configuration for the Golden Boot draft and transfer service.

Every field can be overridden with a ``GOLDENBOOT_<FIELD>`` environment
variable, e.g. ``GOLDENBOOT_TURN_SECONDS=45``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GOLDENBOOT_",
        env_ignore_empty=True,
        frozen=True,
    )

    # Turn timers
    turn_seconds: int = 30
    unattended_turn_seconds: int = 3  # nobody attending the team on the clock
    presence_timeout_seconds: int = 15

    # Timeout sweeper
    poll_interval_seconds: float = 5.0

    # Session defaults
    default_draft_rounds: int = 5
    default_transfer_rounds: int = 2

    # JSON-file record store; in-memory when unset
    store_path: Optional[str] = None

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def turn_length(self) -> timedelta:
        return timedelta(seconds=self.turn_seconds)

    @property
    def unattended_turn_length(self) -> timedelta:
        return timedelta(seconds=self.unattended_turn_seconds)

    @property
    def presence_timeout(self) -> timedelta:
        return timedelta(seconds=self.presence_timeout_seconds)


DEFAULT_CONFIG = EngineConfig()
