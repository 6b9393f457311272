"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `PLANREVIEW_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class StorageLocations:
    """Where plans and their review files live."""

    plans_dir: Path
    reviews_dir: Path

    def plan_path(self, plan_id: str) -> Path:
        return self.plans_dir / f"{plan_id}.md"

    def review_path(self, plan_id: str) -> Path:
        return self.reviews_dir / f"{plan_id}.json"


class Settings(BaseSettings):
    """planreview settings.

    All fields are environment-configurable. Prefix is `PLANREVIEW_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLANREVIEW_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    app_env: Literal["dev", "prod"] = Field(default="dev")
    log_level: str = Field(default="INFO")

    # Storage
    plans_dir: Path = Field(default_factory=lambda: Path.home() / ".claude" / "plans")
    reviews_dir: Path = Field(default_factory=lambda: Path.home() / ".claude" / "plan-comments")
    default_author: str = Field(default="User")

    # Watcher
    watch_enabled: bool = Field(default=True)
    watch_stability_s: float = Field(default=0.5, ge=0.0, le=60.0)
    watch_poll_interval_s: float = Field(default=0.1, gt=0.0, le=10.0)
    subscriber_queue_size: int = Field(default=100, ge=1, le=10000)

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3335, ge=1, le=65535)

    def locations(self) -> StorageLocations:
        """Return the storage locations described by these settings."""

        return StorageLocations(
            plans_dir=self.plans_dir.expanduser(),
            reviews_dir=self.reviews_dir.expanduser(),
        )


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("PLANREVIEW_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
