"""Configuration loading from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".service_flow" / "sf.db")
    owner_id: str = "default"
    log_level: str = "WARNING"
    host: str = "127.0.0.1"
    port: int = 8788
    default_due_days: int = 7

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if db := os.environ.get("SF_DB_PATH"):
            config.db_path = Path(db)

        if owner := os.environ.get("SF_OWNER_ID"):
            config.owner_id = owner

        if level := os.environ.get("SF_LOG_LEVEL"):
            config.log_level = level.upper()

        if host := os.environ.get("SF_HOST"):
            config.host = host

        if port := os.environ.get("SF_PORT"):
            config.port = int(port)

        if due_days := os.environ.get("SF_DEFAULT_DUE_DAYS"):
            config.default_due_days = int(due_days)

        return config


def get_config() -> Config:
    return Config.from_env()
