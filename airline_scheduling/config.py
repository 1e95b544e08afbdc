"""Environment driven settings for the airline scheduling service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_DB_URL = "sqlite+pysqlite:///airline.db"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_url: str = DEFAULT_DB_URL
    echo_sql: bool = False
    log_level: str = "INFO"
    sqlite_timeout: float = 30.0


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``AIRLINE_*`` environment variables."""

    env = os.environ if environ is None else environ
    return Settings(
        db_url=env.get("AIRLINE_DB_URL", DEFAULT_DB_URL),
        echo_sql=env.get("AIRLINE_ECHO_SQL", "").strip().lower() in _TRUTHY,
        log_level=env.get("AIRLINE_LOG_LEVEL", "INFO").upper(),
        sqlite_timeout=float(env.get("AIRLINE_SQLITE_TIMEOUT", 30)),
    )


__all__ = ["DEFAULT_DB_URL", "Settings", "load_settings"]
