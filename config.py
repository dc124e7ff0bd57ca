"""
Runtime configuration for the Restaurant Orders API.

Values are read from environment variables once at startup and passed
explicitly to the components that need them.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "restaurant"
    request_timeout_ms: int = 5000
    order_list_default_limit: int = 50
    order_list_max_limit: int = 200
    stats_timezone: str = "UTC"
    seed_sample_menu: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 8000


def load_settings() -> Settings:
    """Build Settings from the process environment."""
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings.database_url),
        database_name=os.getenv("DATABASE_NAME", Settings.database_name),
        request_timeout_ms=_env_int("REQUEST_TIMEOUT_MS", Settings.request_timeout_ms),
        order_list_default_limit=_env_int("ORDER_LIST_DEFAULT_LIMIT", Settings.order_list_default_limit),
        order_list_max_limit=_env_int("ORDER_LIST_MAX_LIMIT", Settings.order_list_max_limit),
        stats_timezone=os.getenv("STATS_TIMEZONE", Settings.stats_timezone),
        seed_sample_menu=_env_bool("SEED_SAMPLE_MENU", Settings.seed_sample_menu),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", Settings.log_level).upper(),
        port=_env_int("PORT", Settings.port),
    )
