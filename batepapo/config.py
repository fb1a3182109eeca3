from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv


load_dotenv()


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(key: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(key, default).split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables (or .env)."""

    database_url: str = field(
        default_factory=lambda: os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./batepapo.db")
    )
    database_echo: bool = field(default_factory=lambda: _env_bool("DATABASE_ECHO"))
    sweep_interval: float = field(
        default_factory=lambda: float(os.getenv("SWEEP_INTERVAL_SECONDS", "15"))
    )
    inactivity_timeout: float = field(
        default_factory=lambda: float(os.getenv("INACTIVITY_TIMEOUT_SECONDS", "10"))
    )
    cors_origins: List[str] = field(default_factory=lambda: _env_list("CORS_ORIGINS", "*"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "5000")))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
