from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Runtime configuration for the scheduling service."""

    storage_backend: str = "sql"  # sql | json
    database_url: str = "sqlite+aiosqlite:///./meetbook.db"
    database_echo: bool = False
    auto_create_tables: bool = True
    json_data_dir: Path = Path("data")
    ics_dir: Path = Path("public/ics")
    public_base_url: str = "http://localhost:8000"
    ics_uid_domain: str = "meetbook.local"
    slot_minutes: int = 30
    default_meeting_minutes: int = 60
    request_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    app_env: str = "development"

    def __post_init__(self):
        self.storage_backend = self.storage_backend.strip().lower()
        if self.storage_backend not in {"sql", "json"}:
            raise ValueError(
                f"STORAGE_BACKEND must be 'sql' or 'json', got {self.storage_backend!r}"
            )
        if self.slot_minutes <= 0 or self.default_meeting_minutes <= 0:
            raise ValueError("SLOT_MINUTES and DEFAULT_MEETING_MINUTES must be positive")
        self.json_data_dir = Path(self.json_data_dir)
        self.ics_dir = Path(self.ics_dir)
        self.public_base_url = self.public_base_url.rstrip("/")


def normalize_database_url(url: str) -> str:
    """Switch plain PostgreSQL URLs to the asyncpg driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def load_settings() -> Settings:
    """Build settings from environment variables (and a local .env file)."""
    return Settings(
        storage_backend=os.getenv("STORAGE_BACKEND", "sql"),
        database_url=normalize_database_url(
            os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./meetbook.db")
        ),
        database_echo=_env_bool("DATABASE_ECHO", False),
        auto_create_tables=_env_bool("AUTO_CREATE_TABLES", True),
        json_data_dir=Path(os.getenv("JSON_DATA_DIR", "data")),
        ics_dir=Path(os.getenv("ICS_DIR", "public/ics")),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000"),
        ics_uid_domain=os.getenv("ICS_UID_DOMAIN", "meetbook.local"),
        slot_minutes=int(os.getenv("SLOT_MINUTES", 30)),
        default_meeting_minutes=int(os.getenv("DEFAULT_MEETING_MINUTES", 60)),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", 10)),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        app_env=os.getenv("APP_ENV", "development"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
