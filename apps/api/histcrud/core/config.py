"""
Runtime settings.

Defaults:
- DATABASE_URL: sqlite:///./data/app.db
- STORAGE_ROOT: ./data/storage
"""
from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///./data/app.db"
DEFAULT_STORAGE_ROOT = "./data/storage"
DEFAULT_COUNTRIES_API_URL = "https://restcountries.com/v3.1/all?fields=name"


def _parse_bool(v: str) -> bool:
    vv = (v or "").strip().lower()
    return vv not in ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Settings:
    app_version: str = "0.1.0"
    database_url: str = DEFAULT_DATABASE_URL
    db_auto_create: bool = True
    storage_root: str = DEFAULT_STORAGE_ROOT
    session_secret: str = "343ji43j4n3jn4jk3n"
    countries_api_url: str = DEFAULT_COUNTRIES_API_URL
    http_timeout_s: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            app_version=os.getenv("APP_VERSION", "0.1.0"),
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            db_auto_create=_parse_bool(os.getenv("DB_AUTO_CREATE", "1")),
            storage_root=os.getenv("STORAGE_ROOT", DEFAULT_STORAGE_ROOT),
            session_secret=os.getenv("SESSION_SECRET", "343ji43j4n3jn4jk3n"),
            countries_api_url=os.getenv("COUNTRIES_API_URL", DEFAULT_COUNTRIES_API_URL),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_S", "5.0")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
