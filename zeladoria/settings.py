"""Application configuration with environment overrides."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _optional_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value).expanduser() if value else None


def _cors_origins() -> list[str]:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://localhost:5173"]
    return origins


@dataclass
class Settings:
    supabase_url: str | None = field(default_factory=lambda: os.getenv("SUPABASE_URL") or None)
    supabase_service_key: str | None = field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_ROLE_KEY") or None
    )
    cors_origins: list[str] = field(default_factory=_cors_origins)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Path | None = field(default_factory=lambda: _optional_path("LOG_FILE"))
    # empty string schedules every service type in a lot as one queue
    service: str | None = field(default_factory=lambda: os.getenv("ZELADORIA_SERVICE", "rocagem") or None)
    capacity_config_path: Path | None = field(default_factory=lambda: _optional_path("CAPACITY_CONFIG_PATH"))

    @property
    def uses_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


def load_settings() -> Settings:
    return Settings()
