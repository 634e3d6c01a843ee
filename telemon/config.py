"""TELEMON — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Config Backend ──
    config_api_url: str = "http://localhost:3001/api"

    # ── Data Sources ──
    kibana_url: str = "http://localhost:5601"
    kibana_api_path: str = "/api/console/proxy"
    kibana_time_range: str = "15m"
    database_api_url: str = "http://localhost:3001"
    database_api_path: str = "/api/query"
    weather_api_url: str = "https://api.openweathermap.org/data/2.5"
    weather_api_key: Optional[str] = None
    weather_units: str = "metric"
    http_timeout_s: float = 30.0

    # ── Local Fallback Store ──
    database_url: str = ""

    # ── Refresh ──
    default_refresh_interval_ms: int = 60000
    min_refresh_interval_ms: int = 5000
    inflight_wait_timeout_s: float = 30.0

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    seed_demo_metrics: bool = False

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/telemon.db"
        return "sqlite:///./telemon.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
