"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration.

    Values are read from environment variables (or a `.env` file).
    """

    # Supabase (optional: elections fall back to in-process storage)
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_http_max_connections: int = 100
    supabase_http_max_keepalive_connections: int = 50
    supabase_postgrest_timeout_seconds: int = 30
    elections_table: str = "elections"

    # App
    app_name: str = "Lunch Vote API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000"
    enable_scheduler: bool = True

    # Scheduling
    timezone: str = "UTC"

    # Elections
    voting_window_minutes: int = 10
    election_retention_hours: int = 2
    retention_exempt_names: str = "shots"
    retention_sweep_minutes: int = 15

    # Performance tuning
    slow_request_log_threshold_ms: int = 0

    @property
    def origins_list(self) -> list[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def supabase_enabled(self) -> bool:
        """Return True when Supabase credentials are configured."""
        return bool(self.supabase_url and self.supabase_service_key)

    @property
    def voting_window_ms(self) -> int:
        return self.voting_window_minutes * 60 * 1000

    @property
    def retention_ms(self) -> int:
        return self.election_retention_hours * 60 * 60 * 1000

    @property
    def retention_exempt_set(self) -> set[str]:
        """Lower-cased election names that are never purged."""
        return {
            name.strip().lower()
            for name in self.retention_exempt_names.split(",")
            if name.strip()
        }

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
