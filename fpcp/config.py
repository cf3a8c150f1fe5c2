from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Environment
    environment: str = "development"  # "development" or "production"

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/fpcp.db"
    db_timeout_seconds: int = 10

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Mail transport (Resend)
    resend_api_key: str = ""
    mail_from: str = "FPCP <onboarding@resend.dev>"
    mail_api_url: str = "https://api.resend.com/emails"
    mail_timeout_seconds: int = 10

    # Links embedded in email bodies
    app_base_url: str = "http://localhost:3000"

    # Reminders
    reminder_window_days: int = 3
    reminder_cooldown_hours: int = 24

    # Dispatch
    dispatch_batch_size: int = 10
    dispatch_after_scan: bool = True

    # Scheduler
    scheduler_enabled: bool = True
    reminder_cron_hour: str = "*"
    dispatch_interval_minutes: int = 5

    # CORS (comma-separated origins, empty means allow all)
    cors_origins: str = ""

    # Admin
    admin_api_key: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def sync_database_url(self) -> str:
        return self.database_url.replace("+aiosqlite", "")


@lru_cache
def get_settings() -> Settings:
    return Settings()
