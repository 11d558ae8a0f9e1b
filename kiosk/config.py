from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from the environment and `.env`."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./kiosk.db"

    # Shared secret for the scheduled cleanup trigger.
    cron_secret: str = ""

    storage_api_url: str = "https://api.uploadthing.com"
    storage_api_key: str = ""
    storage_timeout_seconds: float = 10.0

    orphan_retention_hours: int = 24
    sweep_batch_size: int = 100

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
