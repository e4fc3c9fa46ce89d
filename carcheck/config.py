from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized runtime configuration loaded from environment variables.
    """

    SUPABASE_URL: str
    SUPABASE_SERVICE_ROLE_KEY: str
    SUPABASE_ANON_KEY: str | None = None
    API_PREFIX: str = "/api"
    APP_NAME: str = "Car Inspection API"
    ALLOWED_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    # Expo push gateway
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    EXPO_ACCESS_TOKEN: str | None = None
    EXPO_PROJECT_ID: str | None = None
    PUSH_BATCH_SIZE: int = 100
    PUSH_BATCH_DELAY_SECONDS: float = 1.0
    PUSH_TIMEOUT_SECONDS: float = 15.0
    NOTIFY_ON_NEW_REQUEST: bool = True

    # Device-side session cache; in-memory when unset
    SESSION_STORAGE_PATH: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
