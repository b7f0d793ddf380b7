from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BUSINESS_TIMEZONE: str = "UTC"
    BUSINESS_CONFIG_FILE: str | None = None

    DATABASE_URL: str | None = None

    SLOT_GRANULARITY_MINUTES: int = 30
    CONFIRMATION_TOKEN_TTL_HOURS: int = 48
    CANCELLATION_CUTOFF_HOURS: int = 6
    RESERVATION_LOCK_TIMEOUT_SECONDS: float = 5.0
    AVAILABLE_DATES_HORIZON_DAYS: int = 30

    EVENT_WEBHOOK_URL: str | None = None
    PUBLIC_BASE_URL: str = "http://localhost:8000"


settings = Settings()
