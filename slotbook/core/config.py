from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    BUSINESS_TIMEZONE: str = "UTC"

    STORE_PROVIDER: str = "memory"  # "memory" | "json" | "supabase"
    DATA_DIR: str = "./data/providers"

    SLOT_GRANULARITY_MINUTES: int = 60
    DEFAULT_DURATION_MINUTES: int = 60
    SLOT_BOUNDARY: str = "inclusive"  # "inclusive" | "must_fit"
    DEFAULT_DAY_START: str = "09:00"
    DEFAULT_DAY_END: str = "17:00"
    BOOKING_HORIZON_DAYS: int = 60
    SERVICE_DURATIONS: dict[str, int] = {}  # service_id -> minutes, JSON in env

    SLOT_LOCK_TTL_SECONDS: float = 10.0
    SLOT_LOCK_WAIT_SECONDS: float = 5.0

    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_KEY: str | None = None
    SUPABASE_TIMEOUT_SECONDS: float = 10.0


settings = Settings()
