from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- DB ---
    DATABASE_URL: str = "sqlite:///./prode.sqlite"

    # --- Match data provider ---
    PROVIDER_BASE_URL: str = "https://api.promiedos.com.ar"
    PROVIDER_ROUND_PATH: str = "/league/games/hc/72_224_8_{round_number}"
    PROVIDER_TIMEOUT_S: float = 15.0
    PROVIDER_RETRIES: int = 1

    # --- Scheduler ---
    TIMEZONE: str = "America/Argentina/Buenos_Aires"
    SCHEDULER_ENABLED: bool = True

    # --- Points (exact score / outcome only / per correct scorer) ---
    POINTS_EXACT_RESULT: int = 3
    POINTS_ONLY_RESULT: int = 1
    POINTS_SCORER_BONUS: int = 5

    # --- Observability ---
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "production"

    # --- Admin endpoints ---
    ADMIN_TOKEN: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
