from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "rm_user"
    postgres_password: str = "changeme"
    postgres_db: str = "rank_monitor"

    @property
    def postgres_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def postgres_url_sync(self) -> str:
        """For Alembic migrations (sync driver)."""
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Overrides postgres_url when set (e.g. sqlite+aiosqlite:// in tests)
    database_url: str = ""

    # Redis (Celery broker + result backend)
    redis_url: str = "redis://localhost:6379/0"

    # Encryption for stored OAuth tokens
    fernet_key: str = ""

    # SerpAPI
    serpapi_api_key: str = ""
    serpapi_url: str = "https://serpapi.com/search.json"
    serpapi_engine: str = "google"
    serpapi_num_results: int = 100
    serpapi_timeout: float = 30.0

    default_location: str = "Brazil"
    default_device: str = "desktop"

    # Google Search Console (OAuth2 client of the app)
    google_client_id: str = ""
    google_client_secret: str = ""
    gsc_api_base: str = "https://www.googleapis.com/webmasters/v3"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    gsc_row_limit: int = 10

    # Ranking sync
    rank_check_delay_ms: int = 350  # SerpAPI allows ~3 req/s
    notification_change_threshold: int = 5
    notification_high_threshold: int = 10
    rank_check_hour: int = 6
    rank_check_minute: int = 0

    # Analysis cache TTLs
    serp_cache_ttl_seconds: int = 24 * 60 * 60
    analysis_cache_ttl_seconds: int = 30 * 60

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # CORS
    allowed_origins: str = "*"  # comma-separated

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable

    @property
    def database_dsn(self) -> str:
        return self.database_url or self.postgres_url


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if not settings.fernet_key:
        errors.append(
            'FERNET_KEY must be set (generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())")'
        )

    if settings.app_env == "production":
        if not settings.serpapi_api_key:
            errors.append("SERPAPI_API_KEY must be set in production")
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if settings.notification_high_threshold < settings.notification_change_threshold:
        errors.append("NOTIFICATION_HIGH_THRESHOLD must be >= NOTIFICATION_CHANGE_THRESHOLD")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
