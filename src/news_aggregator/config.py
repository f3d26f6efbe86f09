from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    gnews_api_key: str | None = None
    gnews_base_url: str = "https://gnews.io/api/v4"
    gnews_timeout_seconds: float = 10.0

    news_cache_ttl_seconds: float = 1800.0
    news_cache_check_period_seconds: float = 120.0
    # Extra time an expired entry stays readable by the rate-limit fallback.
    news_cache_stale_grace_seconds: float = 0.0

    database_url: str = "sqlite:///./news_aggregator.db"
    database_echo: bool = False

    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
