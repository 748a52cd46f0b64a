import os
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global configuration for environment variables."""

    APP_NAME: str = "Hotel Concierge"
    ENV: str = os.getenv("ENV", "development")

    # Server config
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", 8080))

    # Debug / logging
    DEBUG: bool = os.getenv("DEBUG", "True").lower() in ("1", "true")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Language model provider
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_MAX_RETRIES: int = int(os.getenv("OPENAI_MAX_RETRIES", "2"))
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "1000"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
    REQUEST_TIMEOUT_MS: int = int(os.getenv("REQUEST_TIMEOUT_MS", "45000"))

    # Chat request limits
    MAX_HISTORY_MESSAGES: int = int(os.getenv("MAX_HISTORY_MESSAGES", "50"))
    MAX_MESSAGE_CHARS: int = int(os.getenv("MAX_MESSAGE_CHARS", "5000"))

    # Postgres
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "")

    # Redis (cache + live updates); live updates are disabled when REDIS_HOST is empty
    REDIS_HOST: str = os.getenv("REDIS_HOST", "")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_PASSWORD: str | None = os.getenv("REDIS_PASSWORD") or None
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() == "true"
    HOTEL_CACHE_TTL_SECONDS: int = int(os.getenv("HOTEL_CACHE_TTL_SECONDS", "300"))
    LIVE_UPDATE_HEARTBEAT_SECONDS: float = float(os.getenv("LIVE_UPDATE_HEARTBEAT_SECONDS", "10"))

    # Staff tokens
    JWT_SUPER_SECRET: str = os.getenv("JWT_SUPER_SECRET", "dev-secret")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")


settings = Settings()
