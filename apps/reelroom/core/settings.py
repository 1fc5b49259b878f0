from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Unified application settings for Reelroom.

    Loads from env with support for repo ".env" files. Env files are skipped
    when APP_ENV is "test" or "ci".
    """

    _app_env = (os.getenv("APP_ENV") or "").strip().lower()
    _env_files = (
        []
        if _app_env in {"test", "ci"}
        else [
            str((Path(__file__).resolve().parents[1] / ".env")),  # apps/reelroom/.env
            str((Path(__file__).resolve().parents[3] / ".env")),  # repo root .env
        ]
    )

    model_config = SettingsConfigDict(
        env_file=_env_files,
        case_sensitive=False,
        extra="ignore",
    )

    # --- App / Core ---
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="reelroom", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    # Logging
    log_level: str | None = Field(default=None, alias="REELROOM_LOG_LEVEL")
    log_level_fallback: str | None = Field(default=None, alias="LOG_LEVEL")

    cors_allow_origins: list[str] = Field(default=["*"], alias="CORS_ALLOW_ORIGINS")

    # --- Identity tokens ---
    secret_key: SecretStr | None = Field(default=None, alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_ttl_minutes: int = Field(
        default=60 * 24 * 7, alias="ACCESS_TOKEN_TTL_MINUTES", ge=1
    )

    # --- MongoDB ---
    mongo_uri: str = Field(default="mongodb://localhost:27017", alias="MONGO_URI")
    mongo_database: str = Field(default="reelroom", alias="MONGO_DATABASE")
    mongo_app_name: str = Field(default="reelroom", alias="MONGO_APP_NAME")
    mongo_timeout_ms: int = Field(default=5000, alias="MONGO_TIMEOUT_MS", ge=100)

    users_collection: str = Field(default="users", alias="USERS_COLLECTION")
    projects_collection: str = Field(default="scripts", alias="PROJECTS_COLLECTION")
    chat_messages_collection: str = Field(
        default="chat_messages", alias="CHAT_MESSAGES_COLLECTION"
    )
    movie_chatrooms_collection: str = Field(
        default="movie_chatrooms", alias="MOVIE_CHATROOMS_COLLECTION"
    )
    join_requests_collection: str = Field(
        default="join_requests", alias="JOIN_REQUESTS_COLLECTION"
    )

    # --- Chat ---
    chat_history_default_limit: int = Field(
        default=50, alias="CHAT_HISTORY_DEFAULT_LIMIT", ge=1
    )
    chat_history_max_limit: int = Field(
        default=200, alias="CHAT_HISTORY_MAX_LIMIT", ge=1, le=1000
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Convenience singleton for modules expecting a module-level "settings"
settings = get_settings()
