from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Protocol Review Tracker", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    database_url: str = Field(
        default="sqlite+pysqlite:///./protocol_reviews.db",
        alias="DATABASE_URL",
    )
    store_backend: Literal["memory", "sql"] = Field(default="sql", alias="STORE_BACKEND")
    store_max_retries: int = Field(default=3, ge=1, alias="STORE_MAX_RETRIES")
    protocol_kind: str = Field(default="protocols", alias="PROTOCOL_KIND")
    identity_short_name_length: int = Field(default=4, ge=0, alias="IDENTITY_SHORT_NAME_LENGTH")
    upcoming_window_days: int = Field(default=7, ge=0, alias="UPCOMING_WINDOW_DAYS")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
