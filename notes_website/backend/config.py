from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Every field can be set with a ``NOTES_`` prefixed variable (for example
    ``NOTES_LOG_LEVEL=DEBUG``) or from a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTES_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_title: str = "Notes API"
    host: str = "0.0.0.0"
    # also read from PORT
    port: int = Field(8000, validation_alias=AliasChoices("NOTES_PORT", "PORT"))
    debug: bool = False
    log_level: str = "INFO"

    session_cookie_name: str = "notes.sid"
    # secure=True restricts the cookie to HTTPS
    cookie_secure: bool = False
    cookie_samesite: str = "lax"

    # Argon2id cost parameters
    hash_time_cost: int = 3
    hash_memory_cost: int = 65536
    hash_parallelism: int = 4


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance, loaded once per process."""
    return Settings()
