from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

HOST = "0.0.0.0"


class Settings(BaseSettings):
    """Process configuration read from the environment (and ``.env``)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    port: int = 3000
    # Default room capacity; the first joiner of a room may override it
    max_players: int = 4
    heartbeat_interval: float = 30.0
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["HOST", "Settings", "get_settings"]
