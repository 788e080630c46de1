from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
class Settings(BaseSettings):
    """
    Engine settings managed by Pydantic.
    Reads from HYPERMEDIA_* environment variables and/or .env file.
    """
    # Links
    BASE_URL: str = ""
    ID_ENCODING: Literal["percent", "raw"] = "percent"

    # Rendering
    DEFAULT_FORMAT: Literal["hal", "jsonapi"] = "hal"
    MAX_INCLUDE_DEPTH: int = 8

    # Collections
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 1000

    LOG_LEVEL: str = "INFO"

    # Config to read from .env file if available
    model_config = SettingsConfigDict(
        env_prefix="HYPERMEDIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
        )

settings = Settings()
