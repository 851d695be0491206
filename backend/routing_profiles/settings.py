from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping config out of code for easy extension."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default="out", alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Empty means only the built-in profiles are served.
    profiles_path: str = Field(default="", alias="PROFILES_PATH")

    merge_cache_ttl_s: int = Field(default=600, ge=1, alias="MERGE_CACHE_TTL_S")
    merge_cache_max_entries: int = Field(default=1024, ge=1, alias="MERGE_CACHE_MAX_ENTRIES")


settings = Settings()
