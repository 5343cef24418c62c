from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(env_file=('.env', '.env.local'), env_file_encoding='utf-8', case_sensitive=False)

    project_name: str = Field(default="Kids Menu")
    database_url: str = Field(default="postgresql+asyncpg:///kidsmenu")
    database_echo: bool = Field(default=False)

    household_name: str = Field(default="My Family")
    default_household_id: str = Field(default="00000000-0000-0000-0000-000000000000")

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    log_to_stdout: bool = Field(default=True)

    root_path: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[3])
    legacy_data_dir: Path | None = Field(default=None)

    @property
    def resolved_legacy_data_dir(self) -> Path:
        return self.legacy_data_dir or self.root_path / "data"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


settings = get_settings()
