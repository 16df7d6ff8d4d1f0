"""Configuration management for SpendSplit."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DisplayNames


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SPEND_SPLIT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Which gateway backs the ledger
    gateway_backend: Literal["supabase", "sqlite"] = "sqlite"

    # Supabase (PostgREST) backend
    supabase_url: str | None = None
    supabase_api_key: str | None = None
    supabase_access_token: str | None = None  # falls back to the api key

    # Owner scoping; required for Supabase, optional for the local store
    owner_id: str | None = None

    # Local SQLite backend
    database_path: Path = Path.home() / ".spend_split" / "spend_split.db"

    # Gateway call timeout in seconds
    request_timeout: float = 30.0

    # Default size of the recent-expenses view
    recent_limit: int = 50

    # Display names
    primary_name: str = "You"
    secondary_name: str = "Partner"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        if self.gateway_backend == "sqlite":
            self.database_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def display_names(self) -> DisplayNames:
        return DisplayNames(
            primary_name=self.primary_name, secondary_name=self.secondary_name
        )


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ValueError(
            f"Failed to load settings. Check your environment or .env file "
            f"(variables are prefixed with SPEND_SPLIT_).\n"
            f"Error: {e}"
        ) from e
