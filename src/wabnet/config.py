"""Configuration management for the application."""

import json
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ListingConfig(BaseSettings):
    """Public listing configuration."""

    fallback_image: str = "/pathway/soc.png"
    default_link: str = "#careers"
    category: str = "Opportunity"
    fetch_retry_attempts: int = 1
    retry_delay_seconds: float = 1.0
    keepalive_seconds: float = 15.0

    @classmethod
    def from_file(cls, filepath: str = "config/listing.json") -> "ListingConfig":
        """
        Load listing configuration from JSON file.

        Args:
            filepath: Path to the configuration file

        Returns:
            ListingConfig instance (defaults when the file does not exist)
        """
        if not Path(filepath).exists():
            return cls()
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls(**data)


class UploadConfig(BaseSettings):
    """Admin upload configuration."""

    chunk_size: int = 64 * 1024
    timeout_seconds: int = 60

    @classmethod
    def from_file(cls, filepath: str = "config/upload.json") -> "UploadConfig":
        """
        Load upload configuration from JSON file.

        Args:
            filepath: Path to the configuration file

        Returns:
            UploadConfig instance (defaults when the file does not exist)
        """
        if not Path(filepath).exists():
            return cls()
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls(**data)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Data root: the SQLite DB and locally stored images live here
    data_root: str = Field(default="./data")

    # Database: auto-derived from data_root if not explicitly set
    database_url: str | None = Field(default=None)

    # Backend Server
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000)

    # Frontend origin (CORS) and the API base used by the client tools
    frontend_url: str = Field(default="http://localhost:3000")
    api_url: str = Field(default="http://localhost:8000")

    # Object storage
    storage_backend: Literal["local", "supabase"] = Field(default="local")
    storage_bucket: str = Field(default="opportunity-images")
    supabase_url: str = Field(default="http://localhost:8000")
    supabase_service_role_key: str | None = Field(default=None)

    log_level: str = Field(default="INFO")

    @model_validator(mode="after")
    def derive_paths(self) -> "Settings":
        """Expand data_root and derive database_url if not explicitly set."""
        self.data_root = str(Path(self.data_root).expanduser().resolve())
        if self.database_url is None:
            self.database_url = f"sqlite:///{self.data_root}/wabnet.db"
        return self


# Global settings instance
settings = Settings()

# Load configurations
listing_config = ListingConfig.from_file()
upload_config = UploadConfig.from_file()
