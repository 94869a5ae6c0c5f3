"""Settings for the lexicon store, its CLI and the companion disk server.

Values come from ``LEXISTORE_*`` environment variables or a ``.env`` file.

Usage:
    from lexistore.config import get_settings

    settings = get_settings()
    print(settings.server_url)
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration. Service constructors never read this directly."""

    # Disk sync client
    server_url: str = Field(
        default="http://localhost:4000",
        description="Base URL of the disk server mirroring lexicon.sqlite",
    )
    server_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds before a status probe, fetch or push is abandoned",
    )

    # Local cache
    cache_dir: Path = Field(default=Path(".lexistore/cache"))
    cache_name: str = Field(default="hebrew_lexicon_db")
    cache_key: str = Field(default="sqlite_binary")

    # Static resources
    static_root: Path = Field(
        default=Path("public"),
        description="Directory holding prebuilt images and the reference dataset",
    )
    prebuilt_paths: list[str] = Field(
        default_factory=lambda: ["lexicon.sqlite", "prebuilt/lexicon.sqlite"],
    )
    reference_path: str = Field(default="strongs.sqlite")
    export_dir: Path = Field(
        default=Path("."),
        description="Where a freshly created image is written when no server is reachable",
    )

    # Disk server
    server_host: str = Field(default="127.0.0.1")
    server_port: int = Field(default=4000)
    lexicon_path: Path = Field(default=Path("public/lexicon.sqlite"))
    max_upload_bytes: int = Field(default=100 * 1024 * 1024, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="LEXISTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
