from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Core
    APP_NAME: str = "Photo Vault"
    LOG_LEVEL: str = "INFO"

    # DB
    DATABASE_URL: str = "sqlite:///./data/photovault.db"

    # Storage (directories must already exist)
    UPLOAD_PATH: str = "./data/uploads"
    THUMBNAIL_PATH: str = "./data/thumbnails"
    THUMBNAIL_PREFIX: str = "thumb_"

    # Thumbnails
    THUMBNAIL_MAX_SIDE: int = 320
    THUMBNAIL_QUALITY: int = 85

    # Ingestion
    ALLOWED_CONTENT_TYPES: list[str] = Field(
        default_factory=lambda: ["image/png", "image/jpeg", "image/jpg", "image/webp"]
    )
    INGEST_WORKERS: int = 4

settings = Settings()


@dataclass(frozen=True)
class IngestConfig:
    """Everything one upload batch needs to know about where and how to store files."""

    upload_path: Path
    thumbnail_path: Path
    thumbnail_prefix: str = "thumb_"
    thumbnail_max_side: int = 320
    thumbnail_quality: int = 85
    allowed_content_types: frozenset[str] = frozenset({"image/png", "image/jpeg", "image/jpg", "image/webp"})
    workers: int = 4

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> "IngestConfig":
        s = s or settings
        return cls(
            upload_path=Path(s.UPLOAD_PATH),
            thumbnail_path=Path(s.THUMBNAIL_PATH),
            thumbnail_prefix=s.THUMBNAIL_PREFIX,
            thumbnail_max_side=s.THUMBNAIL_MAX_SIDE,
            thumbnail_quality=s.THUMBNAIL_QUALITY,
            allowed_content_types=frozenset(t.lower() for t in s.ALLOWED_CONTENT_TYPES),
            workers=s.INGEST_WORKERS,
        )

    def original_path(self, name: str) -> Path:
        return self.upload_path / name

    def thumbnail_file(self, name: str) -> Path:
        return self.thumbnail_path / f"{self.thumbnail_prefix}{name}"
