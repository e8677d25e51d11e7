import os
from enum import StrEnum
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
    STAGING = "staging"


class StorageBackend(StrEnum):
    LOCAL = "local"
    FIREBASE = "firebase"


ENVIRONMENT = os.getenv("RENDER_ENV", Environment.DEVELOPMENT)


class Settings(BaseSettings):
    app_name: str = "Chuka Black Market"
    environment: str = ENVIRONMENT
    port: int = 5000
    log_level: str = "INFO"

    # database
    db_user: str = "postgres"
    db_password: str = ""
    db_name: str = "chuka_market"
    db_host: str = "localhost"
    db_port: int = 5432
    db_ssl_cert_path: str | None = None
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_echo: bool = False

    # origins allowed to call the API and the chat socket
    cors_origins: list[str] = ["http://localhost:5173"]

    # image storage
    storage_backend: StorageBackend = StorageBackend.LOCAL
    upload_dir: str = "uploads"
    upload_url_path: str = "/uploads"
    firebase_credentials_path: str | None = None
    firebase_storage_bucket: str | None = None
    max_image_bytes: int = 5 * 1024 * 1024
    cleanup_orphaned_images: bool = True

    auth_required: bool = False

    # chat relay
    relay_queue_size: int = 100
    slow_consumer_policy: Literal["drop", "disconnect"] = "drop"

    model_config = SettingsConfigDict(
        env_file=".env" if ENVIRONMENT != Environment.PRODUCTION else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def uses_firebase(self) -> bool:
        return self.auth_required or self.storage_backend == StorageBackend.FIREBASE


@lru_cache
def get_settings() -> Settings:
    return Settings()
