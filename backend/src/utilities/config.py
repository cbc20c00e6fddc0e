from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import CHANNEL_CAPACITY, HEARTBEAT_INTERVAL

DEFAULT_STATIC_DIR = Path(__file__).resolve().parents[2] / "static"


class Settings(BaseSettings):
    """
    Runtime configuration loaded from CHAT_* environment variables or a .env file.
    """

    model_config = SettingsConfigDict(env_prefix="CHAT_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    channel_capacity: int = Field(CHANNEL_CAPACITY, ge=1, description="Slots in the shared broadcast buffer")
    heartbeat_interval: float = Field(
        HEARTBEAT_INTERVAL, ge=0, description="Seconds between keep-alive comments on idle streams, 0 disables"
    )
    static_dir: Path = Field(DEFAULT_STATIC_DIR, description="Directory served at / when it exists")
    host: str = Field("127.0.0.1", description="Interface uvicorn binds to")
    port: int = Field(8000, description="Port uvicorn listens on")
    log_level: str = Field("INFO", description="Root log level")


@lru_cache
def get_settings() -> Settings:
    """
    Cached accessor so every caller shares the same Settings instance.
    """

    return Settings()
