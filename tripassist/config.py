"""
Configuration management for the itinerary delivery service.
Supports in-memory, file and Upstash KV session stores.
"""
from pydantic_settings import BaseSettings
from typing import Literal, Optional
import logging
import sys
import tempfile
import os


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Workflow engine
    engine_webhook_url: Optional[str] = None
    engine_timeout_seconds: float = 120.0
    submission_mode: Literal["async", "sync"] = "async"

    # Public address of this app, used to build the engine's callback URL
    app_url: Optional[str] = None

    # Session store
    store_backend: Literal["memory", "file", "kv"] = "memory"
    store_dir: Optional[str] = None
    kv_rest_api_url: Optional[str] = None
    kv_rest_api_token: Optional[str] = None
    kv_key_prefix: str = "itinerary:"
    session_ttl_seconds: int = 600
    cleanup_interval_seconds: int = 60

    # Streaming delivery
    stream_keepalive_seconds: float = 20.0
    stream_timeout_seconds: float = 180.0

    # Server Configuration
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = True
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()


def get_store_dir(config: Settings) -> str:
    """Directory holding one JSON file per session for the file backend."""
    return config.store_dir or os.path.join(tempfile.gettempdir(), "tripassist-sessions")


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger."""
    logger = logging.getLogger("tripassist")
    logger.setLevel(level.upper())
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    logger.addHandler(handler)
