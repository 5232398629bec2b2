"""
Configuration management for Liszt.

Uses pydantic-settings for environment variable binding.
All settings can be overridden via environment variables with LISZT_ prefix.
"""

import logging
import sys
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable binding."""
    
    model_config = SettingsConfigDict(
        env_prefix="LISZT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    # ==========================================
    # Storage Backend
    # ==========================================
    backend: Literal["sql", "document"] = "sql"
    """Which Registrar implementation to construct at startup."""
    
    data_dir: Path = Path.home() / "liszt"
    """Root directory for the SQLite database and the document collections."""
    
    soft_delete: bool = False
    """Document backend: move deregistered items to .deleted/ instead of unlinking."""
    
    # ==========================================
    # HTTP API
    # ==========================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    
    request_timeout: float = 10.0
    """Deadline in seconds applied to every registrar call made by the API."""
    
    # ==========================================
    # Logging
    # ==========================================
    log_level: str = "INFO"
    log_file: Path | None = None
    
    # ==========================================
    # Computed Properties
    # ==========================================
    @property
    def database_path(self) -> Path:
        return self.data_dir / "registry.sqlite"
    
    @property
    def documents_dir(self) -> Path:
        return self.data_dir / "documents"


# Global settings instance
settings = Settings()


def setup_logging(level: str | None = None) -> None:
    """Configure application logging."""
    log_level = level or settings.log_level
    
    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
    ]
    
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        handlers=handlers,
    )
    
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(f"liszt.{name}")
