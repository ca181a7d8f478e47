"""
Supabase configuration for the menswear back office
Settings are read from the environment (and a .env file) once per process
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from supabase import Client, create_client

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    # Read .env by default (working directory). Exported envs win.
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    SESSION_FILE: Path = Path.home() / ".menswear_ops" / "session.json"
    DEFAULT_PAGE_SIZE: int = 50
    ORDER_PAGE_SIZE: int = 25
    APP_ENV: str = "development"
    # Telemetry endpoints are only reported, never called
    SENTRY_DSN: Optional[str] = None
    POSTHOG_KEY: Optional[str] = None
    POSTHOG_HOST: str = "https://app.posthog.com"


_settings: Optional[Settings] = None
_supabase_client: Optional[Client] = None


def get_settings() -> Settings:
    """Get the process-wide settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings and client (tests, environment changes)"""
    global _settings, _supabase_client
    _settings = None
    _supabase_client = None


def get_supabase_config(settings: Optional[Settings] = None) -> Dict[str, str]:
    """Get Supabase URL and anon key, environment variables taking precedence"""
    settings = settings or get_settings()
    url = os.getenv("SUPABASE_URL") or settings.SUPABASE_URL
    anon_key = os.getenv("SUPABASE_ANON_KEY") or settings.SUPABASE_ANON_KEY

    if not url:
        raise ConfigurationError("SUPABASE_URL environment variable is required")
    if not anon_key:
        raise ConfigurationError("SUPABASE_ANON_KEY environment variable is required")

    return {"url": url, "anon_key": anon_key}


def get_supabase_client() -> Client:
    """Get the global Supabase client, creating it on first use"""
    global _supabase_client
    if _supabase_client is None:
        config = get_supabase_config()
        _supabase_client = create_client(config["url"], config["anon_key"])
        logger.info(f"✅ Supabase client initialized: {config['url']}")
    return _supabase_client


def setup_logging(log_level: Optional[str] = None) -> None:
    """Set up logging configuration."""
    level = (log_level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def describe_telemetry(settings: Optional[Settings] = None) -> Dict[str, bool]:
    """Report which telemetry endpoints are configured for this environment"""
    settings = settings or get_settings()
    enabled = settings.APP_ENV == "production"
    return {
        "error_reporting": bool(settings.SENTRY_DSN) and enabled,
        "analytics": bool(settings.POSTHOG_KEY) and enabled,
    }
