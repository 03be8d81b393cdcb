"""
Runtime settings.

Settings are built once at startup and handed to the store and the oracle;
nothing below the API layer reads the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import dotenv_values

from .errors import ConfigError

DEFAULT_DATABASE_URL = "sqlite:///./patient_records.db"
DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"
DEFAULT_ENV_FILE = ".env.local"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def _split_origins(raw: str) -> Tuple[str, ...]:
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or ("*",)


def load_settings(
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build Settings from the environment.

    Outside production a dotenv file (default .env.local) seeds values the
    environment does not set. Real environment variables always win.
    """
    env = dict(os.environ if environ is None else environ)

    if env_file is None and env.get("NODE_ENV", env.get("APP_ENV")) != "production":
        env_file = Path(DEFAULT_ENV_FILE)
    if env_file is not None and env_file.exists():
        file_values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
        env = {**file_values, **env}

    log_level = env.get("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"invalid LOG_LEVEL: {log_level}")

    database_url = env.get("DATABASE_URL", DEFAULT_DATABASE_URL).strip()
    if not database_url:
        raise ConfigError("DATABASE_URL is empty")

    api_key = env.get("GEMINI_API_KEY") or env.get("API_KEY")
    if api_key is not None:
        # Keys pasted into hosting dashboards often carry quotes or spaces
        api_key = api_key.strip().strip("\"'") or None

    return Settings(
        database_url=database_url,
        gemini_api_key=api_key,
        gemini_model=env.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        cors_origins=_split_origins(env.get("CORS_ORIGINS", "*")),
        log_level=log_level,
    )
