"""Config loader: reads YAML, applies PORTFOLIO_* env var overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from portfolio_core.config.schema import AppConfig


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, returns defaults.

    Environment variable overrides:
        PORTFOLIO_DATABASE_URL   -> database.url
        PORTFOLIO_LOG_LEVEL      -> logging.level
        PORTFOLIO_LOG_FORMAT     -> logging.format
        PORTFOLIO_LOCK_BACKEND   -> refresh.lock_backend
        POLYGON_API_KEY          -> market_data.api_key
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    db_url = os.environ.get("PORTFOLIO_DATABASE_URL")
    if db_url:
        data.setdefault("database", {})["url"] = db_url

    log_level = os.environ.get("PORTFOLIO_LOG_LEVEL")
    if log_level:
        data.setdefault("logging", {})["level"] = log_level

    log_format = os.environ.get("PORTFOLIO_LOG_FORMAT")
    if log_format:
        data.setdefault("logging", {})["format"] = log_format

    lock_backend = os.environ.get("PORTFOLIO_LOCK_BACKEND")
    if lock_backend:
        data.setdefault("refresh", {})["lock_backend"] = lock_backend

    api_key = os.environ.get("POLYGON_API_KEY")
    if api_key:
        data.setdefault("market_data", {})["api_key"] = api_key

    return AppConfig.model_validate(data)
