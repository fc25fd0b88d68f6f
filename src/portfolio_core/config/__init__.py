"""Configuration system."""

from portfolio_core.config.loader import load_config
from portfolio_core.config.schema import AppConfig

__all__ = ["AppConfig", "load_config"]
