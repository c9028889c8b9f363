"""Configuration package exports."""

from .loader import load_config  # noqa: F401
from .model import BotConfig, normalize_channels  # noqa: F401

__all__ = ["BotConfig", "load_config", "normalize_channels"]
