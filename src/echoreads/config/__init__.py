"""Configuration management module for echoreads."""

from .manager import ConfigManager, DEFAULT_SETTINGS
from .templates import DEFAULT_CONFIG_TEMPLATE

__all__ = [
    "ConfigManager",
    "DEFAULT_SETTINGS",
    "DEFAULT_CONFIG_TEMPLATE",
]
