"""Configuration file management and utilities."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ..auth.credentials import DEFAULT_SESSION_FILE
from ..auth.gate import DEFAULT_POPULATE_TIMEOUT, DEFAULT_SETTLE_DELAY
from ..client import DEFAULT_API_URL, DEFAULT_REQUEST_TIMEOUT
from .templates import DEFAULT_CONFIG_TEMPLATE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "api_url": DEFAULT_API_URL,
    "request_timeout": DEFAULT_REQUEST_TIMEOUT,
    "session_file": str(DEFAULT_SESSION_FILE),
    "settle_delay": DEFAULT_SETTLE_DELAY,
    "populate_timeout": DEFAULT_POPULATE_TIMEOUT,
}

ENV_VARS = {
    "api_url": "ECHOREADS_API_URL",
    "request_timeout": "ECHOREADS_REQUEST_TIMEOUT",
    "session_file": "ECHOREADS_SESSION_FILE",
}

FLOAT_SETTINGS = ("request_timeout", "settle_delay", "populate_timeout")


class ConfigManager:
    """Handles configuration file operations and management."""

    @staticmethod
    def load_config(config_path: str) -> Dict[str, Any]:
        """Load configuration from JSON file. Missing or broken files give {}."""
        config_file = Path(config_path)
        if not config_file.exists():
            return {}
        try:
            with open(config_file, "r") as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Error parsing config file %s: %s", config_path, e)
            return {}
        except OSError as e:
            logger.warning("Error reading config file %s: %s", config_path, e)
            return {}
        return config if isinstance(config, dict) else {}

    @staticmethod
    def load_environment(dotenv_path: Optional[str] = None) -> Dict[str, Any]:
        """Read ECHOREADS_* settings from the environment (and a .env file)."""
        load_dotenv(dotenv_path)
        env_config = {}
        for key, var in ENV_VARS.items():
            value = os.getenv(var)
            if value:
                env_config[key] = value
        return env_config

    @staticmethod
    def merge_config_with_args(
        config: Dict[str, Any],
        env: Optional[Dict[str, Any]] = None,
        **cli_args,
    ) -> Dict[str, Any]:
        """Merge defaults, config file, environment and CLI arguments (CLI wins)."""
        merged = dict(DEFAULT_SETTINGS)
        env = env or {}

        def add_if_not_none(key: str, value: Any) -> None:
            if value is not None:
                merged[key] = value

        session_config = config.get("session", {})
        for key in DEFAULT_SETTINGS:
            add_if_not_none(key, session_config.get(key))
            add_if_not_none(key, config.get(key))
            add_if_not_none(key, env.get(key))
            add_if_not_none(key, cli_args.get(key))

        for key in FLOAT_SETTINGS:
            try:
                merged[key] = float(merged[key])
            except (TypeError, ValueError):
                logger.warning(
                    "Invalid value %r for %s, using default", merged[key], key
                )
                merged[key] = DEFAULT_SETTINGS[key]

        merged["session_file"] = str(Path(merged["session_file"]).expanduser())
        return merged

    @staticmethod
    def write_default_config(config_path: str = DEFAULT_CONFIG_PATH, api_url: Optional[str] = None) -> Path:
        """Write a starter config file and return its path."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(
            DEFAULT_CONFIG_TEMPLATE.format(
                api_url=api_url or DEFAULT_API_URL,
                session_file=str(DEFAULT_SESSION_FILE),
            )
        )
        return config_file
