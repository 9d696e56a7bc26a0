"""
Load the config from config.yaml and environment variables.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    # Environment variable -> nested config key
    ENV_MAPPINGS = {
        'HTTPDISPATCH_TIMEOUT': ('dispatch', 'timeout'),
        'HTTPDISPATCH_PAUSE': ('dispatch', 'pause'),
        'HTTPDISPATCH_USER_AGENT': ('transport', 'user_agent'),
        'HTTPDISPATCH_MAX_CONNECTIONS': ('transport', 'max_connections'),
        'HTTPDISPATCH_MAX_KEEPALIVE': ('transport', 'max_keepalive_connections'),
        'HTTPDISPATCH_FOLLOW_REDIRECTS': ('transport', 'follow_redirects'),
        'HTTPDISPATCH_TRANSPORT_TIMEOUT': ('transport', 'transport_timeout'),
        'LOG_LEVEL': ('logging', 'level'),
        'LOG_JSON': ('logging', 'json'),
    }

    def __init__(self, config_path: str = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, uses the config.yaml
                        shipped next to this module.
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value by nested keys.

        Args:
            *keys: Configuration keys (e.g., 'dispatch', 'timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def dispatch(self) -> Dict[str, Any]:
        """Get dispatch defaults (pause, timeout)."""
        return self.get('dispatch', default={})

    @property
    def transport(self) -> Dict[str, Any]:
        """Get HTTP transport configuration."""
        return self.get('transport', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})

