"""
Configuration management for Bioloop.

Loads and validates configuration from config.yaml (or environment variables as fallback).
"""
from __future__ import annotations

import copy
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from bioloop.common.timestamps import validate_timezone

log = logging.getLogger(__name__)

# Load .env file if it exists (for local development)
load_dotenv()

# Default configuration
DEFAULT_CONFIG = {
    'timezone': {
        'default': 'America/Los_Angeles',
    },
    'data': {
        'raw_dir': 'Data/Raw',
        'output_dir': 'Data/Output',
    },
    'scoring': {
        # HRV/RHR older than this no longer count toward recovery
        'recency_window_days': 7,
    },
    'sleep': {
        'max_gap_minutes': 30,
        'min_session_minutes': 90,
    },
}


class Config:
    """
    Configuration singleton.

    Loads configuration from:
    1. config.yaml in the working directory (if exists)
    2. Environment variables (as override)
    3. Defaults (as fallback)

    Example:
        >>> config = Config()
        >>> config.get_home_timezone()
        'America/Los_Angeles'
        >>> config.get_recency_window()
        datetime.timedelta(days=7)
    """

    _instance: Optional['Config'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_config()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next access reloads."""
        cls._instance = None

    def _load_config(self) -> None:
        """Load configuration from config.yaml and environment."""
        # Merges mutate nested dicts in place
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        config_path = Path('config.yaml')
        if config_path.exists():
            try:
                with open(config_path, 'r') as f:
                    yaml_config = yaml.safe_load(f)
                    if yaml_config:
                        self._merge_config(yaml_config)
                        log.info("Loaded configuration from %s", config_path)
            except (OSError, yaml.YAMLError) as e:
                log.warning("Failed to load config.yaml: %s. Using defaults.", e)
        else:
            log.info("No config.yaml found. Using defaults and environment variables.")

        self._load_env_overrides()

    def _merge_config(self, new_config: Dict[str, Any]) -> None:
        """Recursively merge new config into existing config."""
        def merge(base: Dict, update: Dict) -> Dict:
            for key, value in update.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    merge(base[key], value)
                else:
                    base[key] = value
            return base

        merge(self._config, new_config)

    def _load_env_overrides(self) -> None:
        """Load overrides from environment variables."""
        if env_tz := os.getenv('BIOLOOP_HOME_TIMEZONE'):
            self._config['timezone']['default'] = env_tz

        if data_root := os.getenv('BIOLOOP_DATA_ROOT'):
            self._config['data']['raw_dir'] = f"{data_root}/Raw"
            self._config['data']['output_dir'] = f"{data_root}/Output"

        if window := os.getenv('BIOLOOP_RECENCY_WINDOW_DAYS'):
            try:
                self._config['scoring']['recency_window_days'] = float(window)
            except ValueError:
                log.warning("Ignoring non-numeric BIOLOOP_RECENCY_WINDOW_DAYS=%r", window)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Example:
            >>> config.get('timezone.default')
            'America/Los_Angeles'
            >>> config.get('sleep.max_gap_minutes')
            30
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_home_timezone(self) -> str:
        """Get the timezone assumed for naive export timestamps."""
        return self.get('timezone.default', 'America/Los_Angeles')

    def get_data_dir(self, dir_type: str) -> Path:
        """
        Get data directory path.

        Args:
            dir_type: One of 'raw', 'output'

        Returns:
            Path object for the directory
        """
        dir_path = self.get(f'data.{dir_type}_dir', f'Data/{dir_type.title()}')
        return Path(dir_path)

    def get_recency_window(self) -> timedelta:
        return timedelta(days=float(self.get('scoring.recency_window_days', 7)))

    def get_sleep_max_gap(self) -> timedelta:
        return timedelta(minutes=float(self.get('sleep.max_gap_minutes', 30)))

    def get_sleep_min_session(self) -> timedelta:
        return timedelta(minutes=float(self.get('sleep.min_session_minutes', 90)))

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not validate_timezone(self.get_home_timezone()):
            errors.append(f"Invalid home timezone: {self.get_home_timezone()}")

        for key in ('scoring.recency_window_days', 'sleep.max_gap_minutes', 'sleep.min_session_minutes'):
            value = self.get(key)
            try:
                if float(value) <= 0:
                    errors.append(f"{key} must be positive (got {value})")
            except (TypeError, ValueError):
                errors.append(f"{key} must be a number (got {value!r})")

        return errors

    def __repr__(self) -> str:
        return f"Config({self._config})"


# Convenience functions for common operations
def get_config() -> Config:
    """Get the configuration singleton."""
    return Config()


def get_home_timezone() -> str:
    """Get the user's home timezone."""
    return get_config().get_home_timezone()


def get_recency_window() -> timedelta:
    """Get how far back an HRV/RHR reading still counts as current."""
    return get_config().get_recency_window()
