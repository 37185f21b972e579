"""
Configuration management for the damage roll toolkit.

Provides centralized configuration loading from environment variables
with sensible defaults for all settings.
"""

import os
from pathlib import Path
from typing import Optional
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


class Config:
    """
    Centralized configuration management.

    Loads configuration from environment variables with fallback defaults.
    Supports .env files via python-dotenv.

    Example:
        config = Config()
        print(config.log_level)  # INFO
        print(config.dice_seed)  # None
    """

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            env_file: Optional path to .env file. If None, auto-discovers .env
                     in project root or skips if not found.
        """
        if env_file:
            load_dotenv(env_file)
            logger.info(f"Loaded configuration from {env_file}")
        else:
            # Auto-discover .env in project root
            project_root = Path(__file__).parent.parent.parent
            env_path = project_root / '.env'
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded configuration from {env_path}")
            else:
                logger.debug("No .env file found, using environment variables and defaults")

        # === Logging ===
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.log_file = os.getenv('LOG_FILE') or None
        self.log_colors = _env_flag('LOG_COLORS', 'True')

        # === Dice ===
        # Empty or unset means an unseeded roller
        self.dice_seed_raw = os.getenv('DICE_SEED', '').strip()
        self.dice_seed: Optional[int] = None
        if self.dice_seed_raw:
            try:
                self.dice_seed = int(self.dice_seed_raw)
            except ValueError:
                self.dice_seed = None

    def validate(self) -> bool:
        """
        Validate configuration and log warnings for bad values.

        Returns:
            True if config is valid, False if a value had to be ignored
        """
        valid = True

        if self.log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            logger.error(
                f"Invalid LOG_LEVEL: {self.log_level}. "
                f"Must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL"
            )
            valid = False

        if self.dice_seed_raw and self.dice_seed is None:
            logger.warning(f"DICE_SEED '{self.dice_seed_raw}' is not an integer, rolling unseeded")
            valid = False

        return valid

    def __repr__(self) -> str:
        return (
            f"Config("
            f"log_level={self.log_level}, "
            f"log_file={self.log_file}, "
            f"log_colors={self.log_colors}, "
            f"dice_seed={self.dice_seed})"
        )


# Global config instance (lazy-loaded)
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global config instance (singleton pattern).

    Returns:
        Global Config instance

    Example:
        from src.core.config import get_config
        config = get_config()
        print(config.dice_seed)
    """
    global _config
    if _config is None:
        _config = Config()
        _config.validate()
    return _config


def reset_config() -> None:
    """Drop the global config so the next get_config() re-reads the environment."""
    global _config
    _config = None


__all__ = ['Config', 'get_config', 'reset_config']
