"""
Configuration loader for the account comparison tool.

Reads the optional YAML configuration file and validates it against the
Pydantic models.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from account_db_compare.config.models import CompareSystemConfig
from account_db_compare.core.exceptions import ConfigurationError


class ConfigLoader:
    """Loads and validates comparison configuration."""

    @staticmethod
    def default() -> CompareSystemConfig:
        """Configuration used when no file is given."""
        return CompareSystemConfig()

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> CompareSystemConfig:
        """
        Validate a configuration dictionary.

        Args:
            data: Parsed configuration mapping

        Returns:
            Validated CompareSystemConfig

        Raises:
            ConfigurationError: If validation fails
        """
        try:
            return CompareSystemConfig.model_validate(data or {})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def load_from_file(cls, config_path: Union[str, Path]) -> CompareSystemConfig:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Validated CompareSystemConfig

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to read configuration file {config_path}: {e}"
            ) from e

        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping"
            )

        return cls.from_dict(data)
