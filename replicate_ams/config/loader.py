"""
Configuration loader for replication runs.

Handles loading from multiple sources with proper priority:
CLI Args > Environment Variables > Config File > Defaults

The config file uses the ``appsettings.json`` layout: an ``appConfig``
section holding ``sourceConfig``, ``destinationConfig`` and
``miscellaneous``. JSON is read through the YAML parser, so a YAML file with
the same structure works too. Keys are matched
case-insensitively: PascalCase, camelCase and snake_case are all accepted.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..exceptions import InvalidConfigurationError, MissingConfigurationError
from .models import AppSettings

# Load environment variables
load_dotenv()

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def normalize_key(key: str) -> str:
    """Convert ``AadClientId`` / ``sourceConfig`` / ``AADSettings`` to snake_case."""
    return _CAMEL_BOUNDARY.sub("_", key).replace("-", "_").lower()


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Priority order (highest to lowest):
    1. CLI arguments (passed to merge_cli_args)
    2. Environment variables (AMS_REPLICATOR_*)
    3. Configuration file
    4. Default values
    """

    DEFAULT_CONFIG_FILE = Path("appsettings.json")
    ENV_PREFIX = "AMS_REPLICATOR_"
    ROOT_SECTION = "app_config"

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to configuration file. If None, uses
                AMS_REPLICATOR_CONFIG_PATH or ./appsettings.json.
        """
        self.config_path = Path(config_path) if config_path else self._get_config_path_from_env()

    @classmethod
    def _get_config_path_from_env(cls) -> Path:
        """Get configuration path from environment variable or default."""
        env_path = os.environ.get(f"{cls.ENV_PREFIX}CONFIG_PATH")
        if env_path:
            return Path(env_path).expanduser()
        return cls.DEFAULT_CONFIG_FILE

    def load(self) -> AppSettings:
        """
        Load configuration from all sources and merge.

        Returns:
            Validated AppSettings object

        Raises:
            MissingConfigurationError: If no settings are found or required keys are absent
            InvalidConfigurationError: If the settings are malformed
        """
        config_dict: dict[str, Any] = {}

        if self.config_path.exists():
            config_dict = self._deep_merge(config_dict, self._load_file(self.config_path))

        env_config = self._load_from_env()
        config_dict = self._deep_merge(config_dict, env_config)

        if not config_dict:
            raise MissingConfigurationError(
                f"No configuration found at {self.config_path} and no "
                f"{self.ENV_PREFIX}* environment variables are set",
                missing_keys=["source_config", "destination_config"],
            )

        return self._validate(config_dict)

    def _validate(self, config_dict: dict[str, Any]) -> AppSettings:
        try:
            return AppSettings.model_validate(config_dict)
        except ValidationError as e:
            missing = [
                ".".join(str(part) for part in error["loc"])
                for error in e.errors()
                if error["type"] == "missing"
            ]
            if missing:
                raise MissingConfigurationError(
                    f"Required settings are missing: {', '.join(missing)}",
                    missing_keys=missing,
                ) from e
            raise InvalidConfigurationError(
                f"Configuration validation failed: {e}", cause=e
            ) from e

    def _load_file(self, path: Path) -> dict[str, Any]:
        """
        Load configuration from a JSON or YAML file.

        Args:
            path: Path to the configuration file

        Returns:
            Configuration dictionary with snake_case keys and the root section unwrapped

        Raises:
            InvalidConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(path, encoding="utf-8-sig") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(
                f"Invalid JSON/YAML in {path}: {e}", cause=e
            ) from e
        except OSError as e:
            raise InvalidConfigurationError(
                f"Cannot read config file {path}: {e}", cause=e
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError(
                f"Config file {path} must contain an object at the top level"
            )

        data = self._normalize_keys(data)
        if self.ROOT_SECTION in data:
            section = data[self.ROOT_SECTION]
            if not isinstance(section, dict):
                raise InvalidConfigurationError(
                    "appConfig must be an object", config_section="appConfig"
                )
            return section
        return data

    def _normalize_keys(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {normalize_key(str(k)): self._normalize_keys(v) for k, v in data.items()}
        if isinstance(data, list):
            return [self._normalize_keys(item) for item in data]
        return data

    def _load_from_env(self) -> dict[str, Any]:
        """
        Load configuration from environment variables.

        Environment variable format:
        - AMS_REPLICATOR_SOURCE_CONFIG__AAD_SECRET
        - AMS_REPLICATOR_DESTINATION_CONFIG__STORAGE_ACCOUNT_NAME
        - AMS_REPLICATOR_MISCELLANEOUS__COPY_USING_LOCAL_NETWORK

        Double underscore (__) separates nested keys.

        Returns:
            Configuration dictionary
        """
        config: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(self.ENV_PREFIX) or "__" not in key:
                continue

            config_key = key[len(self.ENV_PREFIX) :].lower()
            parts = config_key.split("__")

            current = config
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            current[parts[-1]] = self._convert_env_value(value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """
        Convert environment variable string to a boolean where it is one.

        Everything else stays a string: ids and secrets may look numeric and
        pydantic coerces numeric fields itself.
        """
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        return value

    def _deep_merge(
        self, base: dict[str, Any], update: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Deep merge two dictionaries.

        Args:
            base: Base dictionary
            update: Dictionary with updates

        Returns:
            Merged dictionary (base is not modified)
        """
        result = base.copy()

        for key, value in update.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def merge_cli_args(
        self,
        config: AppSettings,
        cli_args: dict[str, Any],
    ) -> AppSettings:
        """
        Merge CLI arguments into configuration.

        CLI arguments have highest priority and override all other sources.

        Args:
            config: Base configuration
            cli_args: CLI arguments to merge (non-None values only)

        Returns:
            New AppSettings with CLI args applied
        """
        filtered_args = self._filter_none_values(cli_args)

        if not filtered_args:
            return config

        config_dict = config.model_dump()
        config_dict = self._deep_merge(config_dict, filtered_args)

        return self._validate(config_dict)

    def _filter_none_values(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Recursively filter out None values from a dictionary.

        Args:
            data: Dictionary to filter

        Returns:
            New dictionary without None values
        """
        result = {}
        for key, value in data.items():
            if value is None:
                continue
            elif isinstance(value, dict):
                filtered = self._filter_none_values(value)
                if filtered:
                    result[key] = filtered
            else:
                result[key] = value
        return result

    def create_default_config(self, force: bool = False) -> Path:
        """
        Create a template configuration file.

        Args:
            force: Overwrite existing file if True

        Returns:
            Path to created configuration file

        Raises:
            InvalidConfigurationError: If file exists and force=False
        """
        if self.config_path.exists() and not force:
            raise InvalidConfigurationError(
                f"Configuration file already exists at {self.config_path}. "
                "Use force=True to overwrite."
            )

        if self.config_path.parent and not self.config_path.parent.exists():
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(_default_config_template(), f, indent=2)
                f.write("\n")
        except OSError as e:
            raise InvalidConfigurationError(
                f"Cannot write config file {self.config_path}: {e}", cause=e
            ) from e

        return self.config_path


def _account_template(role: str) -> dict[str, Any]:
    return {
        "AadTenantId": "00000000-0000-0000-0000-000000000000",
        "AadClientId": "00000000-0000-0000-0000-000000000000",
        "AadSecret": f"<{role} service principal secret>",
        "SubscriptionId": "00000000-0000-0000-0000-000000000000",
        "ResourceGroup": f"<{role} resource group>",
        "AccountName": f"<{role} media services account>",
        "StorageAccountName": f"<{role} storage account>",
        "Location": "West US 2",
        "ArmEndpoint": "https://management.azure.com/",
        "AADSettings": {
            "AADEndpoint": "https://login.microsoftonline.com",
            "TokenAudience": "https://management.core.windows.net/",
            "ValidateAuthority": True,
        },
    }


def _default_config_template() -> dict[str, Any]:
    return {
        "appConfig": {
            "sourceConfig": _account_template("source"),
            "destinationConfig": _account_template("destination"),
            "miscellaneous": {
                "CopyUsingLocalNetwork": False,
                "CopyAssetContent": True,
                "FailurePolicy": "fail_fast",
                "DryRun": False,
                "SkipCategories": [],
                "MaxParallelOperations": 1,
                "MaxRetries": 3,
                "RetryDelay": 1.0,
                "SasExpiryHours": 4,
            },
        }
    }


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict[str, Any]] = None,
) -> AppSettings:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to configuration file
        cli_args: CLI arguments to merge (highest priority)

    Returns:
        Validated AppSettings object
    """
    loader = ConfigLoader(config_path)
    config = loader.load()

    if cli_args:
        config = loader.merge_cli_args(config, cli_args)

    return config


def create_default_config(
    config_path: Optional[Path] = None,
    force: bool = False,
) -> Path:
    """
    Create a template configuration file.

    Args:
        config_path: Path to configuration file
        force: Overwrite existing file if True

    Returns:
        Path to created configuration file
    """
    loader = ConfigLoader(config_path)
    return loader.create_default_config(force=force)
