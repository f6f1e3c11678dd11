"""Configuration loading for the library bundle plugin.

This module merges plugin options with an optional YAML file in the project
root and LIBRARY_DLL_* environment variables.

Contract:
- Inputs: Plugin option mapping, config file path, environment variables
- Outputs: LibrarySettings objects
- Side Effects: None
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from ..errors import ConfigurationError
from .settings import LibrarySettings

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".library-dll.yaml"


def get_config_path(base: Path | str) -> Path:
    """Get path to the project config file.

    Args:
        base: Project root

    Returns:
        Path to .library-dll.yaml in the project root

    Example:
        >>> get_config_path("/tmp/app").name
        '.library-dll.yaml'
    """
    return Path(base).expanduser().resolve() / CONFIG_FILE_NAME


def normalize_option_keys(options: Mapping[str, Any]) -> dict[str, Any]:
    """Convert camelCase option names (dllName) to field names (dll_name)."""
    return {to_snake(key): value for key, value in options.items()}


def load_options(
    options: Mapping[str, Any] | None = None,
    config_path: Path | None = None,
) -> LibrarySettings:
    """Load plugin settings from options, YAML and environment.

    Precedence: defaults < YAML < environment variables < explicit options.

    Args:
        options: Plugin options (the host config's `library` key, CLI flags)
        config_path: Optional config file path (default: .library-dll.yaml in base)

    Returns:
        Validated plugin settings

    Raises:
        ConfigurationError: If the merged options fail validation
    """
    explicit = normalize_option_keys(options or {})

    if config_path is None:
        base = explicit.get("base") or os.environ.get("LIBRARY_DLL_BASE") or "."
        config_path = get_config_path(base)

    yaml_settings: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_settings = normalize_option_keys(yaml.safe_load(f) or {})
            logger.debug(f"Loaded config from {config_path}")
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")

    # Only pass YAML values that don't have corresponding env vars
    filtered_yaml = {}
    for key, value in yaml_settings.items():
        env_key = f"LIBRARY_DLL_{key.upper()}"
        if env_key not in os.environ:
            filtered_yaml[key] = value

    try:
        settings = LibrarySettings(**{**filtered_yaml, **explicit})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid library options: {e}") from e

    logger.debug(
        f"Library options loaded: base={settings.base}, dll_name={settings.dll_name}, mode={settings.mode}"
    )
    return settings
