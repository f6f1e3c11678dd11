"""Project descriptor (package.json) reading."""

import asyncio
import json
import logging
from pathlib import Path

from ..errors import ConfigurationError
from ..models.manifest import DependencyManifest

logger = logging.getLogger(__name__)


def _read_dependencies(path: Path) -> DependencyManifest:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"Can't find package.json at {path}") from e
    except OSError as e:
        raise ConfigurationError(f"Can't read package.json at {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}")

    try:
        return DependencyManifest.from_dict(data.get("dependencies"))
    except ValueError as e:
        raise ConfigurationError(f"Invalid dependencies in {path}: {e}") from e


async def read_dependency_manifest(path: Path) -> DependencyManifest:
    """Read the `dependencies` mapping from a package.json file.

    A descriptor without a `dependencies` key yields an empty manifest.

    Args:
        path: Path to package.json

    Returns:
        Fresh dependency manifest

    Raises:
        ConfigurationError: If the file is missing or unparsable
    """
    manifest = await asyncio.to_thread(_read_dependencies, path)
    logger.debug(f"Read {len(manifest)} dependencies from {path}")
    return manifest
