"""Configuration module for library_dll.

Public Interface:
    - LibrarySettings: Settings model
    - load_options: Merge plugin options, YAML file and environment
    - get_config_path: Get project config file path
"""

from .loader import get_config_path
from .loader import load_options
from .loader import normalize_option_keys
from .settings import LibrarySettings

__all__ = [
    "LibrarySettings",
    "load_options",
    "get_config_path",
    "normalize_option_keys",
]
