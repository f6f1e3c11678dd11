"""Settings model for the library bundle plugin.

Contract:
- Inputs: Plugin options, YAML file values, environment variables
- Outputs: Validated LibrarySettings objects
- Side Effects: None (read-only)
"""

from pathlib import Path
from typing import Any
from typing import Literal

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from ..models.bundle import BundleDescriptor

LogOption = bool | Literal["info", "verbose", "none"]


class LibrarySettings(BaseSettings):
    """Configuration for the library bundle plugin.

    Attributes:
        base: Absolute project root (default: current working directory)
        dll_directory_name: Bundle output directory, relative to base
        dll_name: Bundle identifier, global symbol and file stem
        include: Names always added to the bundle
        exclude: Names never added to the bundle
        log: True/'info', 'verbose', False/'none'
        module: Module rules for the bundle build (host rules when unset)
        mode: 'development' builds a local bundle, 'production' uses CDN copies
        bundler_command: Command that runs the bundler CLI
        cdn_url_template: URL template for CDN lookups ({name}, {version})
        globals: Global symbol per library, used for CDN externals

    Example:
        >>> settings = LibrarySettings(base="/tmp/app")
        >>> settings.descriptor().manifest_file_path.name
        'vendor-manifest.json'
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_DLL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base: str = Field(default=".", validate_default=True)
    dll_directory_name: str = ".dll-cache"
    dll_name: str = "vendor"
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    log: LogOption = True
    module: dict[str, Any] | None = None
    mode: Literal["development", "production"] = "development"
    bundler_command: list[str] = Field(default_factory=lambda: ["npx", "webpack"])
    cdn_url_template: str = "https://unpkg.com/{name}@{version}"
    globals: dict[str, str] = Field(default_factory=dict)

    @field_validator("base")
    @classmethod
    def expand_and_resolve_path(cls, v: str) -> str:
        """Expand ~ and resolve to absolute path.

        Args:
            v: Path string (may contain ~ or be relative)

        Returns:
            Absolute path as string
        """
        return str(Path(v).expanduser().resolve())

    @field_validator("dll_name")
    @classmethod
    def validate_dll_name(cls, v: str) -> str:
        """Bundle names become file stems and JS identifiers."""
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"dll_name must be a non-empty file stem, got: {v!r}")
        return v

    @field_validator("bundler_command")
    @classmethod
    def validate_bundler_command(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("bundler_command must not be empty")
        return v

    def descriptor(self) -> BundleDescriptor:
        """Build the bundle descriptor for these settings."""
        return BundleDescriptor.create(self.base, self.dll_directory_name, self.dll_name)
