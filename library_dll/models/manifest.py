"""Dependency and manifest models.

This module contains the data models shared by the cache engine:
- DependencyManifest: the `dependencies` mapping of package.json
- CachedManifest: what the snapshot store persisted after the last build
- DependencyChange: a diff between two dependency mappings (for logging)
- ExportManifest: the manifest document emitted by the bundler
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import Field

from .base import CamelCaseModel


@dataclass(frozen=True, eq=False)
class DependencyManifest:
    """Immutable snapshot of declared dependencies (name -> version range).

    Iteration order follows the descriptor. Equality ignores order.
    """

    dependencies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyManifest):
            return NotImplemented
        return dict(self.dependencies) == dict(other.dependencies)

    def __len__(self) -> int:
        return len(self.dependencies)

    def names(self) -> list[str]:
        """Dependency names in descriptor order."""
        return list(self.dependencies)

    def to_dict(self) -> dict[str, str]:
        """Convert to a plain dictionary for storage."""
        return dict(self.dependencies)

    @classmethod
    def from_dict(cls, data: Any) -> DependencyManifest:
        """Build from a decoded JSON mapping.

        Raises:
            ValueError: If data is not a mapping of strings to strings
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError(f"Expected a mapping of dependencies, got {type(data).__name__}")
        for name, version in data.items():
            if not isinstance(name, str) or not isinstance(version, str):
                raise ValueError(f"Invalid dependency entry: {name!r}: {version!r}")
        return cls(dependencies=data)


@dataclass
class CachedManifest:
    """Dependency set persisted after the last successful bundle build."""

    dependencies: DependencyManifest
    manifest_path: Path | None = None
    asset_file_name: str | None = None
    built_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "dependencies": self.dependencies.to_dict(),
            "manifest_path": str(self.manifest_path) if self.manifest_path else None,
            "asset_file_name": self.asset_file_name,
            "built_at": self.built_at.isoformat() if self.built_at else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> CachedManifest:
        """Load from dictionary.

        Also accepts the flat `{name: range}` document written by older
        releases of the plugin.

        Raises:
            ValueError: If the document has neither shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot must be a JSON object, got {type(data).__name__}")
        if not isinstance(data.get("dependencies"), dict):
            return cls(dependencies=DependencyManifest.from_dict(data))
        return cls(
            dependencies=DependencyManifest.from_dict(data["dependencies"]),
            manifest_path=Path(data["manifest_path"]) if data.get("manifest_path") else None,
            asset_file_name=data.get("asset_file_name"),
            built_at=(datetime.fromisoformat(data["built_at"]) if data.get("built_at") else None),
        )


@dataclass
class DependencyChange:
    """Difference between the current and the cached dependency set."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    def summary(self) -> str:
        """One-line human readable description."""
        parts = []
        if self.added:
            parts.append(f"added {', '.join(self.added)}")
        if self.removed:
            parts.append(f"removed {', '.join(self.removed)}")
        if self.changed:
            parts.append(f"changed {', '.join(self.changed)}")
        return "; ".join(parts) or "no changes"


class ExportManifest(CamelCaseModel):
    """Export manifest emitted by the bundler's DLL plugin.

    `content` maps module request paths to their module id and export
    metadata. `name` is the global symbol the bundle is exposed under.
    """

    name: str = Field(description="Global symbol of the library bundle")
    type: str | None = Field(default=None, description="Library target type, if recorded")
    content: dict[str, dict[str, Any]] = Field(default_factory=dict, description="Module request -> module info")

    def module_requests(self) -> list[str]:
        """Module requests provided by the bundle."""
        return list(self.content)
