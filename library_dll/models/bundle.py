"""Bundle descriptor and build lifecycle models."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .manifest import DependencyManifest

DESCRIPTOR_FILE_NAME = "package.json"
SNAPSHOT_FILE_NAME = "dll.json"


@dataclass(frozen=True)
class BundleDescriptor:
    """Where the library bundle lives and what it is called.

    Created once from the plugin options and never modified afterwards.
    `bundle_name` doubles as the global symbol of the bundle and the stem of
    its asset and manifest files.
    """

    base: Path
    bundle_name: str
    output_directory: Path

    @classmethod
    def create(cls, base: Path | str, directory_name: str, bundle_name: str) -> BundleDescriptor:
        """Resolve a descriptor from the project root and option values.

        Args:
            base: Project root (made absolute)
            directory_name: Output directory, relative to base
            bundle_name: Bundle identifier

        Returns:
            Descriptor with absolute paths
        """
        base_path = Path(base).expanduser().resolve()
        return cls(
            base=base_path,
            bundle_name=bundle_name,
            output_directory=(base_path / directory_name).resolve(),
        )

    @property
    def asset_file_name(self) -> str:
        return f"{self.bundle_name}.js"

    @property
    def asset_file_path(self) -> Path:
        return self.output_directory / self.asset_file_name

    @property
    def manifest_file_path(self) -> Path:
        return self.output_directory / f"{self.bundle_name}-manifest.json"

    @property
    def snapshot_file_path(self) -> Path:
        return self.output_directory / SNAPSHOT_FILE_NAME

    @property
    def descriptor_file_path(self) -> Path:
        return self.base / DESCRIPTOR_FILE_NAME


class BundleState(str, Enum):
    """Bundle session lifecycle status.

    State transitions:
    - IDLE: Nothing checked yet in this process
    - CHECKING: Comparing package.json with the snapshot
    - BUILDING: Bundler invocation in flight
    - READY: A valid bundle and manifest exist on disk
    - FAILED: Last check or build failed; the next check retries
    """

    IDLE = "idle"
    CHECKING = "checking"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[BundleState, frozenset[BundleState]] = {
    BundleState.IDLE: frozenset({BundleState.CHECKING}),
    BundleState.CHECKING: frozenset({BundleState.BUILDING, BundleState.READY, BundleState.FAILED}),
    BundleState.BUILDING: frozenset({BundleState.READY, BundleState.FAILED}),
    BundleState.READY: frozenset({BundleState.CHECKING}),
    BundleState.FAILED: frozenset({BundleState.CHECKING}),
}


@dataclass
class BuildResult:
    """Outcome of a successful bundle build."""

    descriptor: BundleDescriptor
    manifest: DependencyManifest
    entries: list[str]
    built_at: datetime
    warnings: list[str] = field(default_factory=list)
