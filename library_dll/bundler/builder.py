"""Library bundle build orchestration."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Iterable
from collections.abc import Mapping
from datetime import UTC
from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import BuildError
from ..errors import SnapshotWriteError
from ..models.bundle import BuildResult
from ..models.bundle import BundleDescriptor
from ..models.manifest import CachedManifest
from ..models.manifest import DependencyManifest
from ..storage.snapshot import SnapshotStore
from .invocation import BuildInvocation
from .webpack import Bundler

logger = logging.getLogger(__name__)

# Seconds subtracted from the export manifest's mtime after each build.
# Works around https://github.com/webpack/watchpack/issues/25: a file written
# just before the watcher starts is reported as changed forever.
MANIFEST_MTIME_OFFSET = 10


def backdate_mtime(path: Path, offset: float = MANIFEST_MTIME_OFFSET) -> float:
    """Set a file's access and modification time to `offset` seconds ago.

    Returns:
        The timestamp that was applied
    """
    timestamp = time.time() - offset
    os.utime(path, (timestamp, timestamp))
    return timestamp


class BundleBuilder:
    """Compiles the dependency set into the library bundle and records it."""

    def __init__(
        self,
        descriptor: BundleDescriptor,
        bundler: Bundler,
        store: SnapshotStore,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        module: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize bundle builder.

        Args:
            descriptor: Bundle names and locations
            bundler: External bundler used to compile
            store: Snapshot store updated after a successful build
            include: Names always added to the bundle
            exclude: Names never added to the bundle
            module: Module rules forwarded to the bundler
        """
        self.descriptor = descriptor
        self.bundler = bundler
        self.store = store
        self.include = list(include)
        self.exclude = list(exclude)
        self.module = module

    def invocation_for(self, manifest: DependencyManifest) -> BuildInvocation:
        """Entry map for a dependency manifest after include/exclude."""
        return BuildInvocation.from_manifest(
            self.descriptor.bundle_name,
            manifest,
            include=self.include,
            exclude=self.exclude,
        )

    def _remove_stale_bundle(self) -> None:
        self.descriptor.manifest_file_path.unlink(missing_ok=True)
        self.descriptor.asset_file_path.unlink(missing_ok=True)

    async def _record(self, cached: CachedManifest) -> None:
        try:
            if cached.manifest_path is not None:
                await asyncio.to_thread(backdate_mtime, cached.manifest_path)
            await self.store.save(cached)
        except (OSError, SnapshotWriteError) as e:
            raise BuildError(f"Library bundle built but could not be recorded: {e}") from e

    async def build(self, manifest: DependencyManifest) -> BuildResult:
        """Build the library bundle for a dependency manifest.

        The snapshot is only written after the bundler succeeded and the
        manifest timestamp was fixed up, so a failed build is retried on
        the next check. With nothing to bundle the bundler is skipped, any
        previous bundle is removed and the empty set is recorded.

        Args:
            manifest: Dependencies to bundle

        Returns:
            Build result with any bundler warnings (no entries if skipped)

        Raises:
            BuildError: If the bundler fails or the build cannot be recorded
        """
        invocation = self.invocation_for(manifest)
        entries = invocation.entries()

        await asyncio.to_thread(self.descriptor.output_directory.mkdir, parents=True, exist_ok=True)

        if not entries:
            logger.info("No libraries to bundle, skipping library bundle")
            built_at = datetime.now(UTC)
            try:
                await asyncio.to_thread(self._remove_stale_bundle)
            except OSError as e:
                raise BuildError(f"Could not remove previous library bundle: {e}") from e
            await self._record(CachedManifest(dependencies=manifest, built_at=built_at))
            return BuildResult(descriptor=self.descriptor, manifest=manifest, entries=[], built_at=built_at)

        logger.info(f"Compiling {len(entries)} libraries into {self.descriptor.asset_file_name}")
        report = await self.bundler.compile(invocation, self.descriptor, self.module)

        if not report.ok:
            logger.error("Library bundle failed to compile:\n" + "\n".join(report.errors))
            raise BuildError("Library bundle failed to compile", report.errors)
        for warning in report.warnings:
            logger.warning(f"Library bundle warning: {warning}")

        manifest_path = self.descriptor.manifest_file_path
        if not await asyncio.to_thread(manifest_path.exists):
            raise BuildError(f"Bundler did not write the export manifest: {manifest_path}")

        built_at = datetime.now(UTC)
        await self._record(
            CachedManifest(
                dependencies=manifest,
                manifest_path=manifest_path,
                asset_file_name=self.descriptor.asset_file_name,
                built_at=built_at,
            )
        )

        logger.info(f"Library bundle ready: {self.descriptor.asset_file_path}")
        return BuildResult(
            descriptor=self.descriptor,
            manifest=manifest,
            entries=entries,
            built_at=built_at,
            warnings=list(report.warnings),
        )
