"""Bundle session: per-plugin state threaded through every component.

A session owns the bundle descriptor, the snapshot store, the builder, the
lifecycle state and the lock that keeps at most one check/build in flight
for its bundle directory.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..bundler.builder import BundleBuilder
from ..bundler.webpack import Bundler
from ..bundler.webpack import WebpackBundler
from ..cache.detection import diff_dependencies
from ..cache.detection import needs_rebuild
from ..config.settings import LibrarySettings
from ..models.bundle import ALLOWED_TRANSITIONS
from ..models.bundle import BuildResult
from ..models.bundle import BundleState
from ..models.manifest import DependencyManifest
from ..storage.descriptor import read_dependency_manifest
from ..storage.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


class BundleSession:
    """Lifecycle of one library bundle within a process.

    Calls to ensure_bundle() are serialized. A caller that waited for an
    in-flight build re-reads package.json and the snapshot, so it only
    rebuilds if the dependencies are still out of date.

    Example:
        >>> session = BundleSession(LibrarySettings(base="/path/to/app"))
        >>> result = await session.ensure_bundle()
        >>> session.state
        <BundleState.READY: 'ready'>
    """

    def __init__(self, settings: LibrarySettings, bundler: Bundler | None = None) -> None:
        """Initialize bundle session.

        Args:
            settings: Plugin settings
            bundler: External bundler (default: webpack CLI from settings)
        """
        self.settings = settings
        self.descriptor = settings.descriptor()
        self.store = SnapshotStore(self.descriptor.snapshot_file_path)
        self.builder = BundleBuilder(
            self.descriptor,
            bundler or WebpackBundler(settings.bundler_command),
            self.store,
            include=settings.include,
            exclude=settings.exclude,
            module=settings.module,
        )
        self.state = BundleState.IDLE
        self.last_result: BuildResult | None = None
        self.entries: list[str] = []
        self._lock = asyncio.Lock()

    def _transition(self, new_state: BundleState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid bundle state transition: {self.state.value} -> {new_state.value}")
        logger.debug(f"Bundle {self.descriptor.bundle_name}: {self.state.value} -> {new_state.value}")
        self.state = new_state

    @property
    def is_building(self) -> bool:
        return self.state == BundleState.BUILDING

    @property
    def has_bundle(self) -> bool:
        """Whether the last check left a bundle for the host to reference."""
        return bool(self.entries)

    def use_module_rules(self, module: Mapping[str, Any] | None) -> None:
        """Forward the host's module rules when no `module` option was given."""
        if self.settings.module is None:
            self.builder.module = module

    async def read_manifest(self) -> DependencyManifest:
        """Read the current dependencies from package.json.

        Raises:
            ConfigurationError: If package.json is missing or unparsable
        """
        return await read_dependency_manifest(self.descriptor.descriptor_file_path)

    async def ensure_bundle(self, force: bool = False) -> BuildResult | None:
        """Make sure a bundle matching package.json exists on disk.

        Args:
            force: Rebuild even if the snapshot matches

        Returns:
            Build result if a build ran, None if the cached bundle was reused

        Raises:
            ConfigurationError: If package.json is missing or unparsable
            BuildError: If the bundle could not be built
        """
        async with self._lock:
            self._transition(BundleState.CHECKING)
            try:
                current = await self.read_manifest()
                cached = await self.store.load()
                cached_dependencies = cached.dependencies if cached else None
                entries = self.builder.invocation_for(current).entries()
                manifest_exists = await asyncio.to_thread(self.descriptor.manifest_file_path.exists)
                bundle_present = manifest_exists or not entries

                if not force and bundle_present and not needs_rebuild(current, cached_dependencies):
                    logger.debug(f"Library bundle {self.descriptor.asset_file_name} is up to date")
                    self.entries = entries
                    self._transition(BundleState.READY)
                    return None

                if cached is None:
                    logger.info(f"Building initial library bundle {self.descriptor.asset_file_name}")
                elif not bundle_present:
                    logger.info("Export manifest missing, rebuilding library bundle")
                else:
                    change = diff_dependencies(current, cached_dependencies)
                    logger.info(f"Dependencies changed ({change.summary()}), rebuilding library bundle")

                self._transition(BundleState.BUILDING)
                result = await self.builder.build(current)
            except Exception:
                self._transition(BundleState.FAILED)
                raise

            self.last_result = result
            self.entries = result.entries
            self._transition(BundleState.READY)
            return result


# Sessions per event loop, keyed by bundle directory. Locks belong to the
# loop they were created on, so each loop gets its own set.
_sessions: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[Path, BundleSession]] = (
    weakref.WeakKeyDictionary()
)


def get_session(settings: LibrarySettings, bundler: Bundler | None = None) -> BundleSession:
    """Get the session for a bundle directory on the running event loop.

    The first call for a directory creates the session from its settings and
    bundler; later calls share it, so their checks and builds serialize on
    one lock.

    Args:
        settings: Plugin settings
        bundler: External bundler used when the session is created

    Returns:
        Shared bundle session

    Raises:
        RuntimeError: If called without a running event loop
    """
    loop = asyncio.get_running_loop()
    sessions = _sessions.setdefault(loop, {})
    output_directory = settings.descriptor().output_directory
    session = sessions.get(output_directory)
    if session is None:
        session = BundleSession(settings, bundler)
        sessions[output_directory] = session
        logger.debug(f"Created bundle session for {output_directory}")
    return session
