"""Snapshot store for the last successfully bundled dependency set.

Stores the dependency mapping of the last bundle build as a JSON document in
the bundle directory. Writes are atomic: readers see either the previous
snapshot or the new one, never a truncated file.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from ..errors import CacheReadError
from ..errors import SnapshotWriteError
from ..models.manifest import CachedManifest

logger = logging.getLogger(__name__)


class SnapshotStore:
    """JSON file store for the cached dependency manifest."""

    def __init__(self, snapshot_path: Path) -> None:
        """Initialize snapshot store.

        Args:
            snapshot_path: Location of the snapshot file (dll.json)
        """
        self.snapshot_path = snapshot_path

    def _save_json(self, path: Path, data: dict) -> None:
        """Save dict as JSON file atomically.

        The parent directory must already exist.

        Args:
            path: Target file path
            data: Dictionary to save as JSON

        Raises:
            SnapshotWriteError: If the file cannot be written
        """
        temp_path = path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            # Atomic rename
            temp_path.replace(path)
            logger.debug(f"Saved JSON to {path}")
        except OSError as e:
            # Clean up temp file on error
            if temp_path.exists():
                temp_path.unlink()
            raise SnapshotWriteError(f"Failed to save snapshot to {path}: {e}") from e

    def _read_snapshot(self) -> CachedManifest | None:
        """Read the snapshot file.

        Returns:
            Cached manifest, or None if the file doesn't exist

        Raises:
            CacheReadError: If the file exists but is not a valid snapshot
        """
        if not self.snapshot_path.exists():
            return None
        try:
            with open(self.snapshot_path, encoding="utf-8") as f:
                return CachedManifest.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            raise CacheReadError(f"Unreadable snapshot {self.snapshot_path}: {e}") from e

    def _load(self) -> CachedManifest | None:
        try:
            return self._read_snapshot()
        except CacheReadError as e:
            logger.warning(f"{e}; treating as no cache")
            return None

    async def load(self) -> CachedManifest | None:
        """Load the cached manifest.

        A missing or corrupt snapshot is not an error: both mean "no cache"
        and lead to a fresh build.

        Returns:
            Cached manifest if a valid snapshot exists, None otherwise
        """
        return await asyncio.to_thread(self._load)

    async def save(self, cached: CachedManifest) -> None:
        """Persist the cached manifest, replacing any previous snapshot.

        Args:
            cached: Manifest of the bundle that was just built

        Raises:
            SnapshotWriteError: If the snapshot directory is missing or unwritable
        """
        await asyncio.to_thread(self._save_json, self.snapshot_path, cached.to_dict())
        logger.debug(f"Saved snapshot with {len(cached.dependencies)} dependencies")

    async def clear(self) -> bool:
        """Delete the snapshot so the next check rebuilds.

        Returns:
            True if a snapshot was removed
        """

        def _unlink() -> bool:
            if not self.snapshot_path.exists():
                return False
            self.snapshot_path.unlink()
            return True

        removed = await asyncio.to_thread(_unlink)
        if removed:
            logger.debug(f"Deleted snapshot: {self.snapshot_path}")
        return removed
