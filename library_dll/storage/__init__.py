"""Storage module for library_dll.

Public Interface:
    - SnapshotStore: Atomic JSON store for the cached dependency manifest
    - read_dependency_manifest: Read dependencies from package.json
"""

from .descriptor import read_dependency_manifest
from .snapshot import SnapshotStore

__all__ = [
    "SnapshotStore",
    "read_dependency_manifest",
]
