"""Change detection for the library bundle cache.

Decides whether the dependency set declared in package.json still matches
the one the current bundle was built from. Both functions are pure.
"""

from __future__ import annotations

from ..models.manifest import DependencyChange
from ..models.manifest import DependencyManifest


def needs_rebuild(current: DependencyManifest, cached: DependencyManifest | None) -> bool:
    """Check whether the library bundle must be rebuilt.

    Args:
        current: Dependencies declared right now
        cached: Dependencies of the last successful build, None on first run

    Returns:
        True if there is no cache or the two sets of name/range pairs differ
    """
    if cached is None:
        return True
    return current != cached


def diff_dependencies(current: DependencyManifest, cached: DependencyManifest | None) -> DependencyChange:
    """Describe what changed between the cached and current dependencies.

    Args:
        current: Dependencies declared right now
        cached: Dependencies of the last successful build

    Returns:
        Added, removed and changed names, in descriptor order
    """
    previous = dict(cached.dependencies) if cached is not None else {}
    now = dict(current.dependencies)
    return DependencyChange(
        added=[name for name in now if name not in previous],
        removed=[name for name in previous if name not in now],
        changed=[name for name in now if name in previous and previous[name] != now[name]],
    )
