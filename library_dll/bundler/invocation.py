"""Bundle entry list construction."""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..models.manifest import DependencyManifest


def merge_entries(
    dependencies: Iterable[str],
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> list[str]:
    """Merge declared dependencies with the include and exclude lists.

    Args:
        dependencies: Names from package.json, in descriptor order
        include: Names to force into the bundle
        exclude: Names to keep out of the bundle

    Returns:
        Names in first-seen order (dependencies, then include), each once,
        without excluded names

    Example:
        >>> merge_entries(["a", "c"], include=["a", "b"], exclude=["b"])
        ['a', 'c']
    """
    excluded = set(exclude)
    entries: list[str] = []
    seen: set[str] = set()
    for name in [*dependencies, *include]:
        if name in excluded or name in seen:
            continue
        seen.add(name)
        entries.append(name)
    return entries


@dataclass(frozen=True)
class BuildInvocation:
    """Entry map for one bundler run: bundle name -> module names."""

    entry_map: Mapping[str, tuple[str, ...]]

    @classmethod
    def from_manifest(
        cls,
        bundle_name: str,
        manifest: DependencyManifest,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
    ) -> BuildInvocation:
        entries = merge_entries(manifest.names(), include, exclude)
        return cls(entry_map=MappingProxyType({bundle_name: tuple(entries)}))

    def entries(self) -> list[str]:
        """All module names across the entry map."""
        return [name for names in self.entry_map.values() for name in names]

    def to_dict(self) -> dict[str, list[str]]:
        return {chunk: list(names) for chunk, names in self.entry_map.items()}
