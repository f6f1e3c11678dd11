"""Build hooks registered into the host build.

Every hook subclasses BuildHook and overrides the capabilities it needs:
- before_compile: after all plugins are installed, before compilation
- before_html_generation: receives the HTML plugin's asset data
- on_watch_cycle: once per incremental (watch) build cycle

The host awaits each capability. Exceptions raised from on_watch_cycle are
the host's per-cycle failure channel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol

from pydantic import ValidationError

from ..errors import BuildError
from ..errors import LibraryDllError
from ..errors import WatchCycleError
from ..models.bundle import BundleDescriptor
from ..models.manifest import ExportManifest

if TYPE_CHECKING:
    from .session import BundleSession

logger = logging.getLogger(__name__)


class HostCompiler(Protocol):
    """The part of the host compiler the hooks talk to."""

    def add_dll_reference(self, context: Path, manifest: ExportManifest) -> None:
        """Resolve the manifest's modules from the prebuilt bundle at runtime."""
        ...


@dataclass
class WatchCycle:
    """One incremental build cycle as reported by the host.

    Attributes:
        file_timestamps: Modification time per watched file path
    """

    file_timestamps: Mapping[str, float] = field(default_factory=dict)

    def timestamp_for(self, path: Path) -> float | None:
        return self.file_timestamps.get(str(path), self.file_timestamps.get(path.as_posix()))


class BuildHook:
    """Base class for hooks; every capability defaults to a no-op."""

    name = "build-hook"

    async def before_compile(self, compiler: HostCompiler) -> None:
        return None

    async def before_html_generation(self, data: dict[str, Any]) -> dict[str, Any]:
        return data

    async def on_watch_cycle(self, cycle: WatchCycle) -> None:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class DllReferenceHook(BuildHook):
    """Makes the main build treat the bundle's modules as external."""

    name = "dll-reference"

    def __init__(self, descriptor: BundleDescriptor) -> None:
        self.descriptor = descriptor

    async def load_manifest(self) -> ExportManifest:
        """Read the export manifest written by the last bundle build.

        Raises:
            BuildError: If the manifest is missing or invalid
        """
        path = self.descriptor.manifest_file_path
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
            return ExportManifest.model_validate_json(text)
        except FileNotFoundError as e:
            raise BuildError(f"Export manifest not found: {path}") from e
        except ValidationError as e:
            raise BuildError(f"Invalid export manifest {path}: {e}") from e

    async def before_compile(self, compiler: HostCompiler) -> None:
        manifest = await self.load_manifest()
        compiler.add_dll_reference(context=self.descriptor.base, manifest=manifest)
        logger.debug(f"Referencing {len(manifest.content)} modules from {manifest.name}")


class HtmlInjectorHook(BuildHook):
    """Puts script references at the front of the generated HTML's assets.

    References already present are not inserted again, so re-entering HTML
    generation never duplicates a script tag.
    """

    name = "html-injector"

    def __init__(self, references: Sequence[str]) -> None:
        self.references = list(references)

    def inject(self, scripts: Sequence[str]) -> list[str]:
        missing = [ref for ref in self.references if ref not in scripts]
        return [*missing, *scripts]

    async def before_html_generation(self, data: dict[str, Any]) -> dict[str, Any]:
        assets = dict(data.get("assets") or {})
        assets["js"] = self.inject(list(assets.get("js") or []))
        return {**data, "assets": assets}


class WatchState(str, Enum):
    """Change watcher status."""

    IDLE = "idle"
    REBUILDING = "rebuilding"


class ChangeWatcherHook(BuildHook):
    """Rebuilds the bundle when package.json changes during watch builds.

    The first cycle only records the descriptor's timestamp; the initial
    build is done by the rewriter. While a rebuild runs the host's cycle
    is held, so the main build never sees a half-written bundle. A failed
    rebuild leaves the recorded timestamp alone, so the next cycle retries.
    """

    name = "change-watcher"

    def __init__(self, session: BundleSession) -> None:
        self.session = session
        self.state = WatchState.IDLE
        self.last_timestamp: float | None = None

    async def on_watch_cycle(self, cycle: WatchCycle) -> None:
        timestamp = cycle.timestamp_for(self.session.descriptor.descriptor_file_path)
        if timestamp is None or timestamp == self.last_timestamp:
            return
        if self.last_timestamp is None:
            self.last_timestamp = timestamp
            return

        logger.info("package.json changed, checking library bundle")
        self.state = WatchState.REBUILDING
        try:
            await self.session.ensure_bundle()
        except (LibraryDllError, OSError) as e:
            logger.error(f"Library bundle rebuild failed: {e}")
            raise WatchCycleError(f"Library bundle rebuild failed: {e}") from e
        finally:
            self.state = WatchState.IDLE

        self.last_timestamp = timestamp
