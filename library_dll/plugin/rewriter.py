"""Host build configuration rewriting.

Turns the host's build configuration into one that uses the prebuilt
library bundle: the bundle directory is served statically, package.json is
watched, and the DLL reference, HTML injector and change watcher hooks are
registered. The input configuration is never modified.

Example:
    >>> config = await prepare({
    ...     "entry": "./src/index.js",
    ...     "plugins": [],
    ...     "library": {"base": "/path/to/app"},
    ... })
    >>> config["devServer"]["contentBase"]
    ['/path/to/app/.dll-cache']
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from ..bundler.invocation import merge_entries
from ..bundler.webpack import Bundler
from ..cdn.resolver import CdnLibrary
from ..cdn.resolver import CdnResolver
from ..cdn.resolver import UnpkgResolver
from ..config.loader import load_options
from ..models.bundle import BundleDescriptor
from ..utils.log_config import configure_logging
from .hooks import BuildHook
from .hooks import ChangeWatcherHook
from .hooks import DllReferenceHook
from .hooks import HtmlInjectorHook
from .session import BundleSession
from .session import get_session

logger = logging.getLogger(__name__)

PLUGIN_OPTIONS_KEY = "library"


def merge_content_base(dev_server: Mapping[str, Any] | None, directory: Path) -> dict[str, Any]:
    """Add the bundle directory to the dev server's static search path.

    A string becomes `[existing, directory]`, a list gets the directory
    appended (no duplicate check), and a missing value becomes
    `[directory]`.

    Args:
        dev_server: Host devServer options
        directory: Bundle output directory

    Returns:
        New devServer options
    """
    merged = dict(dev_server or {})
    content_base = merged.get("contentBase")
    if isinstance(content_base, str):
        merged["contentBase"] = [content_base, str(directory)]
    elif isinstance(content_base, (list, tuple)):
        merged["contentBase"] = [*content_base, str(directory)]
    else:
        merged["contentBase"] = [str(directory)]
    return merged


def _with_descriptor(entry: Any, descriptor: str) -> Any:
    if isinstance(entry, str):
        return [entry] if entry == descriptor else [entry, descriptor]
    if isinstance(entry, (list, tuple)):
        return list(entry) if descriptor in entry else [*entry, descriptor]
    if isinstance(entry, Mapping):
        # webpack 5 entry descriptors: {"main": {"import": [...], ...}}
        if "import" in entry:
            return {**entry, "import": _with_descriptor(entry["import"], descriptor)}
        return {chunk: _with_descriptor(value, descriptor) for chunk, value in entry.items()}
    return entry


async def watch_descriptor_entry(entry: Any, descriptor_path: Path) -> Any:
    """Include package.json among the host's entry inputs.

    Handles string, list and mapping entries. A callable entry is invoked
    with the descriptor path (and awaited if it returns an awaitable); its
    result is normalized the same way.

    Args:
        entry: Host entry option
        descriptor_path: Path to package.json

    Returns:
        New entry option
    """
    if entry is None:
        logger.debug("Host config has no entry, package.json will not be watched")
        return None
    if callable(entry):
        result = entry(str(descriptor_path))
        if inspect.isawaitable(result):
            result = await result
        entry = result
    return _with_descriptor(entry, str(descriptor_path))


def merge_externals(externals: Any, additions: Mapping[str, str]) -> Any:
    """Add `{library: global}` externals to the host's externals option."""
    if not additions:
        return externals
    if externals is None:
        return dict(additions)
    if isinstance(externals, Mapping):
        return {**externals, **additions}
    if isinstance(externals, (list, tuple)):
        return [*externals, dict(additions)]
    return [externals, dict(additions)]


class BuildRewriter:
    """Prepares host build configurations for one library bundle."""

    def __init__(self, session: BundleSession, cdn_resolver: CdnResolver | None = None) -> None:
        """Initialize build rewriter.

        Args:
            session: Bundle session shared by all prepare() calls
            cdn_resolver: Resolver for production mode (default: unpkg)
        """
        self.session = session
        self.cdn_resolver = cdn_resolver or UnpkgResolver(
            url_template=session.settings.cdn_url_template,
            globals=session.settings.globals,
        )

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any] | None = None,
        bundler: Bundler | None = None,
        cdn_resolver: CdnResolver | None = None,
    ) -> BuildRewriter:
        """Create a rewriter from plugin options and configure logging."""
        settings = load_options(options)
        configure_logging(settings.log)
        return cls(BundleSession(settings, bundler), cdn_resolver)

    @property
    def descriptor(self) -> BundleDescriptor:
        return self.session.descriptor

    def _base_config(self, host_config: Mapping[str, Any]) -> dict[str, Any]:
        # Plugin options must not reach the bundler's own option validation
        return {key: value for key, value in host_config.items() if key != PLUGIN_OPTIONS_KEY}

    async def prepare(self, host_config: Mapping[str, Any]) -> Mapping[str, Any]:
        """Build the host configuration that uses the library bundle.

        Args:
            host_config: Host build configuration (not modified)

        Returns:
            Read-only mapping with the rewritten configuration

        Raises:
            ConfigurationError: If package.json is missing or unparsable
            BuildError: If the library bundle could not be built
        """
        if self.session.settings.mode == "production":
            return await self._prepare_production(host_config)

        self.session.use_module_rules(host_config.get("module"))
        await self.session.ensure_bundle()

        config = self._base_config(host_config)
        config["devServer"] = merge_content_base(host_config.get("devServer"), self.descriptor.output_directory)
        entry = await watch_descriptor_entry(host_config.get("entry"), self.descriptor.descriptor_file_path)
        if entry is not None:
            config["entry"] = entry
        hooks: list[BuildHook] = []
        if self.session.has_bundle:
            hooks += [DllReferenceHook(self.descriptor), HtmlInjectorHook([self.descriptor.asset_file_name])]
        else:
            logger.info("No libraries to bundle, host build runs without a library bundle")
        # Watches package.json even without a bundle
        hooks.append(ChangeWatcherHook(self.session))
        config["plugins"] = [*(host_config.get("plugins") or []), *hooks]
        logger.debug(f"Host config prepared with library bundle {self.descriptor.asset_file_name}")
        return MappingProxyType(config)

    async def resolve_cdn_libraries(self) -> list[CdnLibrary]:
        """Resolve every bundled dependency to a CDN copy where possible."""
        settings = self.session.settings
        manifest = await self.session.read_manifest()
        names = merge_entries(manifest.names(), settings.include, settings.exclude)
        results = await asyncio.gather(
            *(self.cdn_resolver.resolve(name, manifest.dependencies.get(name, "latest")) for name in names)
        )
        return [library for library in results if library is not None]

    async def _prepare_production(self, host_config: Mapping[str, Any]) -> Mapping[str, Any]:
        libraries = await self.resolve_cdn_libraries()
        logger.info(f"Serving {len(libraries)} libraries from CDN")

        config = self._base_config(host_config)
        externals = merge_externals(
            host_config.get("externals"),
            {library.name: library.global_name for library in libraries},
        )
        if externals is not None:
            config["externals"] = externals
        config["plugins"] = [
            *(host_config.get("plugins") or []),
            HtmlInjectorHook([library.url for library in libraries]),
        ]
        return MappingProxyType(config)


async def prepare(
    host_config: Mapping[str, Any],
    bundler: Bundler | None = None,
    cdn_resolver: CdnResolver | None = None,
) -> Mapping[str, Any]:
    """Prepare a host configuration, reading options from its `library` key.

    Calls on the same event loop for the same bundle directory share one
    session, so concurrent calls run at most one build. The bundler of the
    first call is the one the shared session keeps.
    """
    settings = load_options(host_config.get(PLUGIN_OPTIONS_KEY))
    configure_logging(settings.log)
    rewriter = BuildRewriter(get_session(settings, bundler), cdn_resolver)
    return await rewriter.prepare(host_config)
