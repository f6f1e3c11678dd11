"""Library bundle plugin.

Builds third-party JavaScript libraries into a separate, cached bundle and
wires it into the host build.

Public Interface:
    Modules:
    - config: Option loading
    - models: Shared data structures
    - storage: Snapshot store and package.json reading
    - cache: Rebuild decisions
    - bundler: Bundle compilation
    - plugin: Host build integration
    - cdn: CDN resolution for production mode
"""

from .errors import BuildError
from .errors import ConfigurationError
from .errors import LibraryDllError
from .errors import WatchCycleError
from .plugin import BuildRewriter
from .plugin import BundleSession
from .plugin import prepare

__all__ = [
    "BuildError",
    "ConfigurationError",
    "LibraryDllError",
    "WatchCycleError",
    "BuildRewriter",
    "BundleSession",
    "prepare",
]
