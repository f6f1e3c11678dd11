"""Library bundle compilation.

Public Interface:
    - BundleBuilder: Build the bundle and record the snapshot
    - BuildInvocation / merge_entries: Entry list construction
    - Bundler: Protocol for external bundlers
    - WebpackBundler: Bundler running the webpack CLI
"""

from .builder import MANIFEST_MTIME_OFFSET
from .builder import BundleBuilder
from .builder import backdate_mtime
from .invocation import BuildInvocation
from .invocation import merge_entries
from .webpack import Bundler
from .webpack import BundlerReport
from .webpack import WebpackBundler
from .webpack import parse_stats
from .webpack import render_dll_config

__all__ = [
    "MANIFEST_MTIME_OFFSET",
    "BundleBuilder",
    "backdate_mtime",
    "BuildInvocation",
    "merge_entries",
    "Bundler",
    "BundlerReport",
    "WebpackBundler",
    "parse_stats",
    "render_dll_config",
]
