"""Host build integration.

Public Interface:
    - BuildRewriter / prepare: Rewrite a host build configuration
    - BundleSession: Per-plugin bundle state and build lock
    - BuildHook and its implementations: Hooks registered into the host
"""

from .hooks import BuildHook
from .hooks import ChangeWatcherHook
from .hooks import DllReferenceHook
from .hooks import HostCompiler
from .hooks import HtmlInjectorHook
from .hooks import WatchCycle
from .hooks import WatchState
from .rewriter import PLUGIN_OPTIONS_KEY
from .rewriter import BuildRewriter
from .rewriter import merge_content_base
from .rewriter import prepare
from .rewriter import watch_descriptor_entry
from .session import BundleSession
from .session import get_session

__all__ = [
    "BuildHook",
    "ChangeWatcherHook",
    "DllReferenceHook",
    "HostCompiler",
    "HtmlInjectorHook",
    "WatchCycle",
    "WatchState",
    "PLUGIN_OPTIONS_KEY",
    "BuildRewriter",
    "merge_content_base",
    "prepare",
    "watch_descriptor_entry",
    "BundleSession",
    "get_session",
]
