"""Shared data models for library_dll."""

from .base import CamelCaseModel
from .bundle import ALLOWED_TRANSITIONS
from .bundle import BuildResult
from .bundle import BundleDescriptor
from .bundle import BundleState
from .manifest import CachedManifest
from .manifest import DependencyChange
from .manifest import DependencyManifest
from .manifest import ExportManifest

__all__ = [
    "CamelCaseModel",
    "ALLOWED_TRANSITIONS",
    "BuildResult",
    "BundleDescriptor",
    "BundleState",
    "CachedManifest",
    "DependencyChange",
    "DependencyManifest",
    "ExportManifest",
]
